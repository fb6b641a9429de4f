"""Pluggable sources of key material (passphrase + salt) for the KeyDeriver.

``EnvironmentKeyProvider`` is the default. ``KeyringKeyProvider`` reads the OS
keystore. ``DemoKeyProvider`` returns the fixed demonstration pair and must be
selected explicitly.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from sealrelay.core.config import Settings
from sealrelay.core.exceptions import ConfigurationError

from .kdf import generate_salt
from .keystore import assess_keyring_backend, delete_key_material, load_key_material, save_key_material

logger = logging.getLogger(__name__)

DEMO_PASSPHRASE = b"default-password-for-demo"
DEMO_SALT = b"default-salt-for-demo"


@dataclass(frozen=True)
class KeyMaterial:
    passphrase: bytes
    salt: bytes

    def __repr__(self) -> str:
        return "KeyMaterial(<redacted>)"


class KeyProvider:
    """Base class; subclasses return fresh KeyMaterial on every call."""

    name = "base"

    def get_key_material(self) -> KeyMaterial:
        raise NotImplementedError


class EnvironmentKeyProvider(KeyProvider):
    name = "env"

    def __init__(
        self,
        passphrase_var: str = "SEALRELAY_PASSPHRASE",
        salt_var: str = "SEALRELAY_SALT",
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.passphrase_var = passphrase_var
        self.salt_var = salt_var
        self._environ = environ

    def get_key_material(self) -> KeyMaterial:
        env = os.environ if self._environ is None else self._environ
        passphrase = env.get(self.passphrase_var)
        salt = env.get(self.salt_var)
        if not passphrase or not salt:
            raise ConfigurationError(
                f"key material not configured; set {self.passphrase_var} and {self.salt_var}"
            )
        return KeyMaterial(passphrase.encode("utf-8"), salt.encode("utf-8"))


class KeyringKeyProvider(KeyProvider):
    name = "keyring"

    def __init__(self, service: str = "sealrelay", account: str = "default"):
        self.service = service
        self.account = account

    def get_key_material(self) -> KeyMaterial:
        stored = load_key_material(self.service, self.account)
        if stored is None:
            raise ConfigurationError(
                f"no key material in OS keystore for {self.service}/{self.account}"
            )
        return KeyMaterial(*stored)

    def store(self, passphrase: bytes, salt: Optional[bytes] = None, force: bool = False) -> bytes:
        """Persist a passphrase (and salt, generated when omitted); returns the salt."""
        if not passphrase:
            raise ConfigurationError("passphrase must not be empty")
        secure, msg = assess_keyring_backend()
        if not secure and not force:
            raise ConfigurationError(
                f"refusing to store key material in OS keystore: {msg}; "
                "pass force=True to override if you understand the risk"
            )
        if salt is None:
            salt = generate_salt()
        save_key_material(self.service, self.account, passphrase, salt)
        return salt

    def forget(self) -> None:
        delete_key_material(self.service, self.account)


class DemoKeyProvider(KeyProvider):
    """Fixed demonstration key material. Not for real payloads."""

    name = "demo"

    def get_key_material(self) -> KeyMaterial:
        logger.warning("using the fixed DEMO key material; payloads are not protected")
        return KeyMaterial(DEMO_PASSPHRASE, DEMO_SALT)


def build_key_provider(settings: Settings) -> KeyProvider:
    if settings.key_provider == "env":
        return EnvironmentKeyProvider()
    if settings.key_provider == "keyring":
        return KeyringKeyProvider(settings.keyring_service, settings.keyring_account)
    if settings.key_provider == "demo":
        return DemoKeyProvider()
    raise ConfigurationError(f"unknown key provider {settings.key_provider!r}")
