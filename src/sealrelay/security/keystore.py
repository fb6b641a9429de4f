"""OS keystore integration using keyring for passphrase/salt storage.

Binary values are base64-encoded before storage to keep them string-friendly.
The passphrase and the salt live under two accounts derived from one base
account name (``<account>:passphrase`` and ``<account>:salt``).
"""
import base64
import binascii
from typing import Optional, Tuple

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from sealrelay.core.exceptions import ConfigurationError


def _accounts(account: str) -> Tuple[str, str]:
    return f"{account}:passphrase", f"{account}:salt"


def save_secret(service: str, account: str, value: bytes) -> None:
    """Persist ``value`` in the OS keystore under (service, account)."""
    secret = base64.b64encode(value).decode("ascii")
    try:
        keyring.set_password(service, account, secret)
    except KeyringError as e:
        raise ConfigurationError(f"keyring unavailable: {e.__class__.__name__}") from e


def load_secret(service: str, account: str) -> Optional[bytes]:
    """Load a persisted value; returns raw bytes or None."""
    try:
        secret = keyring.get_password(service, account)
    except KeyringError as e:
        raise ConfigurationError(f"keyring unavailable: {e.__class__.__name__}") from e
    if secret is None:
        return None
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError):
        return None


def delete_secret(service: str, account: str) -> None:
    try:
        keyring.delete_password(service, account)
    except PasswordDeleteError:
        # nothing stored under this account
        pass
    except KeyringError as e:
        raise ConfigurationError(f"keyring unavailable: {e.__class__.__name__}") from e


def save_key_material(service: str, account: str, passphrase: bytes, salt: bytes) -> None:
    pass_account, salt_account = _accounts(account)
    save_secret(service, pass_account, passphrase)
    save_secret(service, salt_account, salt)


def load_key_material(service: str, account: str) -> Optional[Tuple[bytes, bytes]]:
    """Return (passphrase, salt) or None when either half is missing."""
    pass_account, salt_account = _accounts(account)
    passphrase = load_secret(service, pass_account)
    salt = load_secret(service, salt_account)
    if not passphrase or not salt:
        return None
    return passphrase, salt


def delete_key_material(service: str, account: str) -> None:
    for name in _accounts(account):
        delete_secret(service, name)


def assess_keyring_backend() -> Tuple[bool, str]:
    """Return (is_secure, message) describing the current keyring backend.

    Heuristics are used because the `keyring` package exposes different backends
    across platforms.
    """
    try:
        backend = keyring.get_keyring()
    except KeyringError as e:
        return False, f"failed to get keyring backend: {e}"

    name = backend.__class__.__name__
    priority = getattr(backend, "priority", None)

    insecure_indicators = ("Plaintext", "Uncrypted", "Simple", "File")
    if any(tok in name for tok in insecure_indicators):
        return False, f"insecure backend detected: {name}"

    if priority is not None and priority <= 0:
        return False, f"no suitable secure keyring backend available (priority={priority}, backend={name})"

    if "Win" in name or "Keychain" in name or "SecretService" in name or "KWallet" in name:
        return True, f"backend looks acceptable: {name} (priority={priority})"

    return True, f"unknown backend '{name}', treat with caution (priority={priority})"
