"""Unit tests for key material providers."""

import logging
from unittest.mock import patch

import pytest
from keyring.errors import NoKeyringError

from sealrelay.core.exceptions import ConfigurationError
from sealrelay.security.providers import (
    DEMO_PASSPHRASE,
    DEMO_SALT,
    DemoKeyProvider,
    EnvironmentKeyProvider,
    KeyMaterial,
    KeyringKeyProvider,
    build_key_provider,
)


def test_environment_provider_reads_variables():
    provider = EnvironmentKeyProvider(environ={"SEALRELAY_PASSPHRASE": "pw", "SEALRELAY_SALT": "s"})
    assert provider.get_key_material() == KeyMaterial(b"pw", b"s")


def test_environment_provider_custom_names(monkeypatch):
    monkeypatch.setenv("MY_PASS", "pw")
    monkeypatch.setenv("MY_SALT", "salt")
    provider = EnvironmentKeyProvider("MY_PASS", "MY_SALT")
    assert provider.get_key_material().salt == b"salt"


def test_environment_provider_missing_is_configuration_error():
    provider = EnvironmentKeyProvider(environ={"SEALRELAY_PASSPHRASE": "pw"})
    with pytest.raises(ConfigurationError, match="SEALRELAY_SALT"):
        provider.get_key_material()


def test_key_material_repr_is_redacted():
    assert "pw" not in repr(KeyMaterial(b"pw", b"salt"))


def test_demo_provider_is_labelled(caplog):
    with caplog.at_level(logging.WARNING, logger="sealrelay.security.providers"):
        material = DemoKeyProvider().get_key_material()
    assert material == KeyMaterial(DEMO_PASSPHRASE, DEMO_SALT)
    assert "DEMO" in caplog.text


def test_keyring_provider_loads_material():
    with patch("sealrelay.security.providers.load_key_material", return_value=(b"pw", b"salt")) as load:
        material = KeyringKeyProvider("svc", "acct").get_key_material()
    load.assert_called_once_with("svc", "acct")
    assert material == KeyMaterial(b"pw", b"salt")


def test_keyring_provider_missing_material():
    with patch("sealrelay.security.providers.load_key_material", return_value=None):
        with pytest.raises(ConfigurationError, match="svc/acct"):
            KeyringKeyProvider("svc", "acct").get_key_material()


def test_keyring_store_refuses_insecure_backend():
    with patch("sealrelay.security.providers.assess_keyring_backend", return_value=(False, "plaintext")), \
            patch("sealrelay.security.providers.save_key_material") as save:
        with pytest.raises(ConfigurationError, match="refusing"):
            KeyringKeyProvider().store(b"pw")
    save.assert_not_called()


def test_keyring_store_generates_salt_when_missing():
    with patch("sealrelay.security.providers.assess_keyring_backend", return_value=(False, "plaintext")), \
            patch("sealrelay.security.providers.save_key_material") as save:
        salt = KeyringKeyProvider("svc", "acct").store(b"pw", force=True)
    assert len(salt) == 16
    save.assert_called_once_with("svc", "acct", b"pw", salt)


def test_keyring_store_rejects_empty_passphrase():
    with pytest.raises(ConfigurationError):
        KeyringKeyProvider().store(b"")


@pytest.mark.parametrize(
    "name,cls",
    [("env", EnvironmentKeyProvider), ("keyring", KeyringKeyProvider), ("demo", DemoKeyProvider)],
)
def test_build_key_provider(settings, name, cls):
    settings.key_provider = name
    assert isinstance(build_key_provider(settings), cls)


def test_build_key_provider_unknown(settings):
    settings.key_provider = "kms"
    with pytest.raises(ConfigurationError):
        build_key_provider(settings)


def test_keyring_provider_without_backend():
    with patch("sealrelay.security.keystore.keyring.get_password", side_effect=NoKeyringError("no backend")):
        with pytest.raises(ConfigurationError, match="keyring unavailable"):
            KeyringKeyProvider("svc", "acct").get_key_material()


def test_keyring_provider_forget():
    with patch("sealrelay.security.providers.delete_key_material") as delete:
        KeyringKeyProvider("svc", "acct").forget()
    delete.assert_called_once_with("svc", "acct")
