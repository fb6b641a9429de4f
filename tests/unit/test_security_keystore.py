"""
Unit tests for the keystore module.
"""

import base64
from unittest.mock import MagicMock, patch

import pytest
from keyring.errors import KeyringError, NoKeyringError, PasswordDeleteError

from sealrelay.core.exceptions import ConfigurationError
from sealrelay.security import keystore


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def mock_keyring_lib():
    """Patches the keyring module within sealrelay.security.keystore."""
    with patch("sealrelay.security.keystore.keyring", autospec=True) as mock_lib:
        yield mock_lib


@pytest.fixture
def memory_keyring(mock_keyring_lib):
    """Dictionary-backed keyring for save/load round trips."""
    store = {}
    mock_keyring_lib.set_password.side_effect = lambda s, a, p: store.__setitem__((s, a), p)
    mock_keyring_lib.get_password.side_effect = lambda s, a: store.get((s, a))
    return store


# ==============================================================================
# Tests: single secrets
# ==============================================================================

def test_save_secret_encodes_and_stores(mock_keyring_lib):
    """Verifies bytes are base64 encoded before storage."""
    keystore.save_secret("sealrelay_test", "alice", b"\x01\x02\x03\x04")

    called_service, called_account, called_secret = mock_keyring_lib.set_password.call_args[0]
    assert called_service == "sealrelay_test"
    assert called_account == "alice"
    assert called_secret == base64.b64encode(b"\x01\x02\x03\x04").decode("ascii")


def test_load_secret_missing_returns_none(mock_keyring_lib):
    mock_keyring_lib.get_password.return_value = None
    assert keystore.load_secret("svc", "acct") is None


def test_load_secret_corrupt_returns_none(mock_keyring_lib):
    mock_keyring_lib.get_password.return_value = "!!not-base64!!"
    assert keystore.load_secret("svc", "acct") is None


def test_delete_secret_ignores_missing_entry(mock_keyring_lib):
    mock_keyring_lib.delete_password.side_effect = PasswordDeleteError("not found")
    keystore.delete_secret("svc", "acct")
    mock_keyring_lib.delete_password.assert_called_once_with("svc", "acct")


@pytest.mark.parametrize("call,args", [
    ("load_secret", ("svc", "acct")),
    ("save_secret", ("svc", "acct", b"x")),
    ("delete_secret", ("svc", "acct")),
])
def test_missing_backend_is_configuration_error(mock_keyring_lib, call, args):
    """A host without a keyring backend surfaces as a configuration problem."""
    mock_keyring_lib.get_password.side_effect = NoKeyringError("no backend")
    mock_keyring_lib.set_password.side_effect = NoKeyringError("no backend")
    mock_keyring_lib.delete_password.side_effect = NoKeyringError("no backend")

    with pytest.raises(ConfigurationError, match="keyring unavailable") as exc:
        getattr(keystore, call)(*args)
    assert isinstance(exc.value.__cause__, NoKeyringError)


# ==============================================================================
# Tests: key material pairs
# ==============================================================================

def test_key_material_round_trip(memory_keyring):
    keystore.save_key_material("svc", "ops", b"passphrase", b"salt")

    assert set(memory_keyring) == {("svc", "ops:passphrase"), ("svc", "ops:salt")}
    assert keystore.load_key_material("svc", "ops") == (b"passphrase", b"salt")


def test_key_material_half_missing_is_none(memory_keyring):
    keystore.save_secret("svc", "ops:passphrase", b"passphrase")
    assert keystore.load_key_material("svc", "ops") is None


def test_delete_key_material_removes_both(mock_keyring_lib):
    keystore.delete_key_material("svc", "ops")
    deleted = [c.args for c in mock_keyring_lib.delete_password.call_args_list]
    assert deleted == [("svc", "ops:passphrase"), ("svc", "ops:salt")]


# ==============================================================================
# Tests: backend assessment
# ==============================================================================

def _backend(class_name, priority):
    backend = MagicMock()
    backend.__class__ = type(class_name, (), {})
    backend.priority = priority
    return backend


@pytest.mark.parametrize(
    "name,priority,secure,fragment",
    [
        ("PlaintextKeyring", 1, False, "insecure backend"),
        ("Keyring", 0, False, "no suitable secure keyring"),
        ("SecretServiceKeyring", 5, True, "looks acceptable"),
        ("CustomVault", 3, True, "treat with caution"),
    ],
)
def test_assess_backend(mock_keyring_lib, name, priority, secure, fragment):
    mock_keyring_lib.get_keyring.return_value = _backend(name, priority)
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is secure
    assert fragment in msg


def test_assess_backend_lookup_failure(mock_keyring_lib):
    mock_keyring_lib.get_keyring.side_effect = KeyringError("boom")
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is False
    assert "boom" in msg
