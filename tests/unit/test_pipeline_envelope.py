"""Unit tests for the envelope validator."""

import pytest

from conftest import demo_body
from sealrelay.core.exceptions import MalformedEnvelopeError
from sealrelay.core.models import DemoEnvelope, WireEncoding, WireEnvelope
from sealrelay.pipeline.envelope import DEMO_RECORDS, EnvelopeValidator

VALID = {"encrypted": "a1b2", "iv": "00" * 12, "authTag": "11" * 16}


@pytest.fixture
def validator():
    return EnvelopeValidator()


def test_valid_triple(validator):
    envelope = validator.validate(VALID)
    assert envelope == WireEnvelope(ciphertext="a1b2", nonce="00" * 12, auth_tag="11" * 16)


@pytest.mark.parametrize(
    "payload",
    [
        {"encryptedData": "a1b2", "iv": "00", "authTag": "11"},
        {"ciphertext": "a1b2", "nonce": "00", "tag": "11"},
    ],
)
def test_alternate_key_spellings(validator, payload):
    envelope = validator.validate(payload)
    assert envelope.ciphertext == "a1b2"
    assert envelope.nonce == "00"
    assert envelope.auth_tag == "11"


def test_algorithm_is_normalised(validator):
    envelope = validator.validate(dict(VALID, algorithm="AES-256-GCM"))
    assert envelope.algorithm == "aes-256-gcm"


def test_unsupported_algorithm(validator):
    with pytest.raises(MalformedEnvelopeError, match="unsupported algorithm"):
        validator.validate(dict(VALID, algorithm="aes-256-cbc"))


def test_configured_encoding_is_carried():
    envelope = EnvelopeValidator(encoding=WireEncoding.BASE64).validate(VALID)
    assert envelope.encoding is WireEncoding.BASE64


@pytest.mark.parametrize("missing", ["encrypted", "iv", "authTag"])
def test_missing_field(validator, missing):
    payload = {k: v for k, v in VALID.items() if k != missing}
    with pytest.raises(MalformedEnvelopeError, match=f"missing {missing}"):
        validator.validate(payload)


@pytest.mark.parametrize("value", ["", "   ", 42, None, ["00"]])
def test_bad_field_values(validator, value):
    with pytest.raises(MalformedEnvelopeError):
        validator.validate(dict(VALID, iv=value))


@pytest.mark.parametrize("payload", ["raw text", b"\x00\x01", None, ["a", "b"], 3])
def test_non_object_payload(validator, payload):
    with pytest.raises(MalformedEnvelopeError, match="JSON object"):
        validator.validate(payload)


def test_demo_payload_rejected_by_default(validator):
    with pytest.raises(MalformedEnvelopeError, match="demo payloads are disabled"):
        validator.validate(demo_body())


def test_demo_payload_accepted_when_enabled():
    envelope = EnvelopeValidator(allow_demo=True).validate(demo_body())
    assert isinstance(envelope, DemoEnvelope)
    assert list(envelope.records) == [dict(r) for r in DEMO_RECORDS]


def test_demo_payload_needs_users_list():
    with pytest.raises(MalformedEnvelopeError, match="users list"):
        EnvelopeValidator(allow_demo=True).validate({"mockData": True, "users": "nope"})


@pytest.mark.parametrize(
    "payload",
    [
        VALID,
        {"encrypted": "a1b2", "nonce": "00" * 12, "authTag": "11" * 16},
        {"ciphertext": "a1b2", "nonce": "00" * 12, "tag": "11" * 16},
    ],
)
def test_demo_mode_replaces_every_cipher_envelope(payload):
    envelope = EnvelopeValidator(allow_demo=True).validate(payload)
    assert envelope == DemoEnvelope(records=DEMO_RECORDS)


def test_demo_mode_still_rejects_malformed_envelopes():
    with pytest.raises(MalformedEnvelopeError, match="missing authTag"):
        EnvelopeValidator(allow_demo=True).validate({"encrypted": "a1b2", "nonce": "00"})


def test_cipher_envelope_is_never_replaced_outside_demo_mode(validator):
    payload = {"encrypted": "a1b2", "nonce": "00" * 12, "authTag": "11" * 16}
    assert isinstance(validator.validate(payload), WireEnvelope)
