"""Structural checks on inbound envelopes, run before any cryptographic work."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from sealrelay.core.exceptions import MalformedEnvelopeError
from sealrelay.core.models import DEFAULT_ALGORITHM, DemoEnvelope, Envelope, WireEncoding, WireEnvelope

logger = logging.getLogger(__name__)

# accepted key spellings, first match wins
CIPHERTEXT_KEYS = ("encrypted", "encryptedData", "ciphertext")
NONCE_KEYS = ("iv", "nonce")
TAG_KEYS = ("authTag", "tag")

# synthetic batch served in demo mode instead of a real decryption
DEMO_RECORDS = (
    {"name": "João Silva", "email": "joao.silva@email.com", "phone": "11999999999"},
    {"name": "Maria Santos", "email": "maria.santos@email.com", "phone": "11888888888"},
    {"name": "Pedro Oliveira", "email": "pedro.oliveira@email.com", "phone": "11777777777"},
)


def _pick(payload: Mapping[str, Any], keys: Sequence[str]) -> Optional[Any]:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _require_text(payload: Mapping[str, Any], keys: Sequence[str]) -> str:
    value = _pick(payload, keys)
    if value is None:
        raise MalformedEnvelopeError(f"envelope is missing {keys[0]}")
    if not isinstance(value, str):
        raise MalformedEnvelopeError(f"envelope field {keys[0]} must be a string")
    if not value.strip():
        raise MalformedEnvelopeError(f"envelope field {keys[0]} is empty")
    return value.strip()


class EnvelopeValidator:
    """
    Turns a fetched payload into a :class:`WireEnvelope` or, when demo mode is
    enabled, a :class:`DemoEnvelope`.

    In demo mode every well-formed cipher envelope is replaced by the fixed
    demo batch, whatever key spellings it uses. Outside demo mode nothing is
    ever substituted.

    Only types and presence are checked; hex/base64 decoding is left to the
    codec.
    """

    def __init__(self, allow_demo: bool = False, encoding: WireEncoding = WireEncoding.HEX):
        self.allow_demo = allow_demo
        self.encoding = encoding

    def validate(self, payload: Any) -> Envelope:
        if not isinstance(payload, Mapping):
            raise MalformedEnvelopeError("envelope must be a JSON object")

        if payload.get("mockData"):
            return self._validate_demo(payload)

        ciphertext = _require_text(payload, CIPHERTEXT_KEYS)
        nonce = _require_text(payload, NONCE_KEYS)
        auth_tag = _require_text(payload, TAG_KEYS)

        algorithm = payload.get("algorithm") or DEFAULT_ALGORITHM
        if not isinstance(algorithm, str) or algorithm.lower() != DEFAULT_ALGORITHM:
            raise MalformedEnvelopeError(f"unsupported algorithm {algorithm!r}")

        if self.allow_demo:
            logger.warning("demo mode: replacing fetched envelope with the demo record batch")
            return DemoEnvelope(records=tuple(dict(r) for r in DEMO_RECORDS))

        return WireEnvelope(
            ciphertext=ciphertext,
            nonce=nonce,
            auth_tag=auth_tag,
            algorithm=algorithm.lower(),
            encoding=self.encoding,
        )

    def _validate_demo(self, payload: Mapping[str, Any]) -> DemoEnvelope:
        if not self.allow_demo:
            raise MalformedEnvelopeError("demo payloads are disabled")
        users = payload.get("users")
        if not isinstance(users, list):
            raise MalformedEnvelopeError("demo payload must carry a users list")
        logger.warning("accepting DEMO payload with %d records", len(users))
        return DemoEnvelope(records=tuple(users))
