"""
Data models for envelopes, records and flow outcomes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

DEFAULT_ALGORITHM = "aes-256-gcm"


class WireEncoding(Enum):
    # text encoding of the binary envelope fields on the wire
    HEX = "hex"
    BASE64 = "base64"


class FlowStage(Enum):
    FETCH = "fetch"
    ENVELOPE = "envelope"
    DECRYPT = "decrypt"
    PARSE = "parse"
    VALIDATE = "validate"
    FORWARD = "forward"


class FlowState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    VALIDATING_ENVELOPE = "validating_envelope"
    DECRYPTING = "decrypting"
    PARSING = "parsing"
    VALIDATING_RECORDS = "validating_records"
    FORWARDING = "forwarding"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# state -> stage that gets blamed if the state fails
STAGE_FOR_STATE = {
    FlowState.FETCHING: FlowStage.FETCH,
    FlowState.VALIDATING_ENVELOPE: FlowStage.ENVELOPE,
    FlowState.DECRYPTING: FlowStage.DECRYPT,
    FlowState.PARSING: FlowStage.PARSE,
    FlowState.VALIDATING_RECORDS: FlowStage.VALIDATE,
    FlowState.FORWARDING: FlowStage.FORWARD,
}


@dataclass(frozen=True)
class WireEnvelope:
    """Structurally valid envelope whose binary fields are still text-encoded."""

    ciphertext: str
    nonce: str
    auth_tag: str
    algorithm: str = DEFAULT_ALGORITHM
    encoding: WireEncoding = WireEncoding.HEX


@dataclass(frozen=True)
class CipherEnvelope:
    """Decoded AEAD envelope, consumed once by the codec."""

    ciphertext: bytes
    nonce: bytes
    auth_tag: bytes
    algorithm: str = DEFAULT_ALGORITHM

    def __repr__(self) -> str:
        # sizes only; the bytes themselves stay out of logs and tracebacks
        return (
            f"CipherEnvelope(algorithm={self.algorithm!r}, ciphertext=<{len(self.ciphertext)} bytes>, "
            f"nonce=<{len(self.nonce)} bytes>, auth_tag=<{len(self.auth_tag)} bytes>)"
        )


@dataclass(frozen=True)
class DemoEnvelope:
    """Already-plaintext record batch, only accepted in demo mode."""

    records: Tuple[Any, ...]


Envelope = Union[WireEnvelope, DemoEnvelope]


@dataclass(frozen=True)
class UserRecord:
    name: str
    email: str
    phone: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "email": self.email, "phone": self.phone}


@dataclass(frozen=True)
class FlowSuccess:
    records: List[UserRecord]
    forward_ack: Any = None
    trace: Tuple[FlowState, ...] = ()

    @property
    def state(self) -> FlowState:
        return FlowState.SUCCEEDED

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "data": [r.to_dict() for r in self.records],
            "message": f"Flow completed. {len(self.records)} records processed.",
        }


@dataclass(frozen=True)
class FlowFailure:
    stage: FlowStage
    kind: str
    message: str
    status_code: Optional[int] = None
    # originating exception; for logs and tests, never serialized
    error: Optional[BaseException] = field(default=None, compare=False, repr=False)
    trace: Tuple[FlowState, ...] = ()

    @property
    def state(self) -> FlowState:
        return FlowState.FAILED

    def to_response(self) -> Dict[str, Any]:
        response: Dict[str, Any] = {
            "success": False,
            "error": f"{self.stage.value} stage failed: {self.message}",
            "data": {"stage": self.stage.value, "kind": self.kind},
        }
        if self.status_code is not None:
            response["data"]["statusCode"] = self.status_code
        return response


FlowResult = Union[FlowSuccess, FlowFailure]


@dataclass(frozen=True)
class ClearResult:
    ack: Any = None

    def to_response(self) -> Dict[str, Any]:
        return {"success": True, "data": self.ack, "message": "Sink records cleared"}


@dataclass(frozen=True)
class HealthReport:
    sink_available: bool
    timestamp: str

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "data": {
                "status": "healthy",
                "services": {
                    "sink": "available" if self.sink_available else "unavailable",
                    "encryption": "available",
                },
                "timestamp": self.timestamp,
            },
            "message": "Services checked",
        }
