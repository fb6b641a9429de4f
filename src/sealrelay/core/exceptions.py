"""
Exceptions for the SealRelay pipeline
Everything raised on purpose derives from SealRelayError so the orchestrator
has a single type to catch per stage.
"""

from typing import Optional


class SealRelayError(Exception):
    # general container for errors
    kind = "SealRelayError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(SealRelayError):
    # raised when settings or key material are missing or invalid
    kind = "ConfigurationError"


class MalformedEnvelopeError(SealRelayError):
    # raised when the inbound envelope is structurally broken
    kind = "MalformedEnvelopeError"


class DecryptionError(SealRelayError):
    # common parent; the only decrypt kind ever shown to callers
    kind = "DecryptionError"


class AuthenticationError(DecryptionError):
    # raised on a GCM tag mismatch
    kind = "AuthenticationError"


class DecodingError(DecryptionError):
    # raised when hex/base64 or parameter sizes are invalid
    kind = "DecodingError"


class RecordError(SealRelayError):
    kind = "RecordError"


class InvalidJsonError(RecordError):
    # raised when plaintext is not UTF-8 JSON
    kind = "InvalidJsonError"

    def __init__(self, message: str, excerpt: str = ""):
        super().__init__(message)
        # bounded, kept off the message on purpose
        self.excerpt = excerpt


class InvalidShapeError(RecordError):
    # raised when the top level is not a non-empty list
    kind = "InvalidShapeError"


class InvalidRecordError(RecordError):
    # raised for the first bad record (1-based index)
    kind = "InvalidRecordError"

    def __init__(self, index: int, field: Optional[str] = None, reason: str = "is incomplete"):
        if field:
            message = f"record {index} is invalid: {field} {reason}"
        else:
            message = f"record {index} {reason}"
        super().__init__(message)
        self.index = index
        self.field = field


class TransportError(SealRelayError):
    # raised when a remote call fails (fetch, forward, clear, health)
    kind = "TransportError"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TimeoutError(TransportError):
    # raised when a remote call exceeds its bound
    kind = "TimeoutError"


class SinkRejectedError(TransportError):
    # raised when the sink answers with a non-2xx status
    kind = "SinkRejectedError"

    def __init__(self, status_code: int, message: str):
        super().__init__(f"sink rejected request ({status_code}): {message}", status_code=status_code)
        self.remote_message = message
