"""AES-256-GCM envelope decryption with a size-based execution strategy.

Envelope layout (all three fields text-encoded on the wire, hex by default):
- ciphertext: raw GCM ciphertext, tag NOT appended
- nonce: 8..128 bytes (12 recommended)
- auth tag: 16 bytes

Payloads smaller than ``threshold`` are decrypted in a single AESGCM call
(buffered). Larger payloads are fed through an incremental GCM decryptor in
``chunk_size`` slices (streamed), written into one pre-sized buffer, and the
tag is verified in ``finalize()``. The streamed path returns that buffer as a
``bytearray`` so the plaintext is never copied; on a tag failure it is zeroed.
Both paths return the same bytes or raise the same error for the same input.
"""
import base64
import binascii
import logging
import os
from enum import Enum
from typing import Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sealrelay.core.exceptions import AuthenticationError, DecodingError
from sealrelay.core.models import DEFAULT_ALGORITHM, CipherEnvelope, WireEncoding, WireEnvelope

logger = logging.getLogger(__name__)

KEY_LEN = 32
NONCE_LEN = 12
NONCE_MIN, NONCE_MAX = 8, 128
TAG_LEN = 16
DEFAULT_THRESHOLD = 1024 * 1024
DEFAULT_CHUNK_SIZE = 64 * 1024

# one message for every decrypt failure callers can see
DECRYPT_FAILED = "payload could not be decrypted"

_BLOCK_SLACK = 15


class DecryptStrategy(Enum):
    AUTO = "auto"
    BUFFERED = "buffered"
    STREAMED = "streamed"


def _decode_text(value: str, encoding: WireEncoding, what: str) -> bytes:
    try:
        if encoding is WireEncoding.HEX:
            raw = bytes.fromhex(value)
        else:
            raw = base64.b64decode(value, validate=True)
    except (ValueError, binascii.Error):
        raise DecodingError(f"{what} is not valid {encoding.value}") from None
    if not raw:
        raise DecodingError(f"{what} is empty after decoding")
    return raw


def _wipe(buf: bytearray) -> None:
    buf[:] = bytes(len(buf))


def _encode_bytes(value: bytes, encoding: WireEncoding) -> str:
    if encoding is WireEncoding.HEX:
        return value.hex()
    return base64.b64encode(value).decode("ascii")


class AeadCodec:
    """Decrypts CipherEnvelopes; holds only tuning parameters, no key state."""

    def __init__(self, threshold: int = DEFAULT_THRESHOLD, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if threshold <= 0 or chunk_size <= 0:
            raise ValueError("threshold and chunk_size must be positive")
        self.threshold = threshold
        self.chunk_size = chunk_size

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    def decode_envelope(self, wire: WireEnvelope) -> CipherEnvelope:
        """Decode the text fields of ``wire`` into a CipherEnvelope."""
        return CipherEnvelope(
            ciphertext=_decode_text(wire.ciphertext, wire.encoding, "ciphertext"),
            nonce=_decode_text(wire.nonce, wire.encoding, "nonce"),
            auth_tag=_decode_text(wire.auth_tag, wire.encoding, "auth tag"),
            algorithm=wire.algorithm,
        )

    @staticmethod
    def encode_envelope(envelope: CipherEnvelope, encoding: WireEncoding = WireEncoding.HEX) -> Dict[str, str]:
        """Wire mapping in the shape the fetch source serves."""
        return {
            "encrypted": _encode_bytes(envelope.ciphertext, encoding),
            "iv": _encode_bytes(envelope.nonce, encoding),
            "authTag": _encode_bytes(envelope.auth_tag, encoding),
            "algorithm": envelope.algorithm,
        }

    # ------------------------------------------------------------------
    # Encryption (producer side, used by tooling and tests)
    # ------------------------------------------------------------------

    @staticmethod
    def encrypt(plaintext: bytes, key: bytes, nonce: Optional[bytes] = None) -> CipherEnvelope:
        if nonce is None:
            nonce = os.urandom(NONCE_LEN)
        sealed = AESGCM(key).encrypt(nonce, plaintext, None)
        return CipherEnvelope(ciphertext=sealed[:-TAG_LEN], nonce=nonce, auth_tag=sealed[-TAG_LEN:])

    # ------------------------------------------------------------------
    # Decryption
    # ------------------------------------------------------------------

    def select_strategy(self, size: int) -> DecryptStrategy:
        if size < self.threshold:
            return DecryptStrategy.BUFFERED
        return DecryptStrategy.STREAMED

    def decrypt(
        self,
        envelope: CipherEnvelope,
        key: bytes,
        strategy: DecryptStrategy = DecryptStrategy.AUTO,
    ) -> bytes:
        """
        Authenticate and decrypt ``envelope`` with ``key``.

        Raises :class:`DecodingError` for unusable parameters and
        :class:`AuthenticationError` when the tag does not verify. No
        plaintext is returned unless the tag verified.
        """
        self._check_params(envelope, key)

        if strategy is DecryptStrategy.AUTO:
            strategy = self.select_strategy(len(envelope.ciphertext))
        logger.debug("decrypting %d bytes (%s)", len(envelope.ciphertext), strategy.value)

        if strategy is DecryptStrategy.BUFFERED:
            return self._decrypt_buffered(envelope, key)
        return self._decrypt_streamed(envelope, key)

    @staticmethod
    def _check_params(envelope: CipherEnvelope, key: bytes) -> None:
        if envelope.algorithm.lower() != DEFAULT_ALGORITHM:
            raise DecodingError(f"unsupported algorithm {envelope.algorithm!r}")
        if len(key) != KEY_LEN:
            raise DecodingError(f"key must be {KEY_LEN} bytes")
        if not NONCE_MIN <= len(envelope.nonce) <= NONCE_MAX:
            raise DecodingError(f"nonce must be between {NONCE_MIN} and {NONCE_MAX} bytes")
        if len(envelope.auth_tag) != TAG_LEN:
            raise DecodingError(f"auth tag must be {TAG_LEN} bytes")

    @staticmethod
    def _decrypt_buffered(envelope: CipherEnvelope, key: bytes) -> bytes:
        try:
            return AESGCM(key).decrypt(envelope.nonce, envelope.ciphertext + envelope.auth_tag, None)
        except InvalidTag:
            raise AuthenticationError(DECRYPT_FAILED) from None

    def _decrypt_streamed(self, envelope: CipherEnvelope, key: bytes) -> bytearray:
        decryptor = Cipher(algorithms.AES(key), modes.GCM(envelope.nonce, envelope.auth_tag)).decryptor()
        view = memoryview(envelope.ciphertext)
        # GCM output is as long as its input; update_into needs one block of slack
        buf = bytearray(len(view) + _BLOCK_SLACK)
        written = 0
        try:
            with memoryview(buf) as out:
                # chunks must go through in order; GCM counters are sequential
                for start in range(0, len(view), self.chunk_size):
                    written += decryptor.update_into(view[start:start + self.chunk_size], out[written:])
            # GCM keeps no tail; finalize only verifies the tag
            decryptor.finalize()
        except InvalidTag:
            # unauthenticated output never leaves this method
            _wipe(buf)
            raise AuthenticationError(DECRYPT_FAILED) from None
        del buf[written:]
        return buf

    def performance_stats(self) -> Dict:
        return {
            "threshold": self.threshold,
            "algorithm": DEFAULT_ALGORITHM,
            "chunkSize": self.chunk_size,
            "description": "buffered decryption below the threshold, chunked streaming above it",
        }
