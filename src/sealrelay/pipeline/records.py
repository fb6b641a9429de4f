"""Parsing and validation of decrypted record batches."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Mapping, Optional, Tuple

from sealrelay.core.exceptions import InvalidJsonError, InvalidRecordError, InvalidShapeError
from sealrelay.core.models import UserRecord

logger = logging.getLogger(__name__)

EXCERPT_LEN = 32
NAME_MAX = 128
EMAIL_MAX = 255
PHONE_MAX = 20

# local@domain.tld, no whitespace, one @, dotted domain
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s.]+(\.[^@\s.]+)+$")

# field -> accepted keys, checked in order
FIELD_KEYS = {
    "name": ("name", "nome"),
    "email": ("email",),
    "phone": ("phone",),
}


def _excerpt(text: str) -> str:
    if len(text) <= EXCERPT_LEN:
        return text
    return text[:EXCERPT_LEN] + "..."


def _field_text(raw: Mapping[str, Any], field: str, index: int) -> str:
    value: Optional[Any] = None
    for key in FIELD_KEYS[field]:
        if raw.get(key) not in (None, ""):
            value = raw[key]
            break
    if value is None:
        raise InvalidRecordError(index, field, "is missing")
    # bool is an int subclass but never a meaningful field value
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise InvalidRecordError(index, field, "must be a string")
    text = str(value).strip()
    if not text:
        raise InvalidRecordError(index, field, "is empty")
    return text


class RecordValidator:
    """
    Parses plaintext into :class:`UserRecord` values.

    The whole batch is rejected on the first bad record; callers never see a
    partially validated batch.
    """

    def __init__(self, name_max: int = NAME_MAX, email_max: int = EMAIL_MAX, phone_max: int = PHONE_MAX):
        self.limits: Tuple[Tuple[str, int], ...] = (
            ("name", name_max),
            ("email", email_max),
            ("phone", phone_max),
        )

    def parse(self, plaintext: bytes) -> List[UserRecord]:
        """Decode ``plaintext`` as UTF-8 JSON and validate every record."""
        return self.validate(self.load(plaintext))

    @staticmethod
    def load(plaintext: bytes) -> Any:
        try:
            text = plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidJsonError("decrypted payload is not UTF-8 text") from None

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            excerpt = _excerpt(text)
            logger.debug("plaintext is not JSON (line %d, column %d)", e.lineno, e.colno)
            raise InvalidJsonError("decrypted payload is not valid JSON", excerpt=excerpt) from None
        return data

    def validate(self, data: Any) -> List[UserRecord]:
        if not isinstance(data, list):
            raise InvalidShapeError("decrypted payload must be a JSON array")
        if not data:
            raise InvalidShapeError("decrypted payload contains no records")

        records = [self._validate_one(raw, index) for index, raw in enumerate(data, start=1)]
        logger.info("validated %d records", len(records))
        return records

    def _validate_one(self, raw: Any, index: int) -> UserRecord:
        if not isinstance(raw, Mapping):
            raise InvalidRecordError(index, reason="is not an object")

        values = {field: _field_text(raw, field, index) for field in FIELD_KEYS}
        # limits apply to the normalised values that get forwarded
        values["email"] = values["email"].lower()
        for field, limit in self.limits:
            if len(values[field]) > limit:
                raise InvalidRecordError(index, field, f"exceeds {limit} characters")

        email = values["email"]
        if not EMAIL_RE.match(email):
            raise InvalidRecordError(index, "email", "is not a valid address")

        return UserRecord(name=values["name"], email=email, phone=values["phone"])
