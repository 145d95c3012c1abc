"""Encode and decode advertisement records as PushDrop byte fields.

Field order: host identity key, content hash, url, expiry, content length and
an optional content type. Expiry and content length use the ledger's
CompactSize varint. Outputs may carry further trailing fields (the PushDrop
signature, for instance); decoding ignores anything it does not recognise
after the first five.
"""

from __future__ import annotations

import re
from typing import Sequence

from services.state.advertisement_authority.domain import AdvertisementRecord

IDENTITY_KEY_LENGTH = 33
CONTENT_HASH_LENGTH = 32
MIN_FIELD_COUNT = 5
MAX_VARINT = 2**64 - 1

_MIME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9!#$&^_.+-]*/[A-Za-z0-9][A-Za-z0-9!#$&^_.+-]*(\s*;.*)?$")


class MalformedRecordError(ValueError):
    """Raised when an output's fields do not decode to an advertisement."""


def encode_varint(value: int) -> bytes:
    """Encode an unsigned integer as a CompactSize varint."""
    if value < 0 or value > MAX_VARINT:
        raise ValueError(f"varint out of range: {value}")
    if value < 0xFD:
        return bytes((value,))
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def decode_varint(data: bytes) -> tuple[int, int]:
    """Decode a CompactSize varint, returning ``(value, bytes_consumed)``."""
    if len(data) == 0:
        raise MalformedRecordError("varint field is empty")
    marker = data[0]
    if marker < 0xFD:
        return marker, 1
    width = {0xFD: 2, 0xFE: 4, 0xFF: 8}[marker]
    if len(data) < 1 + width:
        raise MalformedRecordError("varint field is truncated")
    return int.from_bytes(data[1 : 1 + width], "little"), 1 + width


def encode_record(record: AdvertisementRecord) -> list[bytes]:
    """Return the ordered byte fields for ``record``."""
    if len(record.host_identity) != IDENTITY_KEY_LENGTH:
        raise ValueError(f"host identity must be {IDENTITY_KEY_LENGTH} bytes")
    if len(record.content_hash) != CONTENT_HASH_LENGTH:
        raise ValueError(f"content hash must be {CONTENT_HASH_LENGTH} bytes")
    fields = [
        record.host_identity,
        record.content_hash,
        record.url.encode("utf-8"),
        encode_varint(record.expiry_time),
        encode_varint(record.content_length),
    ]
    if record.content_type:
        fields.append(record.content_type.encode("utf-8"))
    return fields


def decode_record(fields: Sequence[bytes]) -> AdvertisementRecord:
    """Decode output fields into a record or raise ``MalformedRecordError``."""
    if len(fields) < MIN_FIELD_COUNT:
        raise MalformedRecordError(
            f"expected at least {MIN_FIELD_COUNT} fields, got {len(fields)}"
        )
    host_identity, content_hash, raw_url, raw_expiry, raw_length = (
        bytes(field) for field in fields[:MIN_FIELD_COUNT]
    )
    if len(host_identity) != IDENTITY_KEY_LENGTH:
        raise MalformedRecordError("host identity field has the wrong length")
    if len(content_hash) != CONTENT_HASH_LENGTH:
        raise MalformedRecordError("content hash field has the wrong length")
    try:
        url = raw_url.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedRecordError("url field is not UTF-8") from exc
    return AdvertisementRecord(
        host_identity=host_identity,
        content_hash=content_hash,
        url=url,
        expiry_time=_exact_varint(raw_expiry, "expiry"),
        content_length=_exact_varint(raw_length, "content length"),
        content_type=_optional_content_type(fields[MIN_FIELD_COUNT:]),
    )


def _exact_varint(field: bytes, name: str) -> int:
    value, consumed = decode_varint(field)
    if consumed != len(field):
        raise MalformedRecordError(f"{name} field has trailing bytes")
    return value


def _optional_content_type(extra: Sequence[bytes]) -> str | None:
    # A signature occupies this slot on outputs issued without a content type.
    if len(extra) == 0:
        return None
    try:
        candidate = bytes(extra[0]).decode("ascii")
    except UnicodeDecodeError:
        return None
    return candidate if _MIME_RE.fullmatch(candidate) else None
