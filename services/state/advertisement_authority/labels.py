"""Index label scheme for advertisement outputs.

Labels are ``<prefix><value>`` strings attached to each output. Text values
(UHRP URL, object id, content type) are hex-encoded UTF-8, numeric values are
decimal and the uploader identity key is carried as given (already hex). All
label formatting and parsing lives here; callers work with ``LabelKind`` and
typed values.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from packages.uhrp_shared.uhrp_url import url_for_hash
from services.state.advertisement_authority.domain import AdvertisementRecord


class LabelKind(str, Enum):
    """Queryable advertisement attributes."""

    UHRP_URL = "uhrp_url"
    OBJECT_ID = "object_identifier"
    UPLOADER_IDENTITY = "uploader_identity_key"
    EXPIRY_TIME = "expiry_time"
    CONTENT_TYPE = "content_type"
    CONTENT_LENGTH = "content_length"

    @property
    def prefix(self) -> str:
        return f"{self.value}_"


_HEX_TEXT = frozenset({LabelKind.UHRP_URL, LabelKind.OBJECT_ID, LabelKind.CONTENT_TYPE})
_DECIMAL = frozenset({LabelKind.EXPIRY_TIME, LabelKind.CONTENT_LENGTH})

# Longest prefix first so no prefix shadows another.
_PARSE_ORDER = sorted(LabelKind, key=lambda kind: len(kind.prefix), reverse=True)


@dataclass(frozen=True)
class ParsedLabel:
    """One label decoded back into its attribute and value."""

    kind: LabelKind
    value: str | int


def format_label(kind: LabelKind, value: str | int) -> str:
    """Render one attribute value as a label string."""
    if kind in _DECIMAL:
        number = int(value)
        if number < 0:
            raise ValueError(f"{kind.value} must be non-negative")
        return f"{kind.prefix}{number}"
    text = str(value)
    if text == "":
        raise ValueError(f"{kind.value} must be non-empty")
    if kind in _HEX_TEXT:
        return f"{kind.prefix}{text.encode('utf-8').hex()}"
    return f"{kind.prefix}{text}"


def parse_label(label: str) -> ParsedLabel | None:
    """Decode one label; unknown prefixes and bad values yield ``None``."""
    for kind in _PARSE_ORDER:
        if not label.startswith(kind.prefix):
            continue
        raw = label[len(kind.prefix) :]
        if raw == "":
            return None
        if kind in _DECIMAL:
            if not (raw.isascii() and raw.isdigit()):
                return None
            return ParsedLabel(kind=kind, value=int(raw))
        if kind in _HEX_TEXT:
            try:
                return ParsedLabel(kind=kind, value=bytes.fromhex(raw).decode("utf-8"))
            except (ValueError, UnicodeDecodeError):
                return None
        return ParsedLabel(kind=kind, value=raw)
    return None


def parse_labels(labels: Iterable[str]) -> dict[LabelKind, str | int]:
    """Collect the first recognised value per attribute from ``labels``."""
    parsed: dict[LabelKind, str | int] = {}
    for label in labels:
        item = parse_label(label)
        if item is not None and item.kind not in parsed:
            parsed[item.kind] = item.value
    return parsed


def labels_for(
    record: AdvertisementRecord,
    *,
    object_id: str,
    uploader_identity: str,
    content_type: str | None = None,
) -> tuple[str, ...]:
    """Return the deterministic label set for one advertisement output.

    ``content_type`` labels outputs whose fields do not carry one themselves.
    """
    labels = [
        format_label(LabelKind.UHRP_URL, url_for_hash(record.content_hash)),
        format_label(LabelKind.OBJECT_ID, object_id),
        format_label(LabelKind.UPLOADER_IDENTITY, uploader_identity),
        format_label(LabelKind.EXPIRY_TIME, record.expiry_time),
        format_label(LabelKind.CONTENT_LENGTH, record.content_length),
    ]
    mime = record.content_type or content_type
    if mime:
        labels.append(format_label(LabelKind.CONTENT_TYPE, mime))
    return tuple(labels)
