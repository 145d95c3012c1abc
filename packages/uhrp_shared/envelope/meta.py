"""Per-request metadata threaded through every component call.

Route handlers mint one ``EnvelopeMeta`` per HTTP request. ``principal`` holds
the identity key the authentication layer verified, or ``""`` on anonymous
routes such as ``/quote``. A service calling another on behalf of the same
request passes ``child_meta`` so logs and spans keep one trace id.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from packages.uhrp_shared.errors import ErrorDetail, validation_error


class EnvelopeKind(str, Enum):
    # Commands may write to the ledger or the object store; queries never do.
    COMMAND = "command"
    QUERY = "query"


@dataclass(frozen=True)
class EnvelopeMeta:
    envelope_id: str
    trace_id: str
    parent_id: str
    timestamp: datetime
    kind: EnvelopeKind
    source: str
    principal: str


_REQUIRED_FIELDS = ("envelope_id", "trace_id", "source")


def _new_id() -> str:
    return uuid4().hex


def new_meta(
    *,
    kind: EnvelopeKind,
    source: str,
    principal: str = "",
    trace_id: str | None = None,
    envelope_id: str | None = None,
    timestamp: datetime | None = None,
) -> EnvelopeMeta:
    """Mint metadata for a fresh request; ids are generated when omitted."""
    if timestamp is None:
        timestamp = datetime.now(UTC)
    elif timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return EnvelopeMeta(
        envelope_id=envelope_id or _new_id(),
        trace_id=trace_id or _new_id(),
        parent_id="",
        timestamp=timestamp.astimezone(UTC),
        kind=kind,
        source=source.strip(),
        principal=principal.strip(),
    )


def child_meta(parent: EnvelopeMeta, *, source: str) -> EnvelopeMeta:
    """Metadata for a downstream call made on behalf of ``parent``."""
    return replace(
        parent,
        envelope_id=_new_id(),
        parent_id=parent.envelope_id,
        timestamp=datetime.now(UTC),
        source=source,
    )


def validate_meta(meta: EnvelopeMeta) -> list[ErrorDetail]:
    """Reject metadata a route handler failed to fill in.

    ``principal`` is left to each operation: some routes are anonymous.
    """
    blank = [name for name in _REQUIRED_FIELDS if not getattr(meta, name).strip()]
    if not blank:
        return []
    return [
        validation_error(
            f"request metadata is missing {', '.join(blank)}",
            metadata={"fields": ",".join(blank)},
        )
    ]
