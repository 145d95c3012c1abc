"""Typed secondary index over labelled advertisement outputs.

Queries are AND-combinations of exact attribute matches. Range checks such as
"not yet expired" and the max-expiry winner are evaluated here, client side,
over the returned batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from resources.substrates.ledger import LedgerOutput, LedgerSubstrate
from services.state.advertisement_authority.labels import (
    LabelKind,
    format_label,
    parse_labels,
)


@dataclass(frozen=True)
class AttributeFilter:
    """Exact-match condition on one indexed attribute."""

    kind: LabelKind
    value: str | int

    def label(self) -> str:
        return format_label(self.kind, self.value)


@dataclass(frozen=True)
class IndexCandidate:
    """One output as seen through the index."""

    outpoint: str
    labels: tuple[str, ...]
    fields: tuple[bytes, ...] | None
    uhrp_url: str | None
    object_id: str | None
    uploader_identity: str | None
    expiry_time: int | None
    content_type: str | None
    content_length: int | None

    @classmethod
    def from_output(cls, output: LedgerOutput) -> "IndexCandidate":
        parsed = parse_labels(output.labels)
        return cls(
            outpoint=output.outpoint,
            labels=output.labels,
            fields=output.fields,
            uhrp_url=_text(parsed.get(LabelKind.UHRP_URL)),
            object_id=_text(parsed.get(LabelKind.OBJECT_ID)),
            uploader_identity=_text(parsed.get(LabelKind.UPLOADER_IDENTITY)),
            expiry_time=_number(parsed.get(LabelKind.EXPIRY_TIME)),
            content_type=_text(parsed.get(LabelKind.CONTENT_TYPE)),
            content_length=_number(parsed.get(LabelKind.CONTENT_LENGTH)),
        )

    def is_live(self, now: float) -> bool:
        return self.expiry_time is not None and now <= self.expiry_time


class AdvertisementIndex:
    """Query advertisement outputs in one ledger collection by attribute."""

    def __init__(self, *, ledger: LedgerSubstrate, collection: str) -> None:
        self._ledger = ledger
        self._collection = collection

    def query(
        self,
        filters: Sequence[AttributeFilter],
        *,
        limit: int,
        offset: int,
        include_fields: bool = False,
    ) -> list[IndexCandidate]:
        """Return candidates matching every filter, in ledger scan order."""
        if len(filters) == 0:
            raise ValueError("at least one attribute filter is required")
        outputs = self._ledger.query_outputs(
            collection=self._collection,
            labels=[item.label() for item in filters],
            match_all=True,
            include_labels=True,
            include_fields=include_fields,
            limit=limit,
            offset=offset,
        )
        return [IndexCandidate.from_output(output) for output in outputs]


def select_winner(candidates: Iterable[IndexCandidate]) -> IndexCandidate | None:
    """Pick the candidate with the greatest expiry.

    Candidates without an object id or expiry are skipped. Equal expiries go to
    the lexicographically smallest outpoint so the choice never depends on
    scan order.
    """
    winner: IndexCandidate | None = None
    for candidate in candidates:
        if candidate.object_id is None or candidate.expiry_time is None:
            continue
        if winner is None or _outranks(candidate, winner):
            winner = candidate
    return winner


def _outranks(candidate: IndexCandidate, current: IndexCandidate) -> bool:
    assert candidate.expiry_time is not None and current.expiry_time is not None
    if candidate.expiry_time != current.expiry_time:
        return candidate.expiry_time > current.expiry_time
    return candidate.outpoint < current.outpoint


def _text(value: str | int | None) -> str | None:
    return value if isinstance(value, str) else None


def _number(value: str | int | None) -> int | None:
    return value if isinstance(value, int) else None
