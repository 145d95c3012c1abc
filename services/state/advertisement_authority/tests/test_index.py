"""Unit tests for index candidates and winner selection."""

from __future__ import annotations

from typing import Sequence

import pytest

from resources.substrates.ledger import LedgerOutput
from services.state.advertisement_authority.index import (
    AdvertisementIndex,
    AttributeFilter,
    IndexCandidate,
    select_winner,
)
from services.state.advertisement_authority.labels import LabelKind, format_label


def _candidate(
    outpoint: str, *, expiry: int | None, object_id: str | None = "abc123"
) -> IndexCandidate:
    labels = []
    if object_id is not None:
        labels.append(format_label(LabelKind.OBJECT_ID, object_id))
    if expiry is not None:
        labels.append(format_label(LabelKind.EXPIRY_TIME, expiry))
    return IndexCandidate.from_output(
        LedgerOutput(outpoint=outpoint, satoshis=1, labels=tuple(labels))
    )


class _FakeLedger:
    def __init__(self) -> None:
        self.calls: list[dict[str, object]] = []

    def query_outputs(
        self,
        *,
        collection: str,
        labels: Sequence[str],
        match_all: bool = True,
        include_labels: bool = True,
        include_fields: bool = False,
        limit: int,
        offset: int,
    ) -> list[LedgerOutput]:
        self.calls.append(
            {
                "collection": collection,
                "labels": list(labels),
                "match_all": match_all,
                "include_fields": include_fields,
                "limit": limit,
                "offset": offset,
            }
        )
        return [LedgerOutput(outpoint="tx.0", satoshis=1, labels=("expiry_time_5",))]


def test_select_winner_picks_latest_expiry() -> None:
    winner = select_winner(
        [
            _candidate("a.0", expiry=100),
            _candidate("b.0", expiry=300),
            _candidate("c.0", expiry=200),
        ]
    )

    assert winner is not None
    assert winner.outpoint == "b.0"


def test_select_winner_breaks_ties_by_smallest_outpoint() -> None:
    forward = select_winner([_candidate("b.1", expiry=100), _candidate("a.9", expiry=100)])
    backward = select_winner([_candidate("a.9", expiry=100), _candidate("b.1", expiry=100)])

    assert forward is not None and backward is not None
    assert forward.outpoint == backward.outpoint == "a.9"


def test_select_winner_skips_incomplete_candidates() -> None:
    winner = select_winner(
        [
            _candidate("a.0", expiry=None),
            _candidate("b.0", expiry=999, object_id=None),
            _candidate("c.0", expiry=10),
        ]
    )

    assert winner is not None
    assert winner.outpoint == "c.0"
    assert select_winner([_candidate("a.0", expiry=None)]) is None
    assert select_winner([]) is None


def test_is_live_includes_the_expiry_second() -> None:
    candidate = _candidate("a.0", expiry=100)

    assert candidate.is_live(100) is True
    assert candidate.is_live(100.5) is False
    assert _candidate("b.0", expiry=None).is_live(0) is False


def test_query_passes_all_filters_as_labels() -> None:
    ledger = _FakeLedger()
    index = AdvertisementIndex(ledger=ledger, collection="uhrp advertisements")  # type: ignore[arg-type]

    result = index.query(
        [
            AttributeFilter(LabelKind.OBJECT_ID, "abc123"),
            AttributeFilter(LabelKind.EXPIRY_TIME, 5),
        ],
        limit=10,
        offset=20,
        include_fields=True,
    )

    assert ledger.calls == [
        {
            "collection": "uhrp advertisements",
            "labels": ["object_identifier_616263313233", "expiry_time_5"],
            "match_all": True,
            "include_fields": True,
            "limit": 10,
            "offset": 20,
        }
    ]
    assert result[0].expiry_time == 5


def test_query_requires_a_filter() -> None:
    index = AdvertisementIndex(ledger=_FakeLedger(), collection="c")  # type: ignore[arg-type]

    with pytest.raises(ValueError):
        index.query([], limit=1, offset=0)
