"""Ledger substrate protocol, DTOs and exceptions.

The ledger stores advertisements as outputs. Each output carries an ordered
list of byte fields, a value in satoshis and a set of opaque labels. Labels
are the only query mechanism: ``query_outputs`` matches them exactly, AND-ed
together by default. Signing, transaction construction and field decoding are
performed by the wallet; this protocol only sees their results.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from pydantic import BaseModel, ConfigDict


class LedgerError(Exception):
    """Base exception for ledger substrate failures."""


class LedgerDependencyError(LedgerError):
    """Wallet unreachable, timed out or answered with an unexpected payload."""


class SpendConflictError(LedgerError):
    """The output to spend is already spent or no longer spendable."""


class SpendAuthorizationError(LedgerError):
    """The wallet refused to authorize (sign) the spend."""


class LedgerRelayError(LedgerError):
    """No overlay host accepted the transaction."""


class LedgerOutput(BaseModel):
    """One unspent output as returned by a query.

    ``fields`` is ``None`` unless the query asked for field data.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    outpoint: str
    satoshis: int
    labels: tuple[str, ...] = ()
    fields: tuple[bytes, ...] | None = None


class LedgerTransaction(BaseModel):
    """A signed transaction produced by ``create_output`` or ``spend_and_create``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    txid: str
    raw: bytes


class LedgerHealthStatus(BaseModel):
    """Ledger substrate readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


class LedgerSubstrate(Protocol):
    """Protocol for label-indexed output storage on the ledger."""

    def identity_key(self) -> str:
        """Return the host's compressed public identity key as hex."""

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
        """Return unspent outputs in ``collection`` matching ``labels``."""

    def create_output(
        self,
        *,
        collection: str,
        fields: Sequence[bytes],
        labels: Sequence[str],
        satoshis: int,
        description: str,
    ) -> LedgerTransaction:
        """Create and sign one new output."""

    def spend_and_create(
        self,
        *,
        collection: str,
        outpoint: str,
        fields: Sequence[bytes],
        labels: Sequence[str],
        satoshis: int,
        description: str,
    ) -> LedgerTransaction:
        """Spend ``outpoint`` and create its replacement in one transaction.

        Either both happen or neither does. Raises ``SpendConflictError`` when
        the output is no longer spendable and ``SpendAuthorizationError`` when
        signing is refused.
        """

    def relay(self, *, transaction: LedgerTransaction, topics: Sequence[str]) -> None:
        """Submit ``transaction`` to overlay hosts tracking ``topics``."""

    def health(self) -> LedgerHealthStatus:
        """Probe wallet reachability."""

    def close(self) -> None:
        """Release network resources."""
