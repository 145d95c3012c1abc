"""Ledger substrate resource exports."""

from resources.substrates.ledger.component import MANIFEST, RESOURCE_COMPONENT_ID
from resources.substrates.ledger.config import (
    LedgerSubstrateSettings,
    resolve_ledger_substrate_settings,
)
from resources.substrates.ledger.substrate import (
    LedgerDependencyError,
    LedgerError,
    LedgerHealthStatus,
    LedgerOutput,
    LedgerRelayError,
    LedgerSubstrate,
    LedgerTransaction,
    SpendAuthorizationError,
    SpendConflictError,
)
from resources.substrates.ledger.wallet_substrate import WalletLedgerSubstrate

__all__ = [
    "MANIFEST",
    "RESOURCE_COMPONENT_ID",
    "LedgerDependencyError",
    "LedgerError",
    "LedgerHealthStatus",
    "LedgerOutput",
    "LedgerRelayError",
    "LedgerSubstrate",
    "LedgerSubstrateSettings",
    "LedgerTransaction",
    "SpendAuthorizationError",
    "SpendConflictError",
    "WalletLedgerSubstrate",
    "resolve_ledger_substrate_settings",
]
