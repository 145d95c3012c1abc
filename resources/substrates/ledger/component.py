"""Component declaration for the ledger substrate resource."""

from __future__ import annotations

from collections.abc import Mapping

from packages.uhrp_shared.config import UhrpSettings
from packages.uhrp_shared.manifest import (
    ComponentId,
    ResourceManifest,
    register_component,
)

RESOURCE_COMPONENT_ID = ComponentId("substrate_ledger")

MANIFEST = register_component(
    ResourceManifest(
        id=RESOURCE_COMPONENT_ID,
        system="state",
        kind="substrate",
        package="resources.substrates.ledger",
        owner=ComponentId("service_advertisement_authority"),
    )
)


def build_component(
    *, settings: UhrpSettings, components: Mapping[str, object]
) -> object:
    """Build the single per-process wallet-backed ledger client."""
    del components
    from resources.substrates.ledger.config import resolve_ledger_substrate_settings
    from resources.substrates.ledger.wallet_substrate import WalletLedgerSubstrate

    return WalletLedgerSubstrate(settings=resolve_ledger_substrate_settings(settings))
