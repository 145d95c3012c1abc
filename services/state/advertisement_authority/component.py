"""Component declaration for Advertisement Authority Service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.uhrp_shared.config import UhrpSettings
from packages.uhrp_shared.manifest import (
    ComponentId,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_advertisement_authority")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        system="state",
        package="services.state.advertisement_authority",
        owns=frozenset({ComponentId("substrate_ledger")}),
    )
)


def build_component(
    *, settings: UhrpSettings, components: Mapping[str, object]
) -> object:
    """Build concrete runtime instance for this registered service component."""
    from services.state.advertisement_authority.service import (
        build_advertisement_authority_service,
    )

    return build_advertisement_authority_service(
        settings=settings,
        ledger=components["substrate_ledger"],
        object_store=components["substrate_object_store"],
        pricing=components["adapter_pricing"],
    )
