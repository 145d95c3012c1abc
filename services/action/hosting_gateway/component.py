"""Component declaration for Hosting Gateway Service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.uhrp_shared.config import UhrpSettings
from packages.uhrp_shared.manifest import (
    ComponentId,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_hosting_gateway")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        system="action",
        package="services.action.hosting_gateway",
    )
)


def build_component(
    *, settings: UhrpSettings, components: Mapping[str, object]
) -> object:
    """Build concrete runtime instance for this registered service component."""
    from services.action.hosting_gateway.service import build_hosting_gateway_service
    from services.state.advertisement_authority.service import (
        AdvertisementAuthorityService,
    )

    advertisements = components.get("service_advertisement_authority")
    if not isinstance(advertisements, AdvertisementAuthorityService):
        raise KeyError("service_advertisement_authority")

    return build_hosting_gateway_service(
        settings=settings,
        advertisements=advertisements,
        object_store=components["substrate_object_store"],
        pricing=components["adapter_pricing"],
    )
