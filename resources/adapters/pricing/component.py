"""Component declaration for the storage pricing adapter resource."""

from __future__ import annotations

from collections.abc import Mapping

from packages.uhrp_shared.config import UhrpSettings
from packages.uhrp_shared.manifest import (
    ComponentId,
    ResourceManifest,
    register_component,
)

RESOURCE_COMPONENT_ID = ComponentId("adapter_pricing")

MANIFEST = register_component(
    ResourceManifest(
        id=RESOURCE_COMPONENT_ID,
        system="action",
        kind="adapter",
        package="resources.adapters.pricing",
    )
)


def build_component(
    *, settings: UhrpSettings, components: Mapping[str, object]
) -> object:
    """Build the exchange-rate-backed pricing adapter."""
    del components
    from resources.adapters.pricing.config import resolve_pricing_adapter_settings
    from resources.adapters.pricing.exchange_rate_pricing import (
        ExchangeRatePricingAdapter,
    )

    return ExchangeRatePricingAdapter(settings=resolve_pricing_adapter_settings(settings))
