"""Storage pricing adapter resource exports."""

from resources.adapters.pricing.adapter import (
    PricingAdapterError,
    StoragePricingAdapter,
    price_for_file,
)
from resources.adapters.pricing.component import MANIFEST, RESOURCE_COMPONENT_ID
from resources.adapters.pricing.config import (
    PricingAdapterSettings,
    resolve_pricing_adapter_settings,
)
from resources.adapters.pricing.exchange_rate_pricing import ExchangeRatePricingAdapter

__all__ = [
    "MANIFEST",
    "RESOURCE_COMPONENT_ID",
    "ExchangeRatePricingAdapter",
    "PricingAdapterError",
    "PricingAdapterSettings",
    "StoragePricingAdapter",
    "price_for_file",
    "resolve_pricing_adapter_settings",
]
