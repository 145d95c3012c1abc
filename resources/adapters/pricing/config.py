"""Pydantic settings for the storage pricing adapter."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from packages.uhrp_shared.config import UhrpSettings, resolve_component_settings
from resources.adapters.pricing.component import RESOURCE_COMPONENT_ID


class PricingAdapterSettings(BaseModel):
    """Hosting price and exchange-rate source."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    price_per_gb_month: float = Field(default=0.03, gt=0)
    exchange_rate_url: str = "https://api.whatsonchain.com/v1/bsv/main/exchangerate"
    fallback_usd_per_bsv: float = Field(default=30.0, gt=0)
    minimum_price_satoshis: int = Field(default=10, ge=0)
    timeout_seconds: float = Field(default=5.0, gt=0)


def resolve_pricing_adapter_settings(settings: UhrpSettings) -> PricingAdapterSettings:
    """Resolve pricing settings from ``components.adapter.pricing``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(RESOURCE_COMPONENT_ID),
        model=PricingAdapterSettings,
    )
