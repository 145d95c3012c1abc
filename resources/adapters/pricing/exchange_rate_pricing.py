"""Pricing adapter that converts USD prices at a live BSV exchange rate."""

from __future__ import annotations

import math

from packages.uhrp_shared.http import HttpClient, UpstreamError
from packages.uhrp_shared.logging import get_logger, public_api_instrumented
from resources.adapters.pricing.adapter import StoragePricingAdapter, price_for_file
from resources.adapters.pricing.component import RESOURCE_COMPONENT_ID
from resources.adapters.pricing.config import PricingAdapterSettings

_LOGGER = get_logger(__name__)


class ExchangeRatePricingAdapter(StoragePricingAdapter):
    """Fetch USD/BSV per quote; fall back to a fixed rate when the feed fails."""

    def __init__(
        self, *, settings: PricingAdapterSettings, client: HttpClient | None = None
    ) -> None:
        self._settings = settings
        self._client = client or HttpClient(timeout_seconds=settings.timeout_seconds)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(RESOURCE_COMPONENT_ID),
        id_fields=("size_bytes", "retention_minutes"),
    )
    def price(self, *, size_bytes: int, retention_minutes: int) -> int:
        return price_for_file(
            size_bytes=size_bytes,
            retention_minutes=retention_minutes,
            price_per_gb_month=self._settings.price_per_gb_month,
            usd_per_bsv=self.usd_per_bsv(),
            minimum_satoshis=self._settings.minimum_price_satoshis,
        )

    def usd_per_bsv(self) -> float:
        """Return the current rate, or the configured fallback on any failure."""
        try:
            payload = self._client.get_object(self._settings.exchange_rate_url)
            rate = float(payload["rate"])
        except (UpstreamError, KeyError, TypeError, ValueError) as exc:
            _LOGGER.warning(
                "exchange rate unavailable; using fallback",
                extra={
                    "fallback_usd_per_bsv": self._settings.fallback_usd_per_bsv,
                    "error": type(exc).__name__,
                },
            )
            return self._settings.fallback_usd_per_bsv
        if not math.isfinite(rate) or rate <= 0:
            _LOGGER.warning(
                "exchange rate not a positive finite number; using fallback",
                extra={"rate": str(rate)},
            )
            return self._settings.fallback_usd_per_bsv
        return rate

    def close(self) -> None:
        self._client.close()
