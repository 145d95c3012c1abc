"""Storage pricing protocol and the pure price formula."""

from __future__ import annotations

import math
from typing import Protocol, runtime_checkable

SATOSHIS_PER_BSV = 100_000_000
BYTES_PER_GB = 1_000_000_000
MINUTES_PER_MONTH = 60 * 24 * 30


class PricingAdapterError(Exception):
    """Base exception for pricing failures."""


def price_for_file(
    *,
    size_bytes: int,
    retention_minutes: int,
    price_per_gb_month: float,
    usd_per_bsv: float,
    minimum_satoshis: int = 10,
) -> int:
    """Return the hosting price in satoshis.

    ``usd = GB * months * price_per_gb_month`` converted at ``usd_per_bsv``,
    floored, and never below ``minimum_satoshis``.
    """
    if size_bytes < 0 or retention_minutes < 0:
        raise PricingAdapterError("size and retention must be non-negative")
    if price_per_gb_month <= 0 or usd_per_bsv <= 0:
        raise PricingAdapterError("price and exchange rate must be positive")

    size_gb = size_bytes / BYTES_PER_GB
    months = retention_minutes / MINUTES_PER_MONTH
    price_usd = size_gb * months * price_per_gb_month
    satoshis_per_usd = 1 / (usd_per_bsv / SATOSHIS_PER_BSV)
    return max(minimum_satoshis, math.floor(price_usd * satoshis_per_usd))


@runtime_checkable
class StoragePricingAdapter(Protocol):
    """``price(size, minutes) -> satoshis`` as consumed by services."""

    def price(self, *, size_bytes: int, retention_minutes: int) -> int:
        """Return the satoshi price for hosting ``size_bytes`` for ``retention_minutes``."""
