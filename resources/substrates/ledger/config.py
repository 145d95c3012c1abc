"""Pydantic settings for the ledger substrate component."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.uhrp_shared.config import UhrpSettings, resolve_component_settings
from resources.substrates.ledger.component import RESOURCE_COMPONENT_ID


class LedgerSubstrateSettings(BaseModel):
    """Wallet endpoint, overlay relay hosts and the signing protocol tuple."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    wallet_url: str = "http://wallet:3321"
    overlay_urls: tuple[str, ...] = ("http://overlay:8080",)
    timeout_seconds: float = Field(default=30.0, gt=0)
    protocol_security_level: int = Field(default=2, ge=0, le=2)
    protocol_name: str = "uhrp advertisement"
    key_id: str = "1"
    counterparty: str = "anyone"

    @field_validator("wallet_url")
    @classmethod
    def _validate_wallet_url(cls, value: str) -> str:
        normalized = value.strip().rstrip("/")
        if normalized == "":
            raise ValueError("wallet_url is required")
        return normalized

    @field_validator("overlay_urls")
    @classmethod
    def _validate_overlay_urls(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        normalized = tuple(url.strip().rstrip("/") for url in value if url.strip())
        if len(normalized) == 0:
            raise ValueError("at least one overlay url is required")
        return normalized


def resolve_ledger_substrate_settings(settings: UhrpSettings) -> LedgerSubstrateSettings:
    """Resolve ledger settings from ``components.substrate.ledger``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(RESOURCE_COMPONENT_ID),
        model=LedgerSubstrateSettings,
    )
