"""Pydantic settings for Advertisement Authority Service behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from packages.uhrp_shared.config import UhrpSettings, resolve_component_settings
from services.state.advertisement_authority.component import SERVICE_COMPONENT_ID


class AdvertisementAuthoritySettings(BaseModel):
    """Ledger collection, query paging and renewal behavior."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    collection: str = "uhrp advertisements"
    topics: tuple[str, ...] = ("tm_uhrp",)
    output_satoshis: int = Field(default=1, gt=0)
    default_query_limit: int = Field(default=200, gt=0)
    max_query_limit: int = Field(default=1000, gt=0)
    retention_grace_seconds: int = Field(default=300, ge=0)
    content_type_cache_ttl_seconds: float = Field(default=300.0, gt=0)
    content_type_query_limit: int = Field(default=50, gt=0)
    admin_token: SecretStr = SecretStr("")

    @field_validator("collection")
    @classmethod
    def _validate_collection(cls, value: str) -> str:
        """Require a non-empty collection name."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError("collection is required")
        return normalized

    @field_validator("topics")
    @classmethod
    def _validate_topics(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Require at least one relay topic."""
        normalized = tuple(topic.strip() for topic in value if topic.strip())
        if len(normalized) == 0:
            raise ValueError("at least one topic is required")
        return normalized

    @model_validator(mode="after")
    def _validate_limits(self) -> "AdvertisementAuthoritySettings":
        if self.default_query_limit > self.max_query_limit:
            raise ValueError("default_query_limit must not exceed max_query_limit")
        return self


def resolve_advertisement_authority_settings(
    settings: UhrpSettings,
) -> AdvertisementAuthoritySettings:
    """Resolve settings from ``components.service.advertisement_authority``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=AdvertisementAuthoritySettings,
    )
