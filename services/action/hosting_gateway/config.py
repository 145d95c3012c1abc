"""Pydantic settings for Hosting Gateway Service behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from packages.uhrp_shared.config import UhrpSettings, resolve_component_settings
from services.action.hosting_gateway.component import SERVICE_COMPONENT_ID


class HostingGatewaySettings(BaseModel):
    """Hosting limits and upload advertisement behavior."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_hosting_minutes: int = Field(default=0, ge=0)
    max_hosting_minutes: int = Field(default=69_000_000, gt=0)
    max_file_size_bytes: int = Field(default=11_000_000_000, gt=0)
    retention_grace_seconds: int = Field(default=300, ge=0)
    advertise_on_localhost: bool = False

    @model_validator(mode="after")
    def _validate_hosting_window(self) -> "HostingGatewaySettings":
        if self.min_hosting_minutes > self.max_hosting_minutes:
            raise ValueError("min_hosting_minutes must not exceed max_hosting_minutes")
        return self


def resolve_hosting_gateway_settings(settings: UhrpSettings) -> HostingGatewaySettings:
    """Resolve settings from ``components.service.hosting_gateway``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=HostingGatewaySettings,
    )
