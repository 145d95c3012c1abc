"""Pydantic settings for the object store substrate component."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, SecretStr, field_validator

from packages.uhrp_shared.config import UhrpSettings, resolve_component_settings
from resources.substrates.object_store.component import RESOURCE_COMPONENT_ID


class ObjectStoreSubstrateSettings(BaseModel):
    """Where object bytes live and how upload URLs are signed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    root_dir: str = "./var/objects"
    hosting_domain: str = "localhost:8080"
    upload_signing_secret: SecretStr = SecretStr("replace-me")
    temp_prefix: str = "objtmp"
    fsync_writes: bool = True

    @field_validator("root_dir", "hosting_domain", "temp_prefix")
    @classmethod
    def _require_non_empty(cls, value: str) -> str:
        normalized = value.strip()
        if normalized == "":
            raise ValueError("value must be non-empty")
        return normalized

    @field_validator("upload_signing_secret")
    @classmethod
    def _require_secret(cls, value: SecretStr) -> SecretStr:
        if value.get_secret_value().strip() == "":
            raise ValueError("upload_signing_secret must be non-empty")
        return value

    def root_path(self) -> Path:
        """Return the expanded root path for object bytes and metadata."""
        return Path(self.root_dir).expanduser().resolve()

    def public_base_url(self) -> str:
        """Return ``scheme://domain``; plain HTTP only for localhost."""
        scheme = "http" if self.hosting_domain.startswith("localhost") else "https"
        return f"{scheme}://{self.hosting_domain}"


def resolve_object_store_substrate_settings(
    settings: UhrpSettings,
) -> ObjectStoreSubstrateSettings:
    """Resolve object store settings from ``components.substrate.object_store``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(RESOURCE_COMPONENT_ID),
        model=ObjectStoreSubstrateSettings,
    )
