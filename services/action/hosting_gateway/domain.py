"""Domain contracts for Hosting Gateway Service payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Quote(BaseModel):
    """Price in satoshis for hosting a file of a given size and duration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    amount: int


class UploadAuthorization(BaseModel):
    """Signed upload target handed to a paying client."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    upload_url: str
    required_headers: dict[str, str]
    amount: int
    object_id: str
    expiry_time: int


class AcceptedUpload(BaseModel):
    """Stored upload and, when advertised, the advertising transaction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    uhrp_url: str
    object_id: str
    expiry_time: int
    transaction_id: str | None = None


class HealthStatus(BaseModel):
    """Hosting Gateway readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    object_store_ready: bool
    detail: str
