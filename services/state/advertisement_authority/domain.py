"""Domain contracts for Advertisement Authority Service payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AdvertisementRecord(BaseModel):
    """The structured fields committed to by one advertisement output."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host_identity: bytes
    content_hash: bytes
    url: str
    expiry_time: int = Field(ge=0)
    content_length: int = Field(ge=0)
    content_type: str | None = None


class IssueResult(BaseModel):
    """Outcome of issuing one new advertisement."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    transaction_id: str
    uhrp_url: str
    object_id: str
    expiry_time: int


class ResolvedAdvertisement(BaseModel):
    """Current advertisement for one content hash merged with backing metadata."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    object_id: str
    name: str
    # Decimal byte count, as storage metadata reports it.
    size: str
    content_type: str
    expiry_time: int


class ListedUpload(BaseModel):
    """One live advertisement of an uploader."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    uhrp_url: str
    expiry_time: int


class ListResult(BaseModel):
    """Live advertisements of one uploader in ledger scan order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    uploads: tuple[ListedUpload, ...]


class RenewalResult(BaseModel):
    """Expiry change and price of one completed renewal."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    prev_expiry_time: int
    new_expiry_time: int
    amount: int
    transaction_id: str


class ContentTypeResult(BaseModel):
    """MIME type chosen for serving one stored object."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    object_id: str
    content_type: str
    source: str
    local_path: str


class HealthStatus(BaseModel):
    """Service and owned dependency readiness status payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    ledger_ready: bool
    object_store_ready: bool
    detail: str
