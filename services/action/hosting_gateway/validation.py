"""Pydantic request-validation models for Hosting Gateway Service API."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.action.hosting_gateway import codes

_IDENTITY_KEY_RE = re.compile(r"^(02|03)[0-9a-f]{64}$")
_MIME_RE = re.compile(r"^[a-z0-9][a-z0-9!#$&^_.+-]*/[a-z0-9][a-z0-9!#$&^_.+-]*$")

OCTET_STREAM = "application/octet-stream"

# Field name -> (code when absent, code when invalid).
FIELD_ERROR_CODES: dict[str, tuple[str, str]] = {
    "file_size": (codes.NO_SIZE, codes.INVALID_SIZE),
    "retention_minutes": (codes.NO_RETENTION_PERIOD, codes.INVALID_RETENTION_PERIOD),
    "uploader_identity_key": (codes.MISSING_IDENTITY_KEY, codes.MISSING_IDENTITY_KEY),
}


class _ValidationModel(BaseModel):
    """Base request model with strict shape semantics."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class QuoteRequest(_ValidationModel):
    """Validated quote request shape."""

    file_size: int = Field(gt=0)
    retention_minutes: int = Field(gt=0)


class UploadRequest(QuoteRequest):
    """Validated upload authorization request shape."""

    uploader_identity_key: str

    @field_validator("uploader_identity_key")
    @classmethod
    def _validate_identity_key(cls, value: str) -> str:
        normalized = value.strip().lower()
        if _IDENTITY_KEY_RE.fullmatch(normalized) is None:
            raise ValueError("uploader_identity_key must be a compressed public key")
        return normalized


def normalize_content_type(value: str | None) -> str:
    """Return the bare lower-case MIME type, or octet-stream when unusable."""
    if value is None:
        return OCTET_STREAM
    normalized = value.split(";", 1)[0].strip().lower()
    if _MIME_RE.fullmatch(normalized) is None:
        return OCTET_STREAM
    return normalized
