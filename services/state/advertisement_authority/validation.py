"""Pydantic request-validation models for Advertisement Authority Service API."""

from __future__ import annotations

import re

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from packages.uhrp_shared.uhrp_url import InvalidUhrpUrlError, canonical_url
from services.state.advertisement_authority import codes

_IDENTITY_KEY_RE = re.compile(r"^(02|03)[0-9a-f]{64}$")
_OBJECT_ID_RE = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]{0,127}$")
_MIME_RE = re.compile(r"^[a-z0-9][a-z0-9!#$&^_.+-]*/[a-z0-9][a-z0-9!#$&^_.+-]*$")

# Same ceiling the hosting gateway applies to a fresh upload.
MAX_ADDITIONAL_MINUTES = 69_000_000

# Field name -> client-facing error code for values that fail validation.
FIELD_ERROR_CODES: dict[str, str] = {
    "uhrp_url": codes.INVALID_UHRP_URL,
    "additional_minutes": codes.INVALID_TIME,
    "expiry_time": codes.INVALID_TIME,
    "uploader_identity_key": codes.MISSING_IDENTITY_KEY,
    "limit": codes.INVALID_PAGINATION,
    "offset": codes.INVALID_PAGINATION,
}


class _ValidationModel(BaseModel):
    """Base request model with strict shape semantics."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class _UploaderScoped(_ValidationModel):
    uploader_identity_key: str

    @field_validator("uploader_identity_key")
    @classmethod
    def _validate_identity_key(cls, value: str, info: ValidationInfo) -> str:
        """Require a compressed public key in hex."""
        normalized = value.strip().lower()
        if normalized == "":
            raise ValueError(f"{info.field_name} is required")
        if _IDENTITY_KEY_RE.fullmatch(normalized) is None:
            raise ValueError(f"{info.field_name} must be a compressed public key")
        return normalized


class _Paged(_UploaderScoped):
    limit: int = Field(gt=0)
    offset: int = Field(ge=0)


def _canonical_uhrp_url(value: str) -> str:
    try:
        return canonical_url(value)
    except InvalidUhrpUrlError as exc:
        raise ValueError(str(exc)) from None


class IssueRequest(_UploaderScoped):
    """Validated issue request shape."""

    uhrp_url: str
    object_id: str
    url: str
    expiry_time: int = Field(gt=0, le=2**64 - 1)
    content_length: int = Field(ge=0, le=2**64 - 1)
    content_type: str | None = None

    @field_validator("uhrp_url")
    @classmethod
    def _validate_uhrp_url(cls, value: str) -> str:
        return _canonical_uhrp_url(value)

    @field_validator("object_id")
    @classmethod
    def _validate_object_id(cls, value: str) -> str:
        normalized = value.strip()
        if _OBJECT_ID_RE.fullmatch(normalized) is None:
            raise ValueError("object_id must be 1-128 url-safe characters")
        return normalized

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized.startswith(("https://", "http://")):
            raise ValueError("url must be an http(s) URL")
        return normalized

    @field_validator("content_type")
    @classmethod
    def _validate_content_type(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.split(";", 1)[0].strip().lower()
        if normalized == "":
            return None
        if _MIME_RE.fullmatch(normalized) is None:
            raise ValueError("content_type must be a MIME type")
        return normalized


class FindRequest(_Paged):
    """Validated find request: exactly one of ``uhrp_url`` or ``object_id``."""

    uhrp_url: str | None = None
    object_id: str | None = None

    @field_validator("uhrp_url")
    @classmethod
    def _validate_uhrp_url(cls, value: str | None) -> str | None:
        if value is None or value.strip() == "":
            return None
        return _canonical_uhrp_url(value)

    @field_validator("object_id")
    @classmethod
    def _validate_object_id(cls, value: str | None) -> str | None:
        if value is None or value.strip() == "":
            return None
        normalized = value.strip()
        if _OBJECT_ID_RE.fullmatch(normalized) is None:
            raise ValueError("object_id must be 1-128 url-safe characters")
        return normalized

    @model_validator(mode="after")
    def _require_one_key(self) -> "FindRequest":
        if (self.uhrp_url is None) == (self.object_id is None):
            raise ValueError("exactly one of uhrp_url or object_id is required")
        return self


class ListRequest(_Paged):
    """Validated list request shape."""


class RenewRequest(_Paged):
    """Validated renew request shape."""

    uhrp_url: str
    additional_minutes: int = Field(gt=0, le=MAX_ADDITIONAL_MINUTES)

    @field_validator("uhrp_url")
    @classmethod
    def _validate_uhrp_url(cls, value: str) -> str:
        return _canonical_uhrp_url(value)


class ObjectIdRequest(_ValidationModel):
    """Validated request keyed by a backing object id."""

    object_id: str

    @field_validator("object_id")
    @classmethod
    def _validate_object_id(cls, value: str) -> str:
        normalized = value.strip()
        if _OBJECT_ID_RE.fullmatch(normalized) is None:
            raise ValueError("object_id must be 1-128 url-safe characters")
        return normalized
