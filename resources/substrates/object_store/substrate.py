"""Backing object store protocol and DTOs.

Objects live at ``cdn/{objectId}``. Besides the bytes, the store keeps a small
metadata record per object: original name, size, content type, the uploader's
identity key and a ``custom_time`` retention marker that lifecycle rules use
to decide when bytes may be purged.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Mapping, Protocol

from pydantic import BaseModel, ConfigDict


class ObjectStoreError(Exception):
    """Base exception for object store failures."""


class ObjectNotFoundError(ObjectStoreError):
    """No object (or no metadata) exists at the requested path."""


class ObjectAlreadyExistsError(ObjectStoreError):
    """An object already occupies the requested path."""


class InvalidUploadSignatureError(ObjectStoreError):
    """Upload parameters are missing or do not match their signature."""


class StoredObjectMetadata(BaseModel):
    """Metadata record kept beside each stored object."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    size: int
    content_type: str
    uploader_identity_key: str = ""
    custom_time: datetime | None = None


class SignedUpload(BaseModel):
    """Pre-authorized upload target handed to a client."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    upload_url: str
    required_headers: dict[str, str]


class UploadGrant(BaseModel):
    """Verified parameters recovered from a signed upload request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    object_id: str
    size_bytes: int
    custom_time: datetime
    uploader_identity_key: str


class ObjectStoreHealthStatus(BaseModel):
    """Object store readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


class ObjectStoreSubstrate(Protocol):
    """Protocol for object bytes, metadata and signed uploads."""

    def health(self) -> ObjectStoreHealthStatus:
        """Probe store readiness."""

    def exists(self, *, object_path: str) -> bool:
        """Return whether bytes exist at ``object_path``."""

    def resolve_path(self, *, object_path: str) -> Path:
        """Return the local file serving ``object_path``."""

    def public_url(self, *, object_path: str) -> str:
        """Return the public URL clients fetch ``object_path`` from."""

    def get_metadata(self, *, object_path: str) -> StoredObjectMetadata:
        """Return metadata; raise ``ObjectNotFoundError`` when absent."""

    def set_custom_time(self, *, object_path: str, custom_time: datetime) -> None:
        """Update the retention marker; idempotent."""

    def write_object(
        self,
        *,
        object_path: str,
        content: bytes,
        content_type: str,
        uploader_identity_key: str,
        custom_time: datetime | None,
    ) -> StoredObjectMetadata:
        """Store bytes and metadata; raise ``ObjectAlreadyExistsError`` if taken."""

    def read_head(self, *, object_path: str, length: int) -> bytes:
        """Return up to ``length`` leading bytes of the object."""

    def signed_upload_url(
        self,
        *,
        object_id: str,
        size_bytes: int,
        custom_time: datetime,
        uploader_identity_key: str,
    ) -> SignedUpload:
        """Return a signed upload URL for ``cdn/{object_id}``."""

    def verify_upload(self, *, params: Mapping[str, str]) -> UploadGrant:
        """Verify signed upload query parameters and return the grant."""
