"""Local-disk object store with atomic writes and HMAC-signed upload URLs."""

from __future__ import annotations

import hashlib
import hmac
import os
import re
from datetime import UTC, datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Mapping
from urllib.parse import urlencode

from pydantic import ValidationError

from packages.uhrp_shared.logging import get_logger, public_api_instrumented
from resources.substrates.object_store.component import RESOURCE_COMPONENT_ID
from resources.substrates.object_store.config import ObjectStoreSubstrateSettings
from resources.substrates.object_store.substrate import (
    InvalidUploadSignatureError,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    ObjectStoreHealthStatus,
    ObjectStoreSubstrate,
    SignedUpload,
    StoredObjectMetadata,
    UploadGrant,
)

_LOGGER = get_logger(__name__)
_OBJECT_PATH_RE = re.compile(r"^cdn/[A-Za-z0-9_-][A-Za-z0-9._-]{0,127}$")
_METADATA_DIR = ".meta"
_SIGNED_FIELDS = ("fileSize", "objectID", "expiry", "uploader")


class LocalObjectStoreSubstrate(ObjectStoreSubstrate):
    """Keep object bytes under ``root_dir`` and JSON metadata under ``.meta``."""

    def __init__(self, *, settings: ObjectStoreSubstrateSettings) -> None:
        self._settings = settings
        self._root = settings.root_path()
        self._secret = settings.upload_signing_secret.get_secret_value().encode("utf-8")

    def health(self) -> ObjectStoreHealthStatus:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return ObjectStoreHealthStatus(
                ready=False,
                detail=f"object store health check failed: {type(exc).__name__}",
            )
        if not self._root.is_dir():
            return ObjectStoreHealthStatus(
                ready=False, detail=f"root path is not a directory: {self._root}"
            )
        return ObjectStoreHealthStatus(ready=True, detail="ok")

    def resolve_path(self, *, object_path: str) -> Path:
        return self._root / _validate_object_path(object_path)

    def exists(self, *, object_path: str) -> bool:
        return self.resolve_path(object_path=object_path).is_file()

    def public_url(self, *, object_path: str) -> str:
        return f"{self._settings.public_base_url()}/{_validate_object_path(object_path)}"

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(RESOURCE_COMPONENT_ID),
        id_fields=("object_path",),
    )
    def get_metadata(self, *, object_path: str) -> StoredObjectMetadata:
        metadata_path = self._metadata_path(object_path)
        if not self.exists(object_path=object_path) or not metadata_path.is_file():
            raise ObjectNotFoundError(f"no object stored at {object_path}")
        try:
            return StoredObjectMetadata.model_validate_json(metadata_path.read_bytes())
        except ValidationError as exc:
            raise ObjectNotFoundError(
                f"metadata for {object_path} is unreadable"
            ) from exc

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(RESOURCE_COMPONENT_ID),
        id_fields=("object_path",),
    )
    def set_custom_time(self, *, object_path: str, custom_time: datetime) -> None:
        current = self.get_metadata(object_path=object_path)
        updated = current.model_copy(update={"custom_time": _as_utc(custom_time)})
        self._atomic_write(
            self._metadata_path(object_path), updated.model_dump_json().encode("utf-8")
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(RESOURCE_COMPONENT_ID),
        id_fields=("object_path",),
    )
    def write_object(
        self,
        *,
        object_path: str,
        content: bytes,
        content_type: str,
        uploader_identity_key: str,
        custom_time: datetime | None,
    ) -> StoredObjectMetadata:
        path = self.resolve_path(object_path=object_path)
        if path.exists():
            raise ObjectAlreadyExistsError(f"object already exists at {object_path}")

        metadata = StoredObjectMetadata(
            name=object_path,
            size=len(content),
            content_type=content_type,
            uploader_identity_key=uploader_identity_key,
            custom_time=None if custom_time is None else _as_utc(custom_time),
        )
        self._atomic_write(
            self._metadata_path(object_path), metadata.model_dump_json().encode("utf-8")
        )
        self._atomic_write(path, content)
        return metadata

    def read_head(self, *, object_path: str, length: int) -> bytes:
        path = self.resolve_path(object_path=object_path)
        if not path.is_file():
            raise ObjectNotFoundError(f"no object stored at {object_path}")
        with path.open("rb") as handle:
            return handle.read(length)

    def signed_upload_url(
        self,
        *,
        object_id: str,
        size_bytes: int,
        custom_time: datetime,
        uploader_identity_key: str,
    ) -> SignedUpload:
        _validate_object_path(f"cdn/{object_id}")
        params = {
            "fileSize": str(size_bytes),
            "objectID": object_id,
            "expiry": _as_utc(custom_time).isoformat(),
            "uploader": uploader_identity_key,
        }
        query = urlencode([(name, params[name]) for name in _SIGNED_FIELDS])
        signature = self._sign(params)
        return SignedUpload(
            upload_url=f"{self._settings.public_base_url()}/put?{query}&hmac={signature}",
            required_headers={"content-length": str(size_bytes)},
        )

    def verify_upload(self, *, params: Mapping[str, str]) -> UploadGrant:
        missing = [name for name in (*_SIGNED_FIELDS, "hmac") if not params.get(name)]
        if missing:
            raise InvalidUploadSignatureError(
                f"missing upload parameters: {', '.join(missing)}"
            )
        if not hmac.compare_digest(self._sign(params), str(params["hmac"])):
            raise InvalidUploadSignatureError("upload signature does not match")
        try:
            return UploadGrant(
                object_id=params["objectID"],
                size_bytes=int(params["fileSize"]),
                custom_time=datetime.fromisoformat(params["expiry"]),
                uploader_identity_key=params["uploader"],
            )
        except (ValueError, ValidationError) as exc:
            raise InvalidUploadSignatureError("upload parameters are malformed") from exc

    def _sign(self, params: Mapping[str, str]) -> str:
        message = urlencode([(name, str(params[name])) for name in _SIGNED_FIELDS])
        return hmac.new(self._secret, message.encode("utf-8"), hashlib.sha256).hexdigest()

    def _metadata_path(self, object_path: str) -> Path:
        return self._root / _METADATA_DIR / f"{_validate_object_path(object_path)}.json"

    def _atomic_write(self, path: Path, content: bytes) -> None:
        """Write via a sibling temp file and ``os.replace``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="wb",
                prefix=f".{self._settings.temp_prefix}-",
                suffix=".tmp",
                dir=path.parent,
                delete=False,
            ) as handle:
                tmp_path = Path(handle.name)
                handle.write(content)
                handle.flush()
                if self._settings.fsync_writes:
                    os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink(missing_ok=True)


def _validate_object_path(object_path: str) -> str:
    normalized = object_path.strip().lstrip("/")
    if not _OBJECT_PATH_RE.fullmatch(normalized):
        raise ValueError(f"invalid object path: {object_path!r}")
    return normalized


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
