"""Concrete Hosting Gateway Service implementation."""

from __future__ import annotations

import secrets
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Callable
from urllib.parse import urlsplit

import base58
from pydantic import BaseModel, ValidationError

from packages.uhrp_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    child_meta,
    failure,
    success,
    validate_meta,
)
from packages.uhrp_shared.errors import (
    ErrorDetail,
    conflict_error,
    internal_error,
    policy_error,
    validation_error,
)
from packages.uhrp_shared.errors import codes as shared_codes
from packages.uhrp_shared.logging import get_logger, public_api_instrumented
from packages.uhrp_shared.uhrp_url import url_for_content
from resources.adapters.pricing import StoragePricingAdapter
from resources.substrates.object_store import (
    InvalidUploadSignatureError,
    ObjectAlreadyExistsError,
    ObjectStoreSubstrate,
)
from services.action.hosting_gateway import codes
from services.action.hosting_gateway.component import SERVICE_COMPONENT_ID
from services.action.hosting_gateway.config import HostingGatewaySettings
from services.action.hosting_gateway.domain import (
    AcceptedUpload,
    HealthStatus,
    Quote,
    UploadAuthorization,
)
from services.action.hosting_gateway.service import HostingGatewayService
from services.action.hosting_gateway.validation import (
    FIELD_ERROR_CODES,
    QuoteRequest,
    UploadRequest,
    normalize_content_type,
)
from services.state.advertisement_authority.service import (
    AdvertisementAuthorityService,
)

_LOGGER = get_logger(__name__)
_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def mint_object_id() -> str:
    """Return a fresh object id: base58 of 16 random bytes."""
    return base58.b58encode(secrets.token_bytes(16)).decode("ascii")


class DefaultHostingGatewayService(HostingGatewayService):
    """Hosting gateway over the object store, pricing and advertisement authority."""

    def __init__(
        self,
        *,
        settings: HostingGatewaySettings,
        advertisements: AdvertisementAuthorityService,
        object_store: ObjectStoreSubstrate,
        pricing: StoragePricingAdapter,
        clock: Callable[[], float] | None = None,
        object_ids: Callable[[], str] = mint_object_id,
    ) -> None:
        self._settings = settings
        self._advertisements = advertisements
        self._object_store = object_store
        self._pricing = pricing
        self._clock = clock or time.time
        self._object_ids = object_ids

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def quote(
        self,
        *,
        meta: EnvelopeMeta,
        file_size: object,
        retention_minutes: object,
    ) -> Envelope[Quote]:
        """Price hosting ``file_size`` bytes for ``retention_minutes`` minutes."""
        request, errors = self._validate_request(
            meta=meta,
            model=QuoteRequest,
            payload={"file_size": file_size, "retention_minutes": retention_minutes},
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, QuoteRequest)

        try:
            amount = self._pricing.price(
                size_bytes=request.file_size,
                retention_minutes=request.retention_minutes,
            )
        except Exception as exc:  # noqa: BLE001
            return self._internal_failure(
                meta=meta, operation="quote", exc=exc, code=codes.INTERNAL
            )
        return success(meta=meta, payload=Quote(amount=amount))

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def authorize_upload(
        self,
        *,
        meta: EnvelopeMeta,
        uploader_identity_key: str,
        file_size: object,
        retention_minutes: object,
    ) -> Envelope[UploadAuthorization]:
        """Mint an object id and a signed upload URL for one paid upload."""
        request, errors = self._validate_request(
            meta=meta,
            model=UploadRequest,
            payload={
                "uploader_identity_key": uploader_identity_key,
                "file_size": file_size,
                "retention_minutes": retention_minutes,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, UploadRequest)
        if request.file_size > self._settings.max_file_size_bytes:
            return failure(
                meta=meta,
                errors=[
                    validation_error(
                        "Max supported file size is "
                        f"{self._settings.max_file_size_bytes} bytes.",
                        code=codes.INVALID_SIZE,
                    )
                ],
            )

        try:
            amount = self._pricing.price(
                size_bytes=request.file_size,
                retention_minutes=request.retention_minutes,
            )
            object_id = self._object_ids()
            expiry_time = int(self._clock()) + request.retention_minutes * 60
            signed = self._object_store.signed_upload_url(
                object_id=object_id,
                size_bytes=request.file_size,
                custom_time=datetime.fromtimestamp(
                    expiry_time + self._settings.retention_grace_seconds, tz=UTC
                ),
                uploader_identity_key=request.uploader_identity_key,
            )
        except Exception as exc:  # noqa: BLE001
            return self._internal_failure(
                meta=meta,
                operation="authorize_upload",
                exc=exc,
                code=codes.INTERNAL_UPLOAD,
            )
        return success(
            meta=meta,
            payload=UploadAuthorization(
                upload_url=signed.upload_url,
                required_headers=signed.required_headers,
                amount=amount,
                object_id=object_id,
                expiry_time=expiry_time,
            ),
        )

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def accept_upload(
        self,
        *,
        meta: EnvelopeMeta,
        params: Mapping[str, str],
        content: bytes,
        content_type: str | None = None,
    ) -> Envelope[AcceptedUpload]:
        """Store bytes sent to a signed upload URL and advertise them."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)
        try:
            grant = self._object_store.verify_upload(params=params)
        except InvalidUploadSignatureError as exc:
            return failure(
                meta=meta,
                errors=[policy_error(str(exc), code=codes.INVALID_SIGNATURE)],
            )
        if len(content) != grant.size_bytes:
            return failure(
                meta=meta,
                errors=[
                    validation_error(
                        f"Size mismatch: expected {grant.size_bytes} bytes, "
                        f"received {len(content)}.",
                        code=codes.SIZE_MISMATCH,
                    )
                ],
            )

        object_path = f"cdn/{grant.object_id}"
        mime = normalize_content_type(content_type)
        try:
            self._object_store.write_object(
                object_path=object_path,
                content=content,
                content_type=mime,
                uploader_identity_key=grant.uploader_identity_key,
                custom_time=grant.custom_time,
            )
            public_url = self._object_store.public_url(object_path=object_path)
        except ObjectAlreadyExistsError:
            return failure(
                meta=meta,
                errors=[conflict_error("File exists.", code=codes.ALREADY_EXISTS)],
            )
        except Exception as exc:  # noqa: BLE001
            return self._internal_failure(
                meta=meta, operation="accept_upload", exc=exc, code=codes.INTERNAL
            )

        uhrp_url = url_for_content(content)
        expiry_time = (
            int(grant.custom_time.timestamp()) - self._settings.retention_grace_seconds
        )
        accepted = AcceptedUpload(
            uhrp_url=uhrp_url, object_id=grant.object_id, expiry_time=expiry_time
        )
        if not self._should_advertise(public_url):
            _LOGGER.warning(
                "upload stored without advertisement on local host",
                extra={"object_id": grant.object_id},
            )
            return success(meta=meta, payload=accepted)

        issued = self._advertisements.issue(
            meta=child_meta(meta, source="hosting_gateway"),
            uhrp_url=uhrp_url,
            object_id=grant.object_id,
            url=public_url,
            uploader_identity_key=grant.uploader_identity_key,
            expiry_time=expiry_time,
            content_length=len(content),
            content_type=mime,
        )
        if not issued.ok or issued.payload is None:
            return failure(meta=meta, errors=list(issued.errors))
        return success(
            meta=meta,
            payload=accepted.model_copy(
                update={"transaction_id": issued.payload.value.transaction_id}
            ),
        )

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return readiness of the object store backing uploads."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)
        store = self._object_store.health()
        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=store.ready,
                object_store_ready=store.ready,
                detail="ok" if store.ready else f"object_store: {store.detail}",
            ),
        )

    def _should_advertise(self, public_url: str) -> bool:
        if self._settings.advertise_on_localhost:
            return True
        return urlsplit(public_url).hostname not in _LOCAL_HOSTS

    def _validate_request(
        self,
        *,
        meta: EnvelopeMeta,
        model: type[BaseModel],
        payload: dict[str, Any],
    ) -> tuple[BaseModel | None, list[ErrorDetail]]:
        """Validate envelope metadata, request shape and hosting window."""
        errors = validate_meta(meta)
        if errors:
            return None, errors

        # Absent and null inputs report as missing rather than mistyped.
        data = {key: value for key, value in payload.items() if value is not None}
        try:
            request = model.model_validate(data)
        except ValidationError as exc:
            return None, [
                validation_error(
                    f"request validation failed: {err['msg']}",
                    code=_validation_code(err),
                    metadata={"field": ".".join(str(p) for p in err["loc"])},
                )
                for err in exc.errors()
            ]

        minutes = getattr(request, "retention_minutes", None)
        if minutes is not None and not (
            self._settings.min_hosting_minutes
            <= minutes
            <= self._settings.max_hosting_minutes
        ):
            return None, [
                validation_error(
                    "The retention period must be between "
                    f"{self._settings.min_hosting_minutes} and "
                    f"{self._settings.max_hosting_minutes} minutes.",
                    code=codes.INVALID_RETENTION_PERIOD,
                    metadata={"field": "retention_minutes"},
                )
            ]
        return request, []

    def _internal_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        exc: Exception,
        code: str,
    ) -> Envelope[Any]:
        """Log one unexpected collaborator failure and return an internal error."""
        _LOGGER.error(
            "%s failed: exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        return failure(
            meta=meta,
            errors=[
                internal_error(
                    f"An internal error occurred while handling {operation}.",
                    code=code,
                    metadata={"exception_type": type(exc).__name__},
                )
            ],
        )


def _validation_code(err: Any) -> str:
    field = str(err["loc"][0]) if err["loc"] else ""
    missing, invalid = FIELD_ERROR_CODES.get(
        field, (shared_codes.INVALID_REQUEST, shared_codes.INVALID_REQUEST)
    )
    return missing if err["type"] == "missing" else invalid
