"""Concrete Advertisement Authority Service implementation."""

from __future__ import annotations

import hmac
import time
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from packages.uhrp_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    failure,
    success,
    validate_meta,
)
from packages.uhrp_shared.errors import (
    ErrorDetail,
    dependency_error,
    not_found_error,
    policy_error,
    validation_error,
)
from packages.uhrp_shared.errors import codes as shared_codes
from packages.uhrp_shared.logging import get_logger, public_api_instrumented
from packages.uhrp_shared.uhrp_url import hash_from_url
from resources.adapters.pricing import StoragePricingAdapter
from resources.substrates.ledger import LedgerError, LedgerSubstrate
from resources.substrates.object_store import ObjectNotFoundError, ObjectStoreSubstrate
from services.state.advertisement_authority import codes
from services.state.advertisement_authority.cache import ExpiringCache
from services.state.advertisement_authority.codec import encode_record
from services.state.advertisement_authority.component import SERVICE_COMPONENT_ID
from services.state.advertisement_authority.config import AdvertisementAuthoritySettings
from services.state.advertisement_authority.content_type import (
    OCTET_STREAM,
    SNIFF_LENGTH,
    content_type_for_name,
    sniff_content_type,
)
from services.state.advertisement_authority.domain import (
    AdvertisementRecord,
    ContentTypeResult,
    HealthStatus,
    IssueResult,
    ListedUpload,
    ListResult,
    RenewalResult,
    ResolvedAdvertisement,
)
from services.state.advertisement_authority.index import (
    AdvertisementIndex,
    AttributeFilter,
    select_winner,
)
from services.state.advertisement_authority.labels import LabelKind, labels_for
from services.state.advertisement_authority.renewal import (
    AdvertisementRenewer,
    RenewalFailed,
)
from services.state.advertisement_authority.service import (
    AdvertisementAuthorityService,
)
from services.state.advertisement_authority.validation import (
    FIELD_ERROR_CODES,
    FindRequest,
    IssueRequest,
    ListRequest,
    ObjectIdRequest,
    RenewRequest,
)

_LOGGER = get_logger(__name__)


class DefaultAdvertisementAuthorityService(AdvertisementAuthorityService):
    """Advertisement authority over a wallet-backed ledger and local object store."""

    def __init__(
        self,
        *,
        settings: AdvertisementAuthoritySettings,
        ledger: LedgerSubstrate,
        object_store: ObjectStoreSubstrate,
        pricing: StoragePricingAdapter,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._settings = settings
        self._ledger = ledger
        self._object_store = object_store
        self._clock = clock or time.time
        self._index = AdvertisementIndex(ledger=ledger, collection=settings.collection)
        self._content_types: ExpiringCache[str, str] = ExpiringCache(
            ttl_seconds=settings.content_type_cache_ttl_seconds,
            clock=self._clock,
        )
        self._renewer = AdvertisementRenewer(
            settings=settings,
            index=self._index,
            ledger=ledger,
            object_store=object_store,
            pricing=pricing,
            clock=self._clock,
            logger=_LOGGER,
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("uhrp_url", "object_id"),
    )
    def issue(
        self,
        *,
        meta: EnvelopeMeta,
        uhrp_url: str,
        object_id: str,
        url: str,
        uploader_identity_key: str,
        expiry_time: int,
        content_length: int,
        content_type: str | None = None,
    ) -> Envelope[IssueResult]:
        """Create, label and relay one new advertisement output."""
        request, errors = self._validate_request(
            meta=meta,
            model=IssueRequest,
            payload={
                "uhrp_url": uhrp_url,
                "object_id": object_id,
                "url": url,
                "uploader_identity_key": uploader_identity_key,
                "expiry_time": expiry_time,
                "content_length": content_length,
                "content_type": content_type,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, IssueRequest)

        try:
            host_identity = bytes.fromhex(self._ledger.identity_key())
        except (LedgerError, ValueError) as exc:
            return self._dependency_failure(
                meta=meta, operation="issue", exc=exc, code=codes.LEDGER_UNAVAILABLE
            )
        record = AdvertisementRecord(
            host_identity=host_identity,
            content_hash=hash_from_url(request.uhrp_url),
            url=request.url,
            expiry_time=request.expiry_time,
            content_length=request.content_length,
            content_type=request.content_type,
        )
        try:
            fields = encode_record(record)
        except ValueError as exc:
            return failure(
                meta=meta,
                errors=[
                    validation_error(
                        f"advertisement cannot be encoded: {exc}",
                        code=codes.INVALID_ADVERTISEMENT,
                    )
                ],
            )

        try:
            transaction = self._ledger.create_output(
                collection=self._settings.collection,
                fields=fields,
                labels=labels_for(
                    record,
                    object_id=request.object_id,
                    uploader_identity=request.uploader_identity_key,
                ),
                satoshis=self._settings.output_satoshis,
                description="UHRP Content Availability Advertisement",
            )
        except LedgerError as exc:
            return self._dependency_failure(
                meta=meta, operation="issue", exc=exc, code=codes.CREATE_ACTION_FAILED
            )
        try:
            self._ledger.relay(transaction=transaction, topics=self._settings.topics)
        except LedgerError as exc:
            return self._dependency_failure(
                meta=meta, operation="issue", exc=exc, code=codes.RELAY_FAILED
            )
        return success(
            meta=meta,
            payload=IssueResult(
                transaction_id=transaction.txid,
                uhrp_url=request.uhrp_url,
                object_id=request.object_id,
                expiry_time=request.expiry_time,
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("uhrp_url", "object_id"),
    )
    def admin_advertise(
        self,
        *,
        meta: EnvelopeMeta,
        admin_token: str,
        uhrp_url: str,
        object_id: str,
        uploader_identity_key: str,
        expiry_time: int,
        content_length: int,
        url: str | None = None,
        content_type: str | None = None,
    ) -> Envelope[IssueResult]:
        """Issue on behalf of a storage notifier holding the admin token."""
        expected = self._settings.admin_token.get_secret_value()
        if expected == "" or not hmac.compare_digest(
            expected.encode("utf-8"), admin_token.encode("utf-8")
        ):
            return failure(
                meta=meta,
                errors=[policy_error("invalid admin token", code=codes.UNAUTHORIZED)],
            )
        if not url:
            try:
                url = self._object_store.public_url(object_path=f"cdn/{object_id}")
            except ValueError as exc:
                return failure(
                    meta=meta,
                    errors=[
                        validation_error(str(exc), code=codes.INVALID_ADVERTISEMENT)
                    ],
                )
        return self.issue(
            meta=meta,
            uhrp_url=uhrp_url,
            object_id=object_id,
            url=url,
            uploader_identity_key=uploader_identity_key,
            expiry_time=expiry_time,
            content_length=content_length,
            content_type=content_type,
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("uhrp_url", "object_id"),
    )
    def find(
        self,
        *,
        meta: EnvelopeMeta,
        uploader_identity_key: str,
        uhrp_url: str | None = None,
        object_id: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Envelope[ResolvedAdvertisement]:
        """Resolve the current advertisement and merge backing-store metadata."""
        request, errors = self._validate_request(
            meta=meta,
            model=FindRequest,
            payload={
                "uploader_identity_key": uploader_identity_key,
                "uhrp_url": uhrp_url,
                "object_id": object_id,
                **self._paging(limit=limit, offset=offset),
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, FindRequest)

        key_filter = (
            AttributeFilter(LabelKind.UHRP_URL, request.uhrp_url)
            if request.uhrp_url is not None
            else AttributeFilter(LabelKind.OBJECT_ID, str(request.object_id))
        )
        try:
            candidates = self._index.query(
                [
                    key_filter,
                    AttributeFilter(
                        LabelKind.UPLOADER_IDENTITY, request.uploader_identity_key
                    ),
                ],
                limit=request.limit,
                offset=request.offset,
            )
        except LedgerError as exc:
            return self._dependency_failure(
                meta=meta, operation="find", exc=exc, code=codes.LEDGER_UNAVAILABLE
            )
        lookup = request.uhrp_url or request.object_id
        winner = select_winner(candidates)
        if winner is None:
            return self._not_found(
                meta=meta,
                code=codes.NOT_FOUND,
                message=f"no advertisement found for {lookup}",
            )
        assert winner.object_id is not None and winner.expiry_time is not None
        if not winner.is_live(self._clock()):
            return self._not_found(
                meta=meta,
                code=codes.EXPIRED,
                message=f"advertisement for {lookup} has expired",
            )

        try:
            metadata = self._object_store.get_metadata(
                object_path=f"cdn/{winner.object_id}"
            )
        except ObjectNotFoundError:
            return self._not_found(
                meta=meta,
                code=codes.NOT_FOUND,
                message=f"backing object for {lookup} is missing",
            )
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(
                meta=meta,
                operation="find",
                exc=exc,
                code=codes.BACKING_STORE_UNAVAILABLE,
            )
        return success(
            meta=meta,
            payload=ResolvedAdvertisement(
                object_id=winner.object_id,
                name=metadata.name,
                size=str(metadata.size),
                content_type=metadata.content_type,
                expiry_time=winner.expiry_time,
            ),
        )

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def list_uploads(
        self,
        *,
        meta: EnvelopeMeta,
        uploader_identity_key: str,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Envelope[ListResult]:
        """List live advertisements of one uploader in ledger scan order."""
        request, errors = self._validate_request(
            meta=meta,
            model=ListRequest,
            payload={
                "uploader_identity_key": uploader_identity_key,
                **self._paging(limit=limit, offset=offset),
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, ListRequest)

        try:
            candidates = self._index.query(
                [
                    AttributeFilter(
                        LabelKind.UPLOADER_IDENTITY, request.uploader_identity_key
                    )
                ],
                limit=request.limit,
                offset=request.offset,
            )
        except LedgerError as exc:
            return self._dependency_failure(
                meta=meta, operation="list_uploads", exc=exc, code=codes.LIST_FAILED
            )
        now = self._clock()
        uploads = tuple(
            ListedUpload(uhrp_url=item.uhrp_url, expiry_time=item.expiry_time)
            for item in candidates
            if item.uploader_identity == request.uploader_identity_key
            and item.uhrp_url is not None
            and item.expiry_time is not None
            and item.is_live(now)
        )
        return success(meta=meta, payload=ListResult(uploads=uploads))

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("uhrp_url",),
    )
    def renew(
        self,
        *,
        meta: EnvelopeMeta,
        uhrp_url: str,
        uploader_identity_key: str,
        additional_minutes: int,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Envelope[RenewalResult]:
        """Redeem the current advertisement and reissue it with a later expiry."""
        request, errors = self._validate_request(
            meta=meta,
            model=RenewRequest,
            payload={
                "uhrp_url": uhrp_url,
                "uploader_identity_key": uploader_identity_key,
                "additional_minutes": additional_minutes,
                **self._paging(limit=limit, offset=offset),
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, RenewRequest)

        try:
            result = self._renewer.renew(request)
        except RenewalFailed as exc:
            return failure(meta=meta, errors=[exc.error])
        return success(meta=meta, payload=result)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("object_id",),
    )
    def lookup_content_type(
        self, *, meta: EnvelopeMeta, object_id: str
    ) -> Envelope[ContentTypeResult]:
        """Advertised type first, then sniffed bytes, then the file extension."""
        request, errors = self._validate_request(
            meta=meta, model=ObjectIdRequest, payload={"object_id": object_id}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert isinstance(request, ObjectIdRequest)

        object_path = f"cdn/{request.object_id}"
        try:
            local_path = self._object_store.resolve_path(object_path=object_path)
            if not self._object_store.exists(object_path=object_path):
                return self._not_found(
                    meta=meta,
                    code=codes.NOT_FOUND,
                    message=f"no object stored for {request.object_id}",
                )
            cached = self._content_types.get(request.object_id)
            if cached is not None:
                return self._served(meta, request.object_id, local_path, cached, "cache")

            advertised = self._advertised_content_type(request.object_id)
            if advertised is not None and advertised != OCTET_STREAM:
                self._content_types.put(request.object_id, advertised)
                return self._served(
                    meta, request.object_id, local_path, advertised, "advertisement"
                )

            head = self._object_store.read_head(
                object_path=object_path, length=SNIFF_LENGTH
            )
        except ObjectNotFoundError:
            return self._not_found(
                meta=meta,
                code=codes.NOT_FOUND,
                message=f"no object stored for {request.object_id}",
            )
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(
                meta=meta,
                operation="lookup_content_type",
                exc=exc,
                code=codes.BACKING_STORE_UNAVAILABLE,
            )
        mime, source = sniff_content_type(head), "content"
        if mime == OCTET_STREAM:
            hinted = content_type_for_name(request.object_id)
            if hinted is not None:
                mime, source = hinted, "extension"
        self._content_types.put(request.object_id, mime)
        return self._served(meta, request.object_id, local_path, mime, source)

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return readiness of the ledger wallet and the object store."""
        errors = validate_meta(meta)
        if errors:
            return failure(meta=meta, errors=errors)
        ledger = self._ledger.health()
        store = self._object_store.health()
        ready = ledger.ready and store.ready
        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=ready,
                ledger_ready=ledger.ready,
                object_store_ready=store.ready,
                detail="ok"
                if ready
                else f"ledger: {ledger.detail}; object_store: {store.detail}",
            ),
        )

    def _advertised_content_type(self, object_id: str) -> str | None:
        """Content type of the live, latest-expiring advertisement, if any."""
        try:
            candidates = self._index.query(
                [AttributeFilter(LabelKind.OBJECT_ID, object_id)],
                limit=self._settings.content_type_query_limit,
                offset=0,
            )
        except LedgerError as exc:
            _LOGGER.warning(
                "content type lookup fell back to sniffing",
                extra={"object_id": object_id, "error": str(exc)},
            )
            return None
        now = self._clock()
        winner = select_winner(
            item
            for item in candidates
            if item.content_type is not None and item.is_live(now)
        )
        return None if winner is None else winner.content_type

    def _served(
        self,
        meta: EnvelopeMeta,
        object_id: str,
        local_path: Path,
        content_type: str,
        source: str,
    ) -> Envelope[ContentTypeResult]:
        return success(
            meta=meta,
            payload=ContentTypeResult(
                object_id=object_id,
                content_type=content_type,
                source=source,
                local_path=str(local_path),
            ),
        )

    def _paging(self, *, limit: int | None, offset: int | None) -> dict[str, Any]:
        return {
            "limit": self._settings.default_query_limit if limit is None else limit,
            "offset": 0 if offset is None else offset,
        }

    def _validate_request(
        self,
        *,
        meta: EnvelopeMeta,
        model: type[BaseModel],
        payload: dict[str, Any] | None,
    ) -> tuple[BaseModel | None, list[ErrorDetail]]:
        """Validate envelope metadata and request payload model."""
        errors = validate_meta(meta)
        if errors:
            return None, errors

        data = payload or {}
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

        limit = getattr(request, "limit", None)
        if limit is not None and limit > self._settings.max_query_limit:
            return None, [
                validation_error(
                    f"limit must not exceed {self._settings.max_query_limit}",
                    code=codes.INVALID_PAGINATION,
                    metadata={"field": "limit"},
                )
            ]
        return request, []

    def _not_found(
        self, *, meta: EnvelopeMeta, code: str, message: str
    ) -> Envelope[Any]:
        return failure(meta=meta, errors=[not_found_error(message, code=code)])

    def _dependency_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        exc: Exception,
        code: str = shared_codes.UPSTREAM,
    ) -> Envelope[Any]:
        """Map one dependency/runtime exception into structured envelope errors."""
        _LOGGER.warning(
            "%s failed due to dependency error: exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed: {exc}",
                    code=code,
                    metadata={"exception_type": type(exc).__name__},
                )
            ],
        )


def _validation_code(err: Any) -> str:
    field = str(err["loc"][0]) if err["loc"] else ""
    if field == "uploader_identity_key":
        return codes.MISSING_IDENTITY_KEY
    if err["type"] == "missing" or field == "":
        return codes.MISSING_FIELDS
    return FIELD_ERROR_CODES.get(field, shared_codes.INVALID_REQUEST)
