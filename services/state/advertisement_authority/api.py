"""HTTP routes for Advertisement Authority Service."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import FileResponse, JSONResponse

from packages.uhrp_shared.envelope import EnvelopeKind, EnvelopeMeta, new_meta
from packages.uhrp_shared.errors import validation_error
from packages.uhrp_shared.http import envelope_response, error_response, identity_key
from services.state.advertisement_authority import codes
from services.state.advertisement_authority.domain import (
    IssueResult,
    ListResult,
    RenewalResult,
    ResolvedAdvertisement,
)
from services.state.advertisement_authority.service import AdvertisementAuthorityService

_SOURCE = "advertisement_authority_http"


def register_routes(*, router: APIRouter, service: AdvertisementAuthorityService) -> None:
    """Attach find, list, renew, advertise and CDN routes to ``router``."""

    @router.get("/find")
    def find(
        request: Request,
        uhrpUrl: str | None = None,  # noqa: N803
        objectIdentifier: str | None = None,  # noqa: N803
        limit: int | None = None,
        offset: int | None = None,
    ) -> JSONResponse:
        key = identity_key(request)
        if key is None:
            return _missing_identity_key()
        if not uhrpUrl and not objectIdentifier:
            return error_response(
                validation_error("Missing uhrpUrl.", code=codes.NO_UHRP_URL)
            )
        result = service.find(
            meta=_meta(EnvelopeKind.QUERY, key),
            uploader_identity_key=key,
            uhrp_url=uhrpUrl,
            object_id=objectIdentifier,
            limit=limit,
            offset=offset,
        )
        return envelope_response(result, lambda value: {"data": _found(value)})

    @router.get("/list")
    def list_uploads(
        request: Request,
        limit: int | None = None,
        offset: int | None = None,
    ) -> JSONResponse:
        key = identity_key(request)
        if key is None:
            return _missing_identity_key()
        result = service.list_uploads(
            meta=_meta(EnvelopeKind.QUERY, key),
            uploader_identity_key=key,
            limit=limit,
            offset=offset,
        )
        return envelope_response(result, _listed)

    @router.post("/renew")
    def renew(
        request: Request, body: dict[str, Any] = Body(default_factory=dict)
    ) -> JSONResponse:
        key = identity_key(request)
        if key is None:
            return _missing_identity_key()
        if not body.get("uhrpUrl") or body.get("additionalMinutes") is None:
            return error_response(
                validation_error(
                    "Missing uhrpUrl or additionalMinutes.", code=codes.MISSING_FIELDS
                )
            )
        result = service.renew(
            meta=_meta(EnvelopeKind.COMMAND, key),
            uhrp_url=str(body["uhrpUrl"]),
            uploader_identity_key=key,
            additional_minutes=body["additionalMinutes"],
            limit=body.get("limit"),
            offset=body.get("offset"),
        )
        return envelope_response(result, _renewed)

    @router.post("/advertise")
    def advertise(body: dict[str, Any] = Body(default_factory=dict)) -> JSONResponse:
        required = (
            "adminToken",
            "uhrpUrl",
            "uploaderIdentityKey",
            "objectIdentifier",
            "expiryTime",
            "fileSize",
        )
        missing = [name for name in required if body.get(name) in (None, "")]
        if missing:
            return error_response(
                validation_error(
                    f"Missing {', '.join(missing)}.", code=codes.MISSING_FIELDS
                )
            )
        result = service.admin_advertise(
            meta=_meta(EnvelopeKind.COMMAND, "admin"),
            admin_token=str(body["adminToken"]),
            uhrp_url=str(body["uhrpUrl"]),
            object_id=str(body["objectIdentifier"]),
            uploader_identity_key=str(body["uploaderIdentityKey"]),
            expiry_time=body["expiryTime"],
            content_length=body["fileSize"],
            url=body.get("url"),
            content_type=body.get("contentType"),
        )
        return envelope_response(result, _issued)

    @router.get("/cdn/{object_id}", response_model=None)
    def serve_object(object_id: str) -> FileResponse | JSONResponse:
        result = service.lookup_content_type(
            meta=_meta(EnvelopeKind.QUERY, ""), object_id=object_id
        )
        error = result.first_error
        if error is not None:
            return error_response(error)
        assert result.payload is not None
        served = result.payload.value
        return FileResponse(served.local_path, media_type=served.content_type)


def _meta(kind: EnvelopeKind, principal: str) -> EnvelopeMeta:
    return new_meta(kind=kind, source=_SOURCE, principal=principal)


def _missing_identity_key() -> JSONResponse:
    return error_response(
        validation_error("Missing authfetch identityKey.", code=codes.MISSING_IDENTITY_KEY)
    )


def _found(value: ResolvedAdvertisement) -> dict[str, Any]:
    return {
        "name": value.name,
        "size": value.size,
        "mimeType": value.content_type,
        "expiryTime": value.expiry_time,
    }


def _listed(value: ListResult) -> dict[str, Any]:
    return {
        "uploads": [
            {"uhrpUrl": item.uhrp_url, "expiryTime": item.expiry_time}
            for item in value.uploads
        ]
    }


def _renewed(value: RenewalResult) -> dict[str, Any]:
    return {
        "prevExpiryTime": value.prev_expiry_time,
        "newExpiryTime": value.new_expiry_time,
        "amount": value.amount,
    }


def _issued(value: IssueResult) -> dict[str, Any]:
    return {"txid": value.transaction_id, "uhrpUrl": value.uhrp_url}
