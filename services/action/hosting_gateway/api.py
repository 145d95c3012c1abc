"""HTTP routes for Hosting Gateway Service."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from packages.uhrp_shared.envelope import EnvelopeKind, EnvelopeMeta, new_meta
from packages.uhrp_shared.errors import validation_error
from packages.uhrp_shared.http import envelope_response, error_response, identity_key
from services.action.hosting_gateway import codes
from services.action.hosting_gateway.domain import (
    AcceptedUpload,
    Quote,
    UploadAuthorization,
)
from services.action.hosting_gateway.service import HostingGatewayService

_SOURCE = "hosting_gateway_http"


def register_routes(*, router: APIRouter, service: HostingGatewayService) -> None:
    """Attach quote, upload and put routes to ``router``."""

    @router.post("/quote")
    def quote(body: dict[str, Any] = Body(default_factory=dict)) -> JSONResponse:
        result = service.quote(
            meta=_meta(EnvelopeKind.QUERY, ""),
            file_size=body.get("fileSize"),
            retention_minutes=body.get("retentionPeriod"),
        )
        return envelope_response(result, _quoted)

    @router.post("/upload")
    def upload(
        request: Request, body: dict[str, Any] = Body(default_factory=dict)
    ) -> JSONResponse:
        key = identity_key(request)
        if key is None:
            return error_response(
                validation_error(
                    "Missing authfetch identityKey.", code=codes.MISSING_IDENTITY_KEY
                )
            )
        result = service.authorize_upload(
            meta=_meta(EnvelopeKind.COMMAND, key),
            uploader_identity_key=key,
            file_size=body.get("fileSize"),
            retention_minutes=body.get("retentionPeriod"),
        )
        return envelope_response(result, _authorized)

    @router.put("/put")
    async def put(request: Request) -> JSONResponse:
        content = await request.body()
        result = await run_in_threadpool(
            service.accept_upload,
            meta=_meta(EnvelopeKind.COMMAND, request.query_params.get("uploader", "")),
            params=dict(request.query_params),
            content=content,
            content_type=request.headers.get("content-type"),
        )
        return envelope_response(result, _accepted)


def _meta(kind: EnvelopeKind, principal: str) -> EnvelopeMeta:
    return new_meta(kind=kind, source=_SOURCE, principal=principal)


def _quoted(value: Quote) -> dict[str, Any]:
    return {"quote": value.amount}


def _authorized(value: UploadAuthorization) -> dict[str, Any]:
    return {
        "uploadURL": value.upload_url,
        "requiredHeaders": value.required_headers,
        "amount": value.amount,
        "description": "File can now be uploaded.",
    }


def _accepted(value: AcceptedUpload) -> dict[str, Any]:
    body: dict[str, Any] = {"uhrpUrl": value.uhrp_url, "objectId": value.object_id}
    if value.transaction_id is not None:
        body["txid"] = value.transaction_id
    return body
