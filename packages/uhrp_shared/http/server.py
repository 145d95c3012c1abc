"""FastAPI and uvicorn helpers shared by service route registrars.

Every response body the host emits is either ``{"status": "success", ...}`` or
``{"status": "error", "code", "description"}``, including framework-level
failures such as unknown routes and malformed request bodies.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Callable, TypeVar

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from packages.uhrp_shared.envelope import Envelope
from packages.uhrp_shared.errors import (
    ErrorCategory,
    ErrorDetail,
    codes,
    dependency_error,
    internal_error,
    not_found_error,
    validation_error,
)
from packages.uhrp_shared.logging import get_logger

_LOGGER = get_logger(__name__)

T = TypeVar("T")

# Set by the authentication layer in front of this process.
IDENTITY_KEY_HEADER = "x-bsv-auth-identity-key"

_STATUS_BY_CATEGORY: dict[ErrorCategory, HTTPStatus] = {
    ErrorCategory.VALIDATION: HTTPStatus.BAD_REQUEST,
    ErrorCategory.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorCategory.CONFLICT: HTTPStatus.CONFLICT,
    ErrorCategory.POLICY: HTTPStatus.FORBIDDEN,
    ErrorCategory.DEPENDENCY: HTTPStatus.SERVICE_UNAVAILABLE,
    ErrorCategory.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
}


def create_app(*, title: str = "uhrp-storage-host", version: str = "0.0.0") -> FastAPI:
    """FastAPI app whose framework failures render as structured errors."""
    app = FastAPI(title=title, version=version)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        del request
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        return error_response(
            validation_error(
                f"invalid request: {location} {first.get('msg', '')}".strip()
            )
        )

    @app.exception_handler(404)
    async def _unknown_route(request: Request, exc: Exception) -> JSONResponse:
        del exc
        _LOGGER.info("route not found", extra={"path": request.url.path})
        return error_response(
            not_found_error("Route not found.", code=codes.ROUTE_NOT_FOUND)
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        _LOGGER.exception(
            "unhandled HTTP handler failure", extra={"path": request.url.path}
        )
        return error_response(unhandled_error(exc))

    return app


def unhandled_error(exc: Exception) -> ErrorDetail:
    """Last-resort mapping for a fault no service translated.

    The message never echoes the exception text, which may carry paths or
    upstream URLs.
    """
    metadata = {"exception_type": type(exc).__name__}
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return dependency_error("An upstream dependency is unavailable.", metadata=metadata)
    return internal_error("An internal error occurred.", metadata=metadata)


def build_server(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 8080,
    log_level: str = "info",
) -> uvicorn.Server:
    """Unstarted uvicorn server whose logs go through the host's root handler."""
    return uvicorn.Server(
        uvicorn.Config(app, host=host, port=port, log_level=log_level, log_config=None)
    )


def identity_key(request: Request) -> str | None:
    """The verified caller identity key, or ``None`` when absent or blank."""
    value = request.headers.get(IDENTITY_KEY_HEADER, "").strip()
    return value or None


def status_for_category(category: ErrorCategory) -> int:
    return _STATUS_BY_CATEGORY[category]


def error_response(error: ErrorDetail) -> JSONResponse:
    """Render one error as ``{status, code, description}``."""
    return JSONResponse(
        status_code=status_for_category(error.category),
        content={
            "status": "error",
            "code": error.code,
            "description": error.message,
        },
    )


def envelope_response(
    envelope: Envelope[T],
    render: Callable[[T], dict[str, Any]],
) -> JSONResponse:
    """First error on failure, else ``{"status": "success", **render(value)}``."""
    error = envelope.first_error
    if error is not None:
        return error_response(error)
    body: dict[str, Any] = {"status": "success"}
    if envelope.payload is not None:
        body.update(render(envelope.payload.value))
    return JSONResponse(status_code=HTTPStatus.OK, content=body)
