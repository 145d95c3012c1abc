"""Outbound HTTP client and inbound FastAPI helpers for host components."""

from .client import HttpClient
from .errors import (
    UpstreamError,
    UpstreamPayloadError,
    UpstreamStatusError,
    UpstreamUnreachable,
)
from .server import (
    IDENTITY_KEY_HEADER,
    build_server,
    create_app,
    envelope_response,
    error_response,
    identity_key,
    status_for_category,
    unhandled_error,
)

__all__ = [
    "IDENTITY_KEY_HEADER",
    "HttpClient",
    "UpstreamError",
    "UpstreamPayloadError",
    "UpstreamStatusError",
    "UpstreamUnreachable",
    "build_server",
    "create_app",
    "envelope_response",
    "error_response",
    "identity_key",
    "status_for_category",
    "unhandled_error",
]
