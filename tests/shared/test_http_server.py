"""Unit tests for shared FastAPI response helpers."""

from __future__ import annotations

import pytest
from fastapi import APIRouter, Request
from fastapi.testclient import TestClient
from pydantic import BaseModel

from packages.uhrp_shared.envelope import EnvelopeKind, failure, new_meta, success
from packages.uhrp_shared.errors import (
    conflict_error,
    dependency_error,
    internal_error,
    not_found_error,
    policy_error,
    validation_error,
)
from packages.uhrp_shared.http import (
    IDENTITY_KEY_HEADER,
    build_server,
    create_app,
    envelope_response,
    error_response,
    identity_key,
    status_for_category,
    unhandled_error,
)


class _Body(BaseModel):
    size: int


def _client() -> TestClient:
    app = create_app(title="test")
    router = APIRouter()
    meta = new_meta(kind=EnvelopeKind.QUERY, source="test")

    @router.get("/ok")
    def ok() -> object:
        return envelope_response(
            success(meta=meta, payload={"n": 1}), lambda value: {"count": value["n"]}
        )

    @router.get("/missing")
    def missing() -> object:
        return envelope_response(
            failure(meta=meta, errors=[not_found_error("gone", code="ERR_NOT_FOUND")]),
            lambda value: value,
        )

    @router.post("/typed")
    def typed(body: _Body) -> dict[str, int]:
        return {"size": body.size}

    @router.get("/boom")
    def boom() -> None:
        raise RuntimeError("secret detail")

    @router.get("/whoami")
    def whoami(request: Request) -> dict[str, str | None]:
        return {"key": identity_key(request)}

    app.include_router(router)
    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (validation_error("x"), 400),
        (not_found_error("x"), 404),
        (conflict_error("x"), 409),
        (policy_error("x"), 403),
        (dependency_error("x"), 503),
        (internal_error("x"), 500),
    ],
)
def test_error_response_maps_category_to_status(error, status: int) -> None:
    """Error categories should map onto HTTP status codes."""
    response = error_response(error)

    assert response.status_code == status
    assert status_for_category(error.category) == status


def test_envelope_response_renders_success_and_first_error() -> None:
    """Success bodies merge the rendered payload; failures render the first error."""
    client = _client()

    assert client.get("/ok").json() == {"status": "success", "count": 1}
    missing = client.get("/missing")
    assert missing.status_code == 404
    assert missing.json() == {
        "status": "error",
        "code": "ERR_NOT_FOUND",
        "description": "gone",
    }


def test_create_app_renders_request_validation_and_unhandled_errors() -> None:
    """Framework validation and stray exceptions should render structured errors."""
    client = _client()

    invalid = client.post("/typed", json={"size": "big"})
    crashed = client.get("/boom")

    assert invalid.status_code == 400
    assert invalid.json()["code"] == "ERR_INVALID_REQUEST"
    assert crashed.status_code == 500
    assert crashed.json()["code"] == "ERR_INTERNAL"
    assert "secret detail" not in crashed.text


def test_identity_key_reads_authentication_header() -> None:
    """The identity header should be stripped and blank values treated as absent."""
    client = _client()

    assert client.get("/whoami", headers={IDENTITY_KEY_HEADER: " 02ab "}).json() == {
        "key": "02ab"
    }
    assert client.get("/whoami", headers={IDENTITY_KEY_HEADER: " "}).json() == {
        "key": None
    }
    assert client.get("/whoami").json() == {"key": None}


def test_build_server_applies_bind_address() -> None:
    """build_server should return an unstarted uvicorn server for the app."""
    server = build_server(create_app(), host="127.0.0.1", port=9999)

    assert server.config.host == "127.0.0.1"
    assert server.config.port == 9999
    assert server.should_exit is False
    assert server.config.log_config is None


def test_unknown_route_renders_route_not_found() -> None:
    response = _client().get("/nowhere")

    assert response.status_code == 404
    assert response.json() == {
        "status": "error",
        "code": "ERR_ROUTE_NOT_FOUND",
        "description": "Route not found.",
    }


@pytest.mark.parametrize(
    ("exc", "status", "code"),
    [
        (ConnectionError("wallet.internal:3321 refused"), 503, "ERR_UPSTREAM"),
        (TimeoutError("read timed out"), 503, "ERR_UPSTREAM"),
        (KeyError("/var/secret"), 500, "ERR_INTERNAL"),
    ],
)
def test_unhandled_error_hides_exception_text(
    exc: Exception, status: int, code: str
) -> None:
    error = unhandled_error(exc)

    assert status_for_category(error.category) == status
    assert error.code == code
    assert str(exc.args[0]) not in error.message
    assert error.metadata == {"exception_type": type(exc).__name__}
