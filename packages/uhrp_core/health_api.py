"""HTTP route exposing aggregate host readiness."""

from __future__ import annotations

from collections.abc import Mapping

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from packages.uhrp_core.health import evaluate_host_health


def register_routes(*, router: APIRouter, components: Mapping[str, object]) -> None:
    """Attach ``GET /health``; responds 503 while any component is not ready."""

    @router.get("/health")
    def health() -> JSONResponse:
        result = evaluate_host_health(components=components)
        return JSONResponse(
            status_code=200 if result.ready else 503,
            content=result.model_dump(mode="json"),
        )
