"""Process entrypoint for the UHRP storage host."""

from __future__ import annotations

import importlib
import signal
import threading
from pathlib import Path
from time import sleep

from fastapi import APIRouter

from packages.uhrp_core.health_api import register_routes
from packages.uhrp_shared.component_loader import import_component_modules
from packages.uhrp_shared.config import UhrpSettings, load_settings
from packages.uhrp_shared.http import build_server, create_app
from packages.uhrp_shared.logging import configure_logging, get_logger
from packages.uhrp_shared.manifest import ComponentManifest, get_registry

_LOGGER = get_logger(__name__)
_REPO_ROOT = Path(__file__).resolve().parents[2]
_RUNNING = True


def _handle_shutdown(_signum: int, _frame: object) -> None:
    """Mark process for graceful shutdown when receiving termination signals."""
    global _RUNNING
    _RUNNING = False


def _resolve_component_builder(manifest: ComponentManifest):
    """Load one component module and return its build callable."""
    module = importlib.import_module(f"{manifest.package}.component")
    builder = getattr(module, "build_component", None)
    if callable(builder):
        return builder
    raise RuntimeError(
        f"component '{manifest.id}' does not expose build_component(...) in its component module"
    )


def _resolve_service_http_registrar(manifest: ComponentManifest):
    """Load one optional service-level HTTP registrar from ``api.py``."""
    candidate = _REPO_ROOT / Path(*manifest.package.split(".")) / "api.py"
    if not candidate.exists():
        return None
    module = importlib.import_module(f"{manifest.package}.api")
    registrar = getattr(module, "register_routes", None)
    return registrar if callable(registrar) else None


def _instantiate_registered_components(settings: UhrpSettings) -> dict[str, object]:
    """Instantiate all registered resources and services by registry walk.

    A builder raising ``KeyError`` is missing a dependency and is retried in
    the next round; a round without progress is a dependency cycle.
    """
    registry = get_registry()
    pending = [*registry.resources(), *registry.services()]
    built: dict[str, object] = {}

    while pending:
        progressed = False
        next_round: list[ComponentManifest] = []
        for manifest in pending:
            builder = _resolve_component_builder(manifest)
            try:
                built[str(manifest.id)] = builder(settings=settings, components=built)
            except KeyError:
                next_round.append(manifest)
                continue
            progressed = True
            _LOGGER.info(
                "component instantiated",
                extra={"component_id": str(manifest.id), "layer": manifest.layer},
            )

        if not progressed:
            unresolved = ", ".join(str(item.id) for item in next_round)
            raise RuntimeError(
                "unable to resolve component dependency graph; unresolved components: "
                f"{unresolved}"
            )
        pending = next_round
    return built


def build_http_app(*, settings: UhrpSettings, components: dict[str, object]):
    """Create the FastAPI app with health and every service route registrar."""
    app = create_app(title=settings.http.title)
    router = APIRouter()
    register_routes(router=router, components=components)

    registry = get_registry()
    registered_services: list[str] = []
    for manifest in sorted(registry.services(), key=lambda m: str(m.id)):
        registrar = _resolve_service_http_registrar(manifest)
        if registrar is None:
            continue
        registrar(router=router, service=components[str(manifest.id)])
        registered_services.append(str(manifest.id))

    app.include_router(router)
    return app, registered_services


def _start_http_runtime(
    *,
    settings: UhrpSettings,
    components: dict[str, object],
) -> tuple[object, threading.Thread]:
    """Start the HTTP runtime on a daemon thread."""
    app, registered_services = build_http_app(settings=settings, components=components)
    server = build_server(
        app,
        host=settings.http.host,
        port=settings.http.port,
        log_level=settings.logging.level.lower(),
    )
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    _LOGGER.info(
        "HTTP runtime started",
        extra={
            "host": settings.http.host,
            "port": settings.http.port,
            "registered_services": registered_services,
        },
    )
    return server, thread


def _close_components(components: dict[str, object]) -> None:
    """Close every component exposing ``close()``, services before resources."""
    for component_id, component in reversed(list(components.items())):
        close = getattr(component, "close", None)
        if not callable(close):
            continue
        try:
            close()
        except Exception:  # noqa: BLE001
            _LOGGER.exception(
                "component close failed", extra={"component_id": component_id}
            )


def main() -> None:
    """Discover components, instantiate them, serve HTTP, and hold process."""
    settings = load_settings()
    configure_logging(**settings.logging.model_dump())

    imported = import_component_modules()
    registry = get_registry()
    registry.check_ownership()
    _LOGGER.info(
        "component registration completed",
        extra={
            "imported_count": len(imported),
            "service_count": len(registry.services()),
            "resource_count": len(registry.resources()),
        },
    )

    components = _instantiate_registered_components(settings)
    http_server, http_thread = _start_http_runtime(
        settings=settings, components=components
    )

    signal.signal(signal.SIGINT, _handle_shutdown)
    signal.signal(signal.SIGTERM, _handle_shutdown)
    try:
        while _RUNNING and http_thread.is_alive():
            sleep(1.0)
    finally:
        http_server.should_exit = True
        http_thread.join(timeout=5.0)
        _close_components(components)
        _LOGGER.info("HTTP runtime stopped")


if __name__ == "__main__":
    main()
