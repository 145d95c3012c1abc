"""Tests for host runtime component instantiation and HTTP wiring."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from unittest.mock import MagicMock, patch

import pytest
from fastapi import APIRouter
from fastapi.testclient import TestClient

from packages.uhrp_core import main as main_module
from packages.uhrp_shared.config import UhrpSettings


@dataclass(frozen=True, slots=True)
class _Manifest:
    id: str
    layer: int = 1

    package: str = ""


class _Registry:
    def __init__(
        self,
        *,
        resources: tuple[_Manifest, ...] = tuple(),
        services: tuple[_Manifest, ...] = tuple(),
    ) -> None:
        self._resources = resources
        self._services = services

    def resources(self) -> tuple[_Manifest, ...]:
        return self._resources

    def services(self) -> tuple[_Manifest, ...]:
        return self._services


def test_instantiate_defers_components_until_dependencies_exist(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A builder raising KeyError should be retried after its dependency is built."""
    registry = _Registry(
        resources=(_Manifest(id="substrate_ledger", layer=0),),
        services=(
            _Manifest(id="service_hosting_gateway"),
            _Manifest(id="service_advertisement_authority"),
        ),
    )
    order: list[str] = []

    def _builder_for(manifest: _Manifest):
        needs = {
            "service_hosting_gateway": "service_advertisement_authority",
            "service_advertisement_authority": "substrate_ledger",
        }.get(manifest.id)

        def _build(*, settings: UhrpSettings, components: dict[str, object]) -> object:
            del settings
            if needs is not None:
                _ = components[needs]
            order.append(manifest.id)
            return object()

        return _build

    monkeypatch.setattr(main_module, "get_registry", lambda: registry)
    monkeypatch.setattr(main_module, "_resolve_component_builder", _builder_for)

    built = main_module._instantiate_registered_components(UhrpSettings())

    assert order == [
        "substrate_ledger",
        "service_advertisement_authority",
        "service_hosting_gateway",
    ]
    assert set(built) == set(order)


def test_instantiate_raises_when_dependency_graph_cannot_resolve(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A round without progress should fail and name unresolved components."""
    registry = _Registry(services=(_Manifest(id="service_orphan"),))

    def _builder_for(manifest: _Manifest):
        del manifest

        def _build(*, settings: UhrpSettings, components: dict[str, object]) -> object:
            del settings
            return components["substrate_missing"]

        return _build

    monkeypatch.setattr(main_module, "get_registry", lambda: registry)
    monkeypatch.setattr(main_module, "_resolve_component_builder", _builder_for)

    with pytest.raises(RuntimeError, match="service_orphan"):
        main_module._instantiate_registered_components(UhrpSettings())


def test_build_http_app_registers_health_and_service_routes(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Service registrars should receive their built component on one router."""
    registry = _Registry(
        services=(_Manifest(id="service_a"), _Manifest(id="service_b"))
    )
    service_a = object()
    seen: list[object] = []

    def _registrar(*, router: APIRouter, service: object) -> None:
        seen.append(service)

        @router.get("/ping")
        def ping() -> dict[str, str]:
            return {"status": "success"}

    monkeypatch.setattr(main_module, "get_registry", lambda: registry)
    monkeypatch.setattr(
        main_module,
        "_resolve_service_http_registrar",
        lambda manifest: _registrar if manifest.id == "service_a" else None,
    )
    monkeypatch.setattr(
        "packages.uhrp_core.health.get_registry", lambda: _Registry()
    )

    app, registered = main_module.build_http_app(
        settings=UhrpSettings(),
        components={"service_a": service_a, "service_b": object()},
    )
    client = TestClient(app)

    assert registered == ["service_a"]
    assert seen == [service_a]
    assert client.get("/ping").json() == {"status": "success"}
    assert client.get("/health").status_code == 200


def test_start_http_runtime_runs_server_on_daemon_thread() -> None:
    """HTTP runtime should bind the configured address and start a thread."""
    settings = UhrpSettings(http={"host": "127.0.0.1", "port": 9090})
    fake_server = MagicMock()
    fake_server.run = lambda: None

    with (
        patch.object(
            main_module, "build_http_app", return_value=(MagicMock(), [])
        ),
        patch.object(
            main_module, "build_server", return_value=fake_server
        ) as mock_build_server,
    ):
        server, thread = main_module._start_http_runtime(
            settings=settings, components={}
        )
    thread.join(timeout=1.0)

    assert server is fake_server
    assert isinstance(thread, threading.Thread)
    assert thread.daemon is True
    assert mock_build_server.call_args.kwargs["host"] == "127.0.0.1"
    assert mock_build_server.call_args.kwargs["port"] == 9090


def test_close_components_closes_in_reverse_and_continues_after_failure() -> None:
    """Every closable component should be closed even when one close fails."""
    closed: list[str] = []

    class _Closable:
        def __init__(self, name: str, *, fail: bool = False) -> None:
            self._name = name
            self._fail = fail

        def close(self) -> None:
            closed.append(self._name)
            if self._fail:
                raise RuntimeError("close failed")

    main_module._close_components(
        {
            "substrate_ledger": _Closable("ledger"),
            "adapter_pricing": _Closable("pricing", fail=True),
            "service_hosting_gateway": object(),
        }
    )

    assert closed == ["pricing", "ledger"]


def test_resolve_service_http_registrar_finds_service_api_module() -> None:
    """Services shipping api.py should expose register_routes."""

    @dataclass(frozen=True, slots=True)
    class _Rooted:
        id: str
        package: str

    registrar = main_module._resolve_service_http_registrar(
        _Rooted(
            id="service_hosting_gateway",
            package="services.action.hosting_gateway",
        )
    )
    missing = main_module._resolve_service_http_registrar(
        _Rooted(id="service_x", package="packages.uhrp_shared")
    )

    assert registrar is not None and registrar.__name__ == "register_routes"
    assert missing is None
