"""Tests for component manifests, the registry and component discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from packages.uhrp_shared.component_loader import discover_component_modules
from packages.uhrp_shared.manifest import (
    ComponentId,
    ManifestError,
    ManifestRegistry,
    ResourceManifest,
    ServiceManifest,
)


def _service(
    component_id: str, *, system: str = "state", owns: frozenset[str] = frozenset()
) -> ServiceManifest:
    return ServiceManifest(
        id=ComponentId(component_id),
        system=system,  # type: ignore[arg-type]
        package=f"services.{system}.{component_id}",
        owns=frozenset(ComponentId(item) for item in owns),
    )


def _resource(component_id: str, *, owner: str | None = None) -> ResourceManifest:
    return ResourceManifest(
        id=ComponentId(component_id),
        system="state",
        package=f"resources.substrates.{component_id}",
        owner=None if owner is None else ComponentId(owner),
    )


def test_registry_lists_services_by_system_then_id() -> None:
    registry = ManifestRegistry()
    registry.register(_service("service_hosting_gateway", system="action"))
    registry.register(_service("service_advertisement_authority"))
    registry.register(_resource("substrate_ledger"))

    assert [m.id for m in registry.services()] == [
        "service_advertisement_authority",
        "service_hosting_gateway",
    ]
    assert [m.id for m in registry.resources()] == ["substrate_ledger"]
    assert registry.resources()[0].layer == 0
    assert registry.services()[0].layer == 1


def test_registry_rejects_mismatched_duplicate() -> None:
    registry = ManifestRegistry()
    registry.register(_service("service_a"))
    registry.register(_service("service_a"))

    with pytest.raises(ManifestError, match="registered twice"):
        registry.register(_service("service_a", system="action"))


def test_check_ownership_requires_both_sides_to_agree() -> None:
    registry = ManifestRegistry()
    registry.register(_resource("substrate_ledger", owner="service_a"))
    registry.register(_resource("substrate_object_store"))

    with pytest.raises(ManifestError, match="names owner 'service_a'"):
        registry.check_ownership()

    registry.register(_service("service_a", owns=frozenset({"substrate_ledger"})))
    registry.check_ownership()


@pytest.mark.parametrize(
    ("services", "message"),
    [
        (
            [
                _service("service_a", owns=frozenset({"substrate_ledger"})),
                _service("service_b", owns=frozenset({"substrate_ledger"})),
            ],
            "claimed by both",
        ),
        (
            [_service("service_a", owns=frozenset({"substrate_ledger", "substrate_gone"}))],
            "unknown resources",
        ),
    ],
)
def test_check_ownership_rejects_conflicting_or_dangling_claims(
    services: list[ServiceManifest], message: str
) -> None:
    registry = ManifestRegistry()
    registry.register(_resource("substrate_ledger", owner="service_a"))
    for service in services:
        registry.register(service)

    with pytest.raises(ManifestError, match=message):
        registry.check_ownership()


def test_manifest_rejects_invalid_id_and_package() -> None:
    with pytest.raises(ManifestError, match="invalid component id"):
        _service("Service-A")
    with pytest.raises(ManifestError, match="invalid package path"):
        ResourceManifest(
            id=ComponentId("substrate_x"), system="state", package="resources..x"
        )


def test_discover_component_modules_finds_registered_components() -> None:
    repo_root = Path(__file__).resolve().parents[2]

    modules = discover_component_modules(repo_root=repo_root)

    assert set(modules) == {
        "services.state.advertisement_authority.component",
        "services.action.hosting_gateway.component",
        "resources.substrates.ledger.component",
        "resources.substrates.object_store.component",
        "resources.adapters.pricing.component",
    }


def test_discover_component_modules_skips_non_registering_files(tmp_path: Path) -> None:
    """component.py files without a manifest registration are ignored."""
    package = tmp_path / "services" / "state" / "widget"
    package.mkdir(parents=True)
    (package / "component.py").write_text("VALUE = 1\n", encoding="utf-8")
    registering = tmp_path / "resources" / "substrates" / "thing"
    registering.mkdir(parents=True)
    (registering / "component.py").write_text(
        "MANIFEST = register_component(...)\n", encoding="utf-8"
    )
    nested = registering / "tests"
    nested.mkdir()
    (nested / "component.py").write_text(
        "MANIFEST = register_component(...)\n", encoding="utf-8"
    )

    assert discover_component_modules(repo_root=tmp_path) == (
        "resources.substrates.thing.component",
    )
