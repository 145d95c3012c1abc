"""Component manifests and the process-local registry.

Each resource (L0 substrate or adapter) and service (L1) package declares one
manifest in its ``component.py``. The host imports those modules, checks
resource ownership, then builds resources before services.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from threading import Lock
from typing import Literal, NewType

ComponentId = NewType("ComponentId", str)

System = Literal["state", "action"]
ResourceKind = Literal["substrate", "adapter"]

_SYSTEM_ORDER: dict[str, int] = {"state": 0, "action": 1}
_ID_PATTERN = re.compile(r"[a-z][a-z0-9_]{1,62}")
_PACKAGE_PATTERN = re.compile(r"[A-Za-z_]\w*(\.[A-Za-z_]\w*)*")


class ManifestError(ValueError):
    """Raised for an invalid manifest or an inconsistent registry."""


@dataclass(frozen=True)
class ComponentManifest:
    """``package`` is the dotted path holding ``component.py`` (and a service's ``api.py``)."""

    id: ComponentId
    system: System
    package: str

    def __post_init__(self) -> None:
        if not _ID_PATTERN.fullmatch(self.id):
            raise ManifestError(f"invalid component id {self.id!r}")
        if not _PACKAGE_PATTERN.fullmatch(self.package):
            raise ManifestError(f"invalid package path {self.package!r}")


@dataclass(frozen=True)
class ResourceManifest(ComponentManifest):
    kind: ResourceKind = "substrate"
    # None marks a resource shared by several services.
    owner: ComponentId | None = None

    @property
    def layer(self) -> int:
        return 0


@dataclass(frozen=True)
class ServiceManifest(ComponentManifest):
    owns: frozenset[ComponentId] = frozenset()

    @property
    def layer(self) -> int:
        return 1


class ManifestRegistry:
    """Manifests by id. Re-registering an identical manifest is a no-op."""

    def __init__(self) -> None:
        self._manifests: dict[ComponentId, ComponentManifest] = {}
        self._lock = Lock()

    def register(self, manifest: ComponentManifest) -> None:
        with self._lock:
            existing = self._manifests.setdefault(manifest.id, manifest)
        if existing != manifest:
            raise ManifestError(
                f"component {manifest.id!r} registered twice with different manifests"
            )

    def resources(self) -> tuple[ResourceManifest, ...]:
        found = [m for m in self._manifests.values() if isinstance(m, ResourceManifest)]
        return tuple(sorted(found, key=lambda m: m.id))

    def services(self) -> tuple[ServiceManifest, ...]:
        """State services first, then action services, each sorted by id."""
        found = [m for m in self._manifests.values() if isinstance(m, ServiceManifest)]
        return tuple(sorted(found, key=lambda m: (_SYSTEM_ORDER[m.system], m.id)))

    def check_ownership(self) -> None:
        """Each owned resource and its owning service must name each other."""
        claims: dict[ComponentId, ComponentId] = {}
        for service in self.services():
            for resource_id in service.owns:
                if resource_id in claims:
                    raise ManifestError(
                        f"resource {resource_id!r} claimed by both "
                        f"{claims[resource_id]!r} and {service.id!r}"
                    )
                claims[resource_id] = service.id

        for resource in self.resources():
            claimed_by = claims.pop(resource.id, None)
            if resource.owner != claimed_by:
                raise ManifestError(
                    f"resource {resource.id!r} names owner {resource.owner!r} "
                    f"but is claimed by {claimed_by!r}"
                )
        if claims:
            raise ManifestError(f"services claim unknown resources: {sorted(claims)}")


_REGISTRY = ManifestRegistry()


def register_component(manifest: ComponentManifest) -> ComponentManifest:
    """Register ``manifest`` in the process registry and return it."""
    _REGISTRY.register(manifest)
    return manifest


def get_registry() -> ManifestRegistry:
    return _REGISTRY
