"""Component declaration for the object store substrate resource."""

from __future__ import annotations

from collections.abc import Mapping

from packages.uhrp_shared.config import UhrpSettings
from packages.uhrp_shared.manifest import (
    ComponentId,
    ResourceManifest,
    register_component,
)

RESOURCE_COMPONENT_ID = ComponentId("substrate_object_store")

MANIFEST = register_component(
    ResourceManifest(
        id=RESOURCE_COMPONENT_ID,
        system="state",
        kind="substrate",
        package="resources.substrates.object_store",
    )
)


def build_component(
    *, settings: UhrpSettings, components: Mapping[str, object]
) -> object:
    """Build the local-disk object store."""
    del components
    from resources.substrates.object_store.config import (
        resolve_object_store_substrate_settings,
    )
    from resources.substrates.object_store.local_object_store import (
        LocalObjectStoreSubstrate,
    )

    return LocalObjectStoreSubstrate(
        settings=resolve_object_store_substrate_settings(settings),
    )
