"""Object store substrate resource exports."""

from resources.substrates.object_store.component import MANIFEST, RESOURCE_COMPONENT_ID
from resources.substrates.object_store.config import (
    ObjectStoreSubstrateSettings,
    resolve_object_store_substrate_settings,
)
from resources.substrates.object_store.local_object_store import (
    LocalObjectStoreSubstrate,
)
from resources.substrates.object_store.substrate import (
    InvalidUploadSignatureError,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    ObjectStoreError,
    ObjectStoreHealthStatus,
    ObjectStoreSubstrate,
    SignedUpload,
    StoredObjectMetadata,
    UploadGrant,
)

__all__ = [
    "MANIFEST",
    "RESOURCE_COMPONENT_ID",
    "InvalidUploadSignatureError",
    "LocalObjectStoreSubstrate",
    "ObjectAlreadyExistsError",
    "ObjectNotFoundError",
    "ObjectStoreError",
    "ObjectStoreHealthStatus",
    "ObjectStoreSubstrate",
    "ObjectStoreSubstrateSettings",
    "SignedUpload",
    "StoredObjectMetadata",
    "UploadGrant",
    "resolve_object_store_substrate_settings",
]
