"""Authoritative in-process Python API for Hosting Gateway Service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Callable

from packages.uhrp_shared.config import UhrpSettings
from packages.uhrp_shared.envelope import Envelope, EnvelopeMeta
from resources.adapters.pricing import StoragePricingAdapter
from resources.substrates.object_store import ObjectStoreSubstrate
from services.action.hosting_gateway.domain import (
    AcceptedUpload,
    HealthStatus,
    Quote,
    UploadAuthorization,
)
from services.state.advertisement_authority.service import (
    AdvertisementAuthorityService,
)


class HostingGatewayService(ABC):
    """Public API for pricing, authorizing and accepting paid uploads."""

    @abstractmethod
    def quote(
        self,
        *,
        meta: EnvelopeMeta,
        file_size: object,
        retention_minutes: object,
    ) -> Envelope[Quote]:
        """Price hosting ``file_size`` bytes for ``retention_minutes`` minutes."""

    @abstractmethod
    def authorize_upload(
        self,
        *,
        meta: EnvelopeMeta,
        uploader_identity_key: str,
        file_size: object,
        retention_minutes: object,
    ) -> Envelope[UploadAuthorization]:
        """Mint an object id and a signed upload URL for one paid upload."""

    @abstractmethod
    def accept_upload(
        self,
        *,
        meta: EnvelopeMeta,
        params: Mapping[str, str],
        content: bytes,
        content_type: str | None = None,
    ) -> Envelope[AcceptedUpload]:
        """Store bytes sent to a signed upload URL and advertise them."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return service and dependency readiness status."""


def build_hosting_gateway_service(
    *,
    settings: UhrpSettings,
    advertisements: AdvertisementAuthorityService,
    object_store: ObjectStoreSubstrate,
    pricing: StoragePricingAdapter,
    clock: Callable[[], float] | None = None,
) -> HostingGatewayService:
    """Build default Hosting Gateway implementation from typed settings."""
    from services.action.hosting_gateway.config import resolve_hosting_gateway_settings
    from services.action.hosting_gateway.implementation import (
        DefaultHostingGatewayService,
    )

    return DefaultHostingGatewayService(
        settings=resolve_hosting_gateway_settings(settings),
        advertisements=advertisements,
        object_store=object_store,
        pricing=pricing,
        clock=clock,
    )
