"""Authoritative in-process Python API for Advertisement Authority Service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from packages.uhrp_shared.config import UhrpSettings
from packages.uhrp_shared.envelope import Envelope, EnvelopeMeta
from resources.adapters.pricing import StoragePricingAdapter
from resources.substrates.ledger import LedgerSubstrate
from resources.substrates.object_store import ObjectStoreSubstrate
from services.state.advertisement_authority.domain import (
    ContentTypeResult,
    HealthStatus,
    IssueResult,
    ListResult,
    RenewalResult,
    ResolvedAdvertisement,
)


class AdvertisementAuthorityService(ABC):
    """Public API for UHRP advertisement lifecycle operations."""

    @abstractmethod
    def issue(
        self,
        *,
        meta: EnvelopeMeta,
        uhrp_url: str,
        object_id: str,
        url: str,
        uploader_identity_key: str,
        expiry_time: int,
        content_length: int,
        content_type: str | None = None,
    ) -> Envelope[IssueResult]:
        """Create, label and relay one new advertisement output."""

    @abstractmethod
    def admin_advertise(
        self,
        *,
        meta: EnvelopeMeta,
        admin_token: str,
        uhrp_url: str,
        object_id: str,
        uploader_identity_key: str,
        expiry_time: int,
        content_length: int,
        url: str | None = None,
        content_type: str | None = None,
    ) -> Envelope[IssueResult]:
        """Issue on behalf of a storage notifier holding the admin token."""

    @abstractmethod
    def find(
        self,
        *,
        meta: EnvelopeMeta,
        uploader_identity_key: str,
        uhrp_url: str | None = None,
        object_id: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Envelope[ResolvedAdvertisement]:
        """Resolve the current advertisement of one content hash or object id."""

    @abstractmethod
    def list_uploads(
        self,
        *,
        meta: EnvelopeMeta,
        uploader_identity_key: str,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Envelope[ListResult]:
        """List live advertisements of one uploader in ledger scan order."""

    @abstractmethod
    def renew(
        self,
        *,
        meta: EnvelopeMeta,
        uhrp_url: str,
        uploader_identity_key: str,
        additional_minutes: int,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Envelope[RenewalResult]:
        """Redeem the current advertisement and reissue it with a later expiry."""

    @abstractmethod
    def lookup_content_type(
        self, *, meta: EnvelopeMeta, object_id: str
    ) -> Envelope[ContentTypeResult]:
        """Choose the MIME type a stored object is served with."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return service and owned dependency readiness status."""


def build_advertisement_authority_service(
    *,
    settings: UhrpSettings,
    ledger: LedgerSubstrate,
    object_store: ObjectStoreSubstrate,
    pricing: StoragePricingAdapter,
    clock: Callable[[], float] | None = None,
) -> AdvertisementAuthorityService:
    """Build default Advertisement Authority implementation from typed settings."""
    from services.state.advertisement_authority.config import (
        resolve_advertisement_authority_settings,
    )
    from services.state.advertisement_authority.implementation import (
        DefaultAdvertisementAuthorityService,
    )

    return DefaultAdvertisementAuthorityService(
        settings=resolve_advertisement_authority_settings(settings),
        ledger=ledger,
        object_store=object_store,
        pricing=pricing,
        clock=clock,
    )
