"""Advertisement Authority Service: issue, resolve, list and renew UHRP advertisements."""

from services.state.advertisement_authority.component import MANIFEST, SERVICE_COMPONENT_ID
from services.state.advertisement_authority.service import (
    AdvertisementAuthorityService,
    build_advertisement_authority_service,
)

__all__ = [
    "MANIFEST",
    "SERVICE_COMPONENT_ID",
    "AdvertisementAuthorityService",
    "build_advertisement_authority_service",
]
