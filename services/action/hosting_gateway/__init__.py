"""Hosting Gateway Service: quotes, signed upload URLs and upload acceptance."""

from services.action.hosting_gateway.component import MANIFEST, SERVICE_COMPONENT_ID
from services.action.hosting_gateway.service import (
    HostingGatewayService,
    build_hosting_gateway_service,
)

__all__ = [
    "MANIFEST",
    "SERVICE_COMPONENT_ID",
    "HostingGatewayService",
    "build_hosting_gateway_service",
]
