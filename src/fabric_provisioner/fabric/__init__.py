"""Fabric endpoint handlers."""
from typing import Optional

from ..config.endpoint import EndpointSettings
from .base import FabricClient, ManagedObject, org_dn, ROOT_ORG, ROOT_ORG_DN
from .http import HttpFabricClient
from .memory import MemoryFabricClient

__all__ = [
    "FabricClient",
    "ManagedObject",
    "org_dn",
    "ROOT_ORG",
    "ROOT_ORG_DN",
    "HttpFabricClient",
    "MemoryFabricClient",
    "create_client",
]


def create_client(settings: EndpointSettings, password: Optional[str] = None) -> FabricClient:
    """Factory function to create the client named by the settings."""
    if settings.client == "memory":
        return MemoryFabricClient(client_id=settings.label)
    return HttpFabricClient(settings, password=password)
