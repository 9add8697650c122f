"""Base abstraction for fabric-management endpoints."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

ROOT_ORG = "root"
ROOT_ORG_DN = "org-root"


def org_dn(name: str) -> str:
    """Distinguished name of an organization (root or one level below it)."""
    if name == ROOT_ORG:
        return ROOT_ORG_DN
    return f"{ROOT_ORG_DN}/org-{name}"


@dataclass
class ManagedObject:
    """One remote object, identified by its distinguished name."""
    class_id: str
    dn: str
    properties: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"class": self.class_id, "dn": self.dn, "properties": dict(self.properties)}

    def __str__(self) -> str:
        return f"{self.class_id} {self.dn}"


class FabricClient(ABC):
    """Abstract base class for fabric-management endpoint handlers.

    Every write goes through ``upsert``, which must be idempotent: issuing the
    same object twice updates it in place instead of creating a duplicate.
    """

    def __init__(self, client_id: str):
        self.client_id = client_id
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    # Session management
    @abstractmethod
    def connect(self) -> None:
        """Establish an authenticated session.

        Raises:
            AuthenticationError: If the endpoint refuses the credentials
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Close the session."""

    # Capability surface used by the apply orchestrator
    @abstractmethod
    def resolve_org(self, name: str) -> str:
        """Resolve an organization name to its distinguished name.

        Raises:
            FabricError: If the organization does not exist
        """

    @abstractmethod
    def upsert(self, obj: ManagedObject) -> None:
        """Create the object, or update it if it already exists.

        Raises:
            FabricError: If the endpoint rejects the object
        """

    # Context manager support
    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
        return False
