"""In-memory fabric.

Used for rehearsal runs (``Client: memory``) and for tests. It behaves like
the object database of a fabric-management endpoint keyed by distinguished
name, so upserting the same object twice leaves one object behind.

Features
- Counts upsert calls and stored objects per class
- Can inject failures for chosen distinguished names or classes
- Knows the root organization plus any organization upserted or pre-seeded
"""
import logging
from collections import Counter
from typing import Iterable, Optional

from ..errors import AuthenticationError, FabricError
from .base import FabricClient, ManagedObject, ROOT_ORG_DN, org_dn

logger = logging.getLogger(__name__)

ORG_CLASS = "orgOrg"


class MemoryFabricClient(FabricClient):
    """Fabric endpoint simulated in process memory."""

    def __init__(
        self,
        client_id: str = "memory",
        orgs: Iterable[str] = (),
        fail_on: Iterable[str] = (),
        reject_login: bool = False,
    ):
        """
        Initialize the in-memory fabric.

        Args:
            client_id: Identifier used in logs
            orgs: Sub-organizations that already exist
            fail_on: Distinguished names or class ids whose upsert must fail
            reject_login: Refuse the session, to exercise authentication failure
        """
        super().__init__(client_id)
        self.objects: dict[str, ManagedObject] = {}
        self.fail_on = set(fail_on)
        self.reject_login = reject_login
        self.upsert_calls: list[str] = []
        for name in orgs:
            dn = org_dn(name)
            self.objects[dn] = ManagedObject(ORG_CLASS, dn, {"name": name})

    def connect(self) -> None:
        if self.reject_login:
            raise AuthenticationError("Login refused by in-memory fabric")
        self._connected = True
        logger.debug(f"Session opened on {self.client_id}")

    def disconnect(self) -> None:
        self._connected = False

    def resolve_org(self, name: str) -> str:
        self._require_session()
        dn = org_dn(name)
        if dn != ROOT_ORG_DN and dn not in self.objects:
            raise FabricError(f"Organization '{name}' does not exist", dn=dn, status=404)
        return dn

    def upsert(self, obj: ManagedObject) -> None:
        self._require_session()
        self.upsert_calls.append(obj.dn)

        if obj.dn in self.fail_on or obj.class_id in self.fail_on:
            raise FabricError(f"Injected failure for {obj.class_id}", dn=obj.dn, status=500)

        existing = self.objects.get(obj.dn)
        if existing is None:
            self.objects[obj.dn] = ManagedObject(obj.class_id, obj.dn, dict(obj.properties))
        elif existing.class_id != obj.class_id:
            raise FabricError(
                f"Class mismatch: {obj.dn} is {existing.class_id}, not {obj.class_id}",
                dn=obj.dn,
                status=409,
            )
        else:
            existing.properties.update(obj.properties)

    def get(self, dn: str) -> Optional[ManagedObject]:
        """Return the stored object, if any."""
        return self.objects.get(dn)

    def count(self, class_id: Optional[str] = None) -> int:
        """Number of stored objects, optionally restricted to one class."""
        if class_id is None:
            return len(self.objects)
        return sum(1 for obj in self.objects.values() if obj.class_id == class_id)

    def class_counts(self) -> Counter:
        """Stored object count per class."""
        return Counter(obj.class_id for obj in self.objects.values())

    def _require_session(self) -> None:
        if not self._connected:
            raise FabricError("No session: call connect() first")
