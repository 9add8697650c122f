"""HTTP handler for fabric-management endpoints.

The endpoint exposes a small managed-object API:

    POST /api/login          {"username", "password"} -> {"token"}
    GET  /api/mo/<dn>        200 if the object exists, 404 if not
    PUT  /api/mo/<dn>        {"class", "properties"}; create-or-update
    POST /api/logout

PUT is the idempotent upsert. Every call carries the configured timeout, so a
stalled endpoint fails the call instead of blocking the run.
"""
import logging
from typing import Optional

import httpx

from ..config.endpoint import EndpointSettings
from ..errors import AuthenticationError, FabricError
from ..utils.connection import with_retry
from ..utils.logging_config import timed
from .base import FabricClient, ManagedObject, ROOT_ORG_DN, org_dn

logger = logging.getLogger(__name__)


class HttpFabricClient(FabricClient):
    """Fabric endpoint reached over HTTP(S) with token authentication."""

    def __init__(
        self,
        settings: EndpointSettings,
        password: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Endpoint settings (URL, username, timeout, TLS)
            password: Password; falls back to the settings' environment variable
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        super().__init__(settings.label)
        self.settings = settings
        self._password = password if password is not None else settings.get_password()
        self._transport = transport
        self._http: Optional[httpx.Client] = None
        self._token: Optional[str] = None

    @timed("login")
    def connect(self) -> None:
        """Open an HTTP session and log in."""
        logger.info(f"Connecting to fabric endpoint {self.settings.base_url}")

        if self._http is None:
            self._http = httpx.Client(
                base_url=self.settings.base_url,
                timeout=httpx.Timeout(self.settings.timeout),
                verify=self.settings.verify_ssl,
                transport=self._transport,
            )

        try:
            self._login()
        except httpx.HTTPError as e:
            self._close()
            raise FabricError(f"Cannot reach {self.client_id}: {e}") from e
        except AuthenticationError:
            self._close()
            raise
        self._connected = True
        logger.info(f"Session established with {self.client_id}")

    @with_retry(max_attempts=3, min_wait=1, max_wait=10)
    def _login(self) -> None:
        resp = self._http.post(
            "/api/login",
            json={"username": self.settings.username, "password": self._password},
        )
        if resp.status_code in (401, 403):
            raise AuthenticationError(
                f"Login rejected for user '{self.settings.username}'",
                status=resp.status_code,
            )
        if resp.status_code != 200:
            raise AuthenticationError(
                f"Login failed with HTTP {resp.status_code}: {resp.text[:200]}",
                status=resp.status_code,
            )

        try:
            self._token = resp.json()["token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthenticationError(f"Unexpected login response: {e}") from e

        self._http.headers["Authorization"] = f"Bearer {self._token}"

    def disconnect(self) -> None:
        """Log out and close the HTTP session."""
        if self._http is None:
            return

        try:
            if self._token:
                self._http.post("/api/logout")
        except httpx.HTTPError as e:
            logger.warning(f"Logout from {self.client_id} failed: {e}")
        finally:
            self._close()

    def _close(self) -> None:
        if self._http is not None:
            self._http.close()
        self._http = None
        self._token = None
        self._connected = False

    @timed("resolve_org")
    def resolve_org(self, name: str) -> str:
        dn = org_dn(name)
        if dn == ROOT_ORG_DN:
            return dn

        resp = self._request("GET", dn)
        if resp.status_code == 404:
            raise FabricError(f"Organization '{name}' does not exist", dn=dn, status=404)
        self._raise_for_status(resp, dn)
        return dn

    @timed("upsert")
    def upsert(self, obj: ManagedObject) -> None:
        logger.debug(f"Upsert {obj}")
        resp = self._request(
            "PUT",
            obj.dn,
            json={"class": obj.class_id, "properties": obj.properties},
        )
        self._raise_for_status(resp, obj.dn)

    def _request(self, method: str, dn: str, **kwargs) -> httpx.Response:
        if not self._connected or self._http is None:
            raise FabricError("No session: call connect() first", dn=dn)

        try:
            return self._http.request(method, f"/api/mo/{dn}", **kwargs)
        except httpx.TimeoutException as e:
            raise FabricError(
                f"{method} timed out after {self.settings.timeout}s", dn=dn
            ) from e
        except httpx.HTTPError as e:
            raise FabricError(f"{method} failed: {e}", dn=dn) from e

    @staticmethod
    def _raise_for_status(resp: httpx.Response, dn: str) -> None:
        if resp.status_code in (401, 403):
            raise AuthenticationError("Session no longer authorized", dn=dn, status=resp.status_code)
        if resp.status_code >= 400:
            raise FabricError(
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                dn=dn,
                status=resp.status_code,
            )
