"""Fabric endpoint settings.

Read from the ``Endpoint`` singleton section of the document, with
environment variables taking precedence:

    FABRIC_CLIENT    http or memory
    FABRIC_URL       Base URL of the management endpoint
    FABRIC_USERNAME  Login name
    FABRIC_PASSWORD  Password (the variable name is configurable via PasswordEnv)
"""
import logging
import os
from typing import Literal, Mapping, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..errors import EndpointError
from .document import ConfigDocument

logger = logging.getLogger(__name__)

ENDPOINT_SECTION = "Endpoint"

# Environment variable -> document key
ENV_OVERRIDES = {
    "FABRIC_CLIENT": "Client",
    "FABRIC_URL": "Url",
    "FABRIC_USERNAME": "Username",
}


class EndpointSettings(BaseModel):
    """Connection settings for the fabric-management endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    client: Literal["http", "memory"] = Field("http", alias="Client")
    url: Optional[AnyHttpUrl] = Field(None, alias="Url")
    username: str = Field("admin", alias="Username")
    password_env: str = Field("FABRIC_PASSWORD", alias="PasswordEnv")
    # Per-call deadline in seconds
    timeout: float = Field(30.0, alias="Timeout", gt=0)
    verify_ssl: bool = Field(True, alias="VerifySsl")

    @model_validator(mode="after")
    def _require_url(self) -> "EndpointSettings":
        if self.client == "http" and self.url is None:
            raise ValueError("Url is required for the http client")
        return self

    @property
    def base_url(self) -> str:
        return str(self.url).rstrip("/") if self.url else ""

    @property
    def label(self) -> str:
        """Short identifier for logs and audit records."""
        return self.base_url or self.client

    def get_password(self) -> str:
        """Password from the configured environment variable ('' if unset)."""
        return os.environ.get(self.password_env, "")


def load_endpoint(
    document: ConfigDocument,
    environ: Optional[Mapping[str, str]] = None,
) -> EndpointSettings:
    """Build endpoint settings from the document and the environment.

    Raises:
        EndpointError: If the settings are malformed
    """
    environ = os.environ if environ is None else environ

    raw = document.section(ENDPOINT_SECTION) or {}
    if not isinstance(raw, dict):
        raise EndpointError(f"{ENDPOINT_SECTION} must be a single record")

    values = dict(raw)
    for env_name, key in ENV_OVERRIDES.items():
        if environ.get(env_name):
            values[key] = environ[env_name]

    try:
        settings = EndpointSettings.model_validate(values)
    except ValidationError as e:
        raise EndpointError(f"Invalid {ENDPOINT_SECTION} settings: {e}") from e

    logger.debug(f"Endpoint: client={settings.client} target={settings.label}")
    return settings
