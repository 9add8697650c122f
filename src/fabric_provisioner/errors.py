"""Error taxonomy.

Validation problems are never raised; they are collected as records in a
ValidationReport. The exceptions below are for conditions that stop a run
(document, endpoint, authentication) or that a caller must react to per call
(a remote upsert that failed).
"""
from typing import Optional


class ProvisioningError(Exception):
    """Base class for all fabric-provisioner exceptions."""


class DocumentError(ProvisioningError):
    """Raised when the configuration document cannot be located, read or parsed."""


class EndpointError(ProvisioningError):
    """Raised when the fabric endpoint settings are missing or malformed."""


class FabricError(ProvisioningError):
    """Raised when the fabric endpoint rejects or fails a call."""

    def __init__(self, message: str, dn: str = "", status: Optional[int] = None):
        self.message = message
        self.dn = dn
        self.status = status
        super().__init__(f"{message} [{dn}]" if dn else message)


class AuthenticationError(FabricError):
    """Raised when the session with the fabric endpoint cannot be established."""


class InvalidTransition(ProvisioningError):
    """Raised when the engine is driven out of order."""
