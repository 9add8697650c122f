"""Document loading and endpoint configuration."""
from .document import ConfigDocument, load_document, find_document, DOCUMENT_NAMES
from .endpoint import EndpointSettings, load_endpoint

__all__ = [
    "ConfigDocument",
    "load_document",
    "find_document",
    "DOCUMENT_NAMES",
    "EndpointSettings",
    "load_endpoint",
]
