"""Configuration document loading and normalization.

The document is a YAML mapping of named sections. It is read with the YAML
base loader so that every leaf arrives as a string; meaning (numbers, flags,
enumerations) is assigned later by the validators. Leaf strings are stripped
of surrounding whitespace once, here, before anything looks at them.

```yaml
Pools:
  - Kind: mac
    Name: MAC-A
    From: 00:25:B5:99:00:00
    To: 00:25:B5:99:00:FF
VLANs:
  - Name: storage
    Fabric: dual
    Id: 18
    IdB: 19
```
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import yaml

from ..errors import DocumentError

logger = logging.getLogger(__name__)

# Searched in order inside the directory given on the command line
DOCUMENT_NAMES = ("fabric.yaml", "fabric.yml", "config.yaml")


def find_document(path: Path) -> Path:
    """Locate the configuration document.

    Args:
        path: A directory holding one of DOCUMENT_NAMES, or the document itself

    Raises:
        DocumentError: If nothing readable is found
    """
    if path.is_file():
        return path
    if not path.is_dir():
        raise DocumentError(f"Path does not exist: {path}")

    for name in DOCUMENT_NAMES:
        candidate = path / name
        if candidate.is_file():
            return candidate

    raise DocumentError(
        f"No configuration document in {path} (looked for {', '.join(DOCUMENT_NAMES)})"
    )


def normalize(node: Any) -> Any:
    """Strip whitespace from every leaf string, recursing into lists and mappings."""
    if isinstance(node, str):
        return node.strip()
    if isinstance(node, list):
        return [normalize(item) for item in node]
    if isinstance(node, dict):
        return {str(key).strip(): normalize(value) for key, value in node.items()}
    return node


@dataclass(frozen=True)
class ConfigDocument:
    """Root container of named sections, read-only after load."""
    path: Optional[Path]
    sections: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "sections", MappingProxyType(dict(self.sections)))

    def section(self, name: str) -> Any:
        """Raw content of a section, or None when it is not in the document."""
        return self.sections.get(name)

    def names(self) -> list[str]:
        return list(self.sections.keys())

    @classmethod
    def from_text(cls, text: str, path: Optional[Path] = None) -> "ConfigDocument":
        """Parse a document from YAML text.

        Raises:
            DocumentError: If the text is not YAML or its root is not a mapping
        """
        try:
            data = yaml.load(text, Loader=yaml.BaseLoader)
        except yaml.YAMLError as e:
            raise DocumentError(f"Invalid YAML in {path or 'document'}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise DocumentError(
                f"Document root must be a mapping of sections, got {type(data).__name__}"
            )

        return cls(path=path, sections=normalize(data))


def load_document(path: Path) -> ConfigDocument:
    """Locate, read and parse the configuration document.

    Raises:
        DocumentError: On a bad path, an unreadable file or unparsable YAML
    """
    doc_path = find_document(path)
    logger.info(f"Loading configuration document {doc_path}")

    try:
        text = doc_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentError(f"Cannot read {doc_path}: {e}") from e

    document = ConfigDocument.from_text(text, doc_path)
    logger.debug(f"Document sections: {', '.join(document.names()) or '(none)'}")
    return document
