"""Section registry.

Built once while validating, then handed to the apply orchestrator. Maps each
section name to its presence flag and its typed entries. Nothing is added or
changed after ``freeze()``.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional


@dataclass(frozen=True)
class SectionEntry:
    """Presence flag plus the typed entries of one section."""
    name: str
    present: bool
    entries: tuple = ()


class SectionRegistry:
    """Read-only map from section name to SectionEntry."""

    def __init__(self, sections: Mapping[str, SectionEntry]):
        self._sections = MappingProxyType(dict(sections))

    def __contains__(self, name: str) -> bool:
        return name in self._sections

    def __iter__(self) -> Iterator[str]:
        return iter(self._sections)

    def section(self, name: str) -> SectionEntry:
        """Registry slot for a section.

        Raises:
            KeyError: If the section was never recorded
        """
        if name not in self._sections:
            raise KeyError(f"Unknown section: {name}")
        return self._sections[name]

    def is_present(self, name: str) -> bool:
        entry = self._sections.get(name)
        return entry is not None and entry.present

    def entries(self, name: str) -> tuple:
        return self.section(name).entries

    def present_sections(self) -> list[str]:
        return [name for name, entry in self._sections.items() if entry.present]

    def undefined_sections(self) -> list[str]:
        return [name for name, entry in self._sections.items() if not entry.present]

    def names(self, section: str, kind: Optional[Any] = None) -> set[str]:
        """Names of the entries of a section, optionally of one kind only."""
        if not self.is_present(section):
            return set()
        return {
            entity.name
            for entity in self.entries(section)
            if kind is None or getattr(entity, "kind", None) == kind
        }


class RegistryBuilder:
    """Collects sections during validation; each section is recorded once."""

    def __init__(self):
        self._sections: dict[str, SectionEntry] = {}

    def record(self, name: str, entries: Optional[list]) -> None:
        """Record a section.

        Args:
            name: Section name
            entries: Typed entries, or None when the section was not supplied
        """
        if name in self._sections:
            raise RuntimeError(f"Section {name} recorded twice")
        if entries is None:
            self._sections[name] = SectionEntry(name, present=False)
        else:
            self._sections[name] = SectionEntry(name, present=True, entries=tuple(entries))

    def freeze(self) -> SectionRegistry:
        return SectionRegistry(self._sections)
