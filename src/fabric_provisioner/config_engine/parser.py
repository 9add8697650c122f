"""Typed access to document sections.

The document only holds strings. ``EntryReader`` wraps one row and turns its
attributes into typed values, recording a located ErrorRecord for anything
missing or malformed instead of raising. Object validators are written
against it.
"""
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Type, TypeVar, Union

from . import fields
from .schema import ErrorRecord, Severity

E = TypeVar("E", bound=Enum)

# Attributes used to build a readable entry label, in preference order
LABEL_ATTRIBUTES = ("Name", "NameA")


class EntryReader:
    """Typed, error-recording view of one document row."""

    def __init__(
        self,
        section: str,
        row: Mapping[str, Any],
        position: int,
        records: Optional[list[ErrorRecord]] = None,
        parent: Optional["EntryReader"] = None,
        container: str = "",
    ):
        """
        Args:
            section: Section the row belongs to
            row: Attribute mapping of the row
            position: 1-based position of the row in its list
            records: Shared list findings are appended to
            parent: Enclosing row for nested lists
            container: Attribute of the parent holding this row's list
        """
        self.section = section
        self.row = row
        self.position = position
        self.records = records if records is not None else []
        self.parent = parent
        self.container = container
        self.failed = False

    @property
    def label(self) -> str:
        """Entry identifier used to locate findings in the document."""
        if self.parent is not None:
            own = f"{self.container}#{self.position}"
            return f"{self.parent.label} > {own}"

        for attr in LABEL_ATTRIBUTES:
            value = self.row.get(attr)
            if isinstance(value, str) and value:
                return value

        if "Module" in self.row and "Port" in self.row:
            return f"port {self.row.get('Module')}/{self.row.get('Port')}"
        return f"#{self.position}"

    # --- Findings ---

    def error(self, message: str) -> None:
        self.records.append(ErrorRecord(self.section, self.label, message))
        reader: Optional[EntryReader] = self
        while reader is not None:
            reader.failed = True
            reader = reader.parent

    def warning(self, message: str) -> None:
        self.records.append(ErrorRecord(self.section, self.label, message, Severity.WARNING))

    def check(self, attr: str, verdict: fields.FieldCheck) -> bool:
        """Record a rejected field check against an attribute."""
        if not verdict:
            self.error(f"{attr}: {verdict.reason}")
        return verdict.ok

    # --- Raw access ---

    def has(self, attr: str) -> bool:
        """Attribute present with a non-empty value."""
        value = self.row.get(attr)
        return value is not None and value != ""

    def raw(self, attr: str) -> str:
        """Attribute as a string ('' when absent)."""
        value = self.row.get(attr)
        if value is None:
            return ""
        if not isinstance(value, str):
            self.error(f"{attr}: must be a single value")
            return ""
        return value

    def warn_unknown(self, known: Iterable[str]) -> None:
        """Warn about attributes the section does not define (usually typos)."""
        known_set = set(known)
        for attr in self.row:
            if attr not in known_set:
                self.warning(f"unknown attribute '{attr}' ignored")

    # --- Typed access ---

    def text(self, attr: str, required: bool = False, default: Optional[str] = None) -> Optional[str]:
        value = self.raw(attr)
        if value == "":
            if required:
                self.error(f"missing required attribute {attr}")
            return default
        return value

    def name(self, attr: str = "Name", required: bool = True) -> Optional[str]:
        value = self.text(attr, required=required)
        if value is None:
            return None
        return value if self.check(attr, fields.is_name(value)) else None

    def org(self, attr: str = "Org") -> Optional[str]:
        """Owning organization; defaults to root."""
        value = self.text(attr, default="root")
        return value if self.check(attr, fields.is_name(value)) else None

    def choice(
        self,
        attr: str,
        choices: Union[Type[E], Iterable[str]],
        required: bool = False,
        default: Any = None,
    ) -> Any:
        """Case-insensitive member of a closed set.

        Returns the Enum member when ``choices`` is an Enum class, otherwise
        the canonical spelling from ``choices``.
        """
        value = self.text(attr, required=required)
        if value is None:
            return default

        if isinstance(choices, type) and issubclass(choices, Enum):
            spelled = [str(member.value) for member in choices]
            options = {str(member.value).lower(): member for member in choices}
        else:
            spelled = list(choices)
            options = {c.lower(): c for c in spelled}

        if not self.check(attr, fields.is_one_of(value, spelled, ignore_case=True)):
            return default
        return options[value.lower()]

    def integer(
        self,
        attr: str,
        lo: int,
        hi: int,
        required: bool = True,
        default: Optional[int] = None,
    ) -> Optional[int]:
        value = self.text(attr, required=required)
        if value is None:
            return default
        return int(value) if self.check(attr, fields.is_int_in_range(value, lo, hi)) else None

    def tag(self, attr: str, lo: int = 1, hi: int = 4095) -> Optional[int]:
        """Network tag; None when explicitly empty or absent."""
        value = self.raw(attr)
        if not self.check(attr, fields.is_tag(value, lo, hi)):
            return None
        return int(value) if value else None

    def flag(self, attr: str, default: bool = False) -> bool:
        value = self.text(attr)
        if value is None:
            return default
        return fields.parse_flag(value) if self.check(attr, fields.is_flag(value)) else default

    def rows(self, attr: str) -> list["EntryReader"]:
        """Nested list of rows under an attribute."""
        value = self.row.get(attr)
        if value is None or value == "":
            return []
        if not isinstance(value, list):
            self.error(f"{attr}: must be a list")
            return []

        readers = []
        for position, item in enumerate(value, start=1):
            if not isinstance(item, dict):
                self.error(f"{attr}#{position}: must be a record of attributes")
                continue
            readers.append(
                EntryReader(self.section, item, position, self.records, parent=self, container=attr)
            )
        return readers


def read_section(name: str, raw: Any, records: list[ErrorRecord]) -> Optional[list[EntryReader]]:
    """Wrap a list section's rows in readers.

    Returns:
        None when the section has no entries at all (undefined), otherwise one
        reader per well-formed row. Shape problems are appended to ``records``.
    """
    if raw is None or raw == "" or raw == []:
        return None

    if not isinstance(raw, list):
        records.append(ErrorRecord(name, "", "section must be a list of entries"))
        return []

    readers = []
    for position, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            records.append(ErrorRecord(name, f"#{position}", "entry must be a record of attributes"))
            continue
        readers.append(EntryReader(name, item, position, records))
    return readers
