"""Validation report: the error aggregator.

Collects findings from every section without stopping at the first one, and
only gives a verdict once every known section has been visited exactly once.
Sections that were not supplied at all are kept apart from sections with bad
entries: the former are notices the operator can accept, the latter always
fail the run.
"""
import logging
from collections import defaultdict
from typing import Iterable

from .schema import ErrorRecord, Severity

logger = logging.getLogger(__name__)


class ValidationReport:
    """Accumulates ErrorRecords keyed by (section, entry)."""

    def __init__(self, sections: Iterable[str]):
        """
        Args:
            sections: Every section the validator is expected to visit
        """
        self.expected = tuple(sections)
        self.records: list[ErrorRecord] = []
        self.undefined: list[str] = []
        self._visited: list[str] = []
        self._closed = False

    # --- Accumulation ---

    def visit(self, section: str) -> None:
        """Mark a section as visited. Each section is visited once."""
        if self._closed:
            raise RuntimeError("Validation report is already closed")
        if section in self._visited:
            raise RuntimeError(f"Section {section} visited twice")
        self._visited.append(section)

    def mark_undefined(self, section: str) -> None:
        """Record a section with no entries supplied."""
        if section not in self.undefined:
            self.undefined.append(section)

    def add(self, record: ErrorRecord) -> None:
        if self._closed:
            raise RuntimeError("Validation report is already closed")
        self.records.append(record)

    def extend(self, records: Iterable[ErrorRecord]) -> None:
        for record in records:
            self.add(record)

    def error(self, section: str, entry: str, message: str) -> None:
        self.add(ErrorRecord(section, entry, message))

    def warning(self, section: str, entry: str, message: str) -> None:
        self.add(ErrorRecord(section, entry, message, Severity.WARNING))

    def close(self) -> None:
        """Finish accumulation; every expected section must have been visited."""
        missing = [s for s in self.expected if s not in self._visited]
        if missing:
            raise RuntimeError(f"Sections never visited: {', '.join(missing)}")
        self._closed = True

    # --- Verdict ---

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def errors(self) -> list[ErrorRecord]:
        return [r for r in self.records if r.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ErrorRecord]:
        return [r for r in self.records if r.severity == Severity.WARNING]

    @property
    def passed(self) -> bool:
        """True when no errors were recorded. Only defined once closed."""
        if not self._closed:
            raise RuntimeError("Validation verdict requested before every section was visited")
        return not self.errors

    @property
    def needs_confirmation(self) -> bool:
        """Undefined sections must be confirmed by the operator before apply."""
        return bool(self.undefined)

    def errors_for(self, section: str) -> list[ErrorRecord]:
        return [r for r in self.errors if r.section == section]

    def by_entry(self) -> dict[tuple[str, str], list[ErrorRecord]]:
        """Findings grouped by (section, entry)."""
        grouped: dict[tuple[str, str], list[ErrorRecord]] = defaultdict(list)
        for record in self.records:
            grouped[(record.section, record.entry)].append(record)
        return dict(grouped)

    def summary(self) -> str:
        """Human-readable report of every finding."""
        lines = []
        if self.errors:
            lines.append(f"{len(self.errors)} validation error(s):")
            lines.extend(f"  - {r}" for r in self.errors)
        if self.warnings:
            lines.append(f"{len(self.warnings)} warning(s):")
            lines.extend(f"  - {r}" for r in self.warnings)
        if self.undefined:
            lines.append(f"Undefined sections: {', '.join(self.undefined)}")
        if not lines:
            lines.append("Validation passed")
        return "\n".join(lines)

    def log(self) -> None:
        """Write every finding to the log at its severity."""
        for record in self.errors:
            logger.error(str(record))
        for record in self.warnings:
            logger.warning(str(record))
        for section in self.undefined:
            logger.warning(f"{section}: section is undefined and will be skipped")
