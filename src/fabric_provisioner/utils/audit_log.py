"""Audit trail of applied causal groups.

Every group the orchestrator issues, successful or not, becomes one JSON line
in ``audit.log``. All lines written by one run share a run id, so a partial
apply can be traced object by object afterwards. Records go through a
dedicated logger and never reach the operator-facing output.
"""
import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

audit_logger = logging.getLogger("fabric_provisioner.audit")
audit_logger.propagate = False

AUDIT_FILE_NAME = "audit.log"


def setup_audit_logging(log_dir: Path) -> Path:
    """Send audit records to ``<log_dir>/audit.log`` (rotated at 10 MB).

    Returns:
        Path of the audit file
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    audit_file = log_dir / AUDIT_FILE_NAME

    handler = RotatingFileHandler(audit_file, maxBytes=10 * 1024 * 1024, backupCount=10, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))

    audit_logger.handlers.clear()
    audit_logger.setLevel(logging.INFO)
    audit_logger.addHandler(handler)
    return audit_file


@dataclass
class ChangeRecord:
    """One causal group as issued against the fabric."""
    timestamp: str
    run_id: str
    endpoint: str
    section: str
    group: str
    success: bool
    objects: list[str] = field(default_factory=list)
    applied: int = 0
    error: Optional[str] = None

    @property
    def not_applied(self) -> list[str]:
        """Distinguished names that never reached the fabric."""
        return self.objects[self.applied:]

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, line: str) -> "ChangeRecord":
        return cls(**json.loads(line))


class ChangeTracker:
    """Collects the audit records of one run."""

    def __init__(self, endpoint: str, run_id: Optional[str] = None):
        self.endpoint = endpoint
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.records: list[ChangeRecord] = []

    def log_change(
        self,
        section: str,
        group: str,
        success: bool,
        objects: list[str],
        applied: int,
        error: Optional[str] = None,
    ) -> ChangeRecord:
        """Record the outcome of a causal group.

        Args:
            section: Document section the group came from
            group: Group label (entry identity)
            success: Whether every call in the group succeeded
            objects: Distinguished names in the group, in issue order
            applied: How many of them reached the fabric
            error: Error message if the group failed

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            run_id=self.run_id,
            endpoint=self.endpoint,
            section=section,
            group=group,
            success=success,
            objects=list(objects),
            applied=applied,
            error=error,
        )
        self.records.append(record)
        audit_logger.info(record.to_json())
        return record

    @property
    def failed(self) -> list[ChangeRecord]:
        return [r for r in self.records if not r.success]


def _iter_records(log_file: Path) -> Iterator[ChangeRecord]:
    with open(log_file, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                yield ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # not an audit record


def read_changes(
    log_file: Path,
    section: Optional[str] = None,
    run_id: Optional[str] = None,
) -> list[ChangeRecord]:
    """Read audit records back, in file order.

    Args:
        log_file: Path to the audit log
        section: Only records for this section
        run_id: Only records written by this run
    """
    if not log_file.exists():
        return []
    return [
        record for record in _iter_records(log_file)
        if (section is None or record.section == section)
        and (run_id is None or record.run_id == run_id)
    ]
