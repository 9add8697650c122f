"""Utility modules for retry, logging and audit."""
from .connection import with_retry, RETRYABLE_EXCEPTIONS
from .logging_config import (
    setup_logging,
    timed,
    timed_section_sync,
    perf_logger,
)
from .audit_log import ChangeRecord, ChangeTracker, setup_audit_logging, read_changes

__all__ = [
    "with_retry",
    "RETRYABLE_EXCEPTIONS",
    "setup_logging",
    "timed",
    "timed_section_sync",
    "perf_logger",
    "ChangeRecord",
    "ChangeTracker",
    "setup_audit_logging",
    "read_changes",
]
