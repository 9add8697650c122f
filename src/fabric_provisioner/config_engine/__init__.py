"""Config Engine - Declarative provisioning of a compute fabric.

The Config Engine turns one document into fabric objects:
- Validate every section up front, collecting all errors
- Ask before applying when sections are undefined
- Apply in dependency order, one causal group at a time
- Keep going past failed groups and report them at the end

Usage:
    from fabric_provisioner.config_engine import ProvisioningEngine

    engine = ProvisioningEngine()
    engine.load(Path("site/"))
    report = engine.validate()
    if report.passed and engine.confirm(approve=True):
        result = engine.apply(client)
"""

from .engine import ProvisioningEngine, RunState
from .schema import (
    SECTION_ORDER,
    ApplyResult,
    ErrorRecord,
    GroupOutcome,
    Severity,
)
from .parser import EntryReader, read_section
from .registry import RegistryBuilder, SectionEntry, SectionRegistry
from .report import ValidationReport
from .validator import ConfigValidator
from .references import check_references
from .mapping import CausalGroup, build_groups
from .executor import ApplyOrchestrator

__all__ = [
    # Main engine
    "ProvisioningEngine",
    "RunState",
    # Records
    "SECTION_ORDER",
    "ApplyResult",
    "ErrorRecord",
    "GroupOutcome",
    "Severity",
    # Validation
    "EntryReader",
    "read_section",
    "ConfigValidator",
    "ValidationReport",
    "check_references",
    # Registry
    "RegistryBuilder",
    "SectionEntry",
    "SectionRegistry",
    # Apply (for advanced use)
    "CausalGroup",
    "build_groups",
    "ApplyOrchestrator",
]
