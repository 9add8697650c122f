"""Provisioning engine: drives one run through its states.

Provides a single entry point for:
1. Loading the document
2. Validating every section
3. Confirming undefined sections with the operator
4. Applying the causal groups against a fabric client

    IDLE -> LOADED -> VALIDATED -> {ABORTED | CONFIRMED} -> APPLYING -> DONE
"""
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from ..config.document import ConfigDocument, load_document
from ..errors import DocumentError, FabricError, InvalidTransition
from ..fabric.base import FabricClient
from ..utils.audit_log import ChangeTracker
from .executor import ApplyOrchestrator
from .registry import SectionRegistry
from .report import ValidationReport
from .schema import ApplyResult
from .validator import ConfigValidator

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    LOADED = "loaded"
    VALIDATED = "validated"
    ABORTED = "aborted"
    CONFIRMED = "confirmed"
    APPLYING = "applying"
    DONE = "done"


class ProvisioningEngine:
    """
    Run state machine around validation and apply.

    Usage:
        engine = ProvisioningEngine()
        engine.load(path)
        if engine.validate().passed and engine.confirm(approve=answer):
            result = engine.apply(client)
    """

    def __init__(self, validator: Optional[ConfigValidator] = None):
        self.validator = validator or ConfigValidator()
        self.state = RunState.IDLE
        self.document: Optional[ConfigDocument] = None
        self.registry: Optional[SectionRegistry] = None
        self.report: Optional[ValidationReport] = None
        self.result: Optional[ApplyResult] = None

    def _require(self, *states: RunState) -> None:
        if self.state not in states:
            expected = " or ".join(s.value for s in states)
            raise InvalidTransition(f"Engine is {self.state.value}, expected {expected}")

    def _move(self, state: RunState) -> None:
        logger.debug(f"Run state: {self.state.value} -> {state.value}")
        self.state = state

    def load(self, path: Path) -> ConfigDocument:
        """
        Load the document.

        Raises:
            DocumentError: If the document cannot be found or parsed (run aborts)
        """
        self._require(RunState.IDLE)
        try:
            self.document = load_document(Path(path))
        except DocumentError:
            self._move(RunState.ABORTED)
            raise
        self._move(RunState.LOADED)
        return self.document

    def use_document(self, document: ConfigDocument) -> None:
        """Start from an already loaded document."""
        self._require(RunState.IDLE)
        self.document = document
        self._move(RunState.LOADED)

    def validate(self) -> ValidationReport:
        """
        Validate every section of the loaded document.

        Returns:
            Closed ValidationReport; a failing verdict aborts the run
        """
        self._require(RunState.LOADED)
        self.registry, self.report = self.validator.validate(self.document)
        self.report.log()

        if self.report.passed:
            logger.info(
                f"Validation passed: {len(self.registry.present_sections())} sections defined, "
                f"{len(self.report.warnings)} warning(s)"
            )
            self._move(RunState.VALIDATED)
        else:
            logger.error(f"Validation failed with {len(self.report.errors)} error(s)")
            self._move(RunState.ABORTED)
        return self.report

    def confirm(self, approve: bool = False) -> bool:
        """
        Confirm the run before apply.

        Confirmation is automatic when every section is defined. Otherwise
        ``approve`` is the operator's answer; declining aborts the run.

        Returns:
            True when the run may proceed
        """
        self._require(RunState.VALIDATED)
        if self.report.needs_confirmation and not approve:
            logger.warning(
                f"Run declined with undefined sections: {', '.join(self.report.undefined)}"
            )
            self._move(RunState.ABORTED)
            return False

        self._move(RunState.CONFIRMED)
        return True

    def apply(self, client: FabricClient, tracker: Optional[ChangeTracker] = None) -> ApplyResult:
        """
        Open a session and apply every defined section.

        Args:
            client: Fabric client (not yet connected)
            tracker: Audit tracker (optional)

        Returns:
            ApplyResult; failed groups do not stop the run

        Raises:
            AuthenticationError: If the session cannot be opened (run aborts)
        """
        self._require(RunState.CONFIRMED)
        self._move(RunState.APPLYING)

        try:
            with client:
                self.result = ApplyOrchestrator(client, tracker).apply(self.registry)
        except FabricError:
            # only session setup/teardown failures reach here; groups catch their own
            self._move(RunState.ABORTED)
            raise

        self._move(RunState.DONE)
        logger.info(self.result.summary())
        return self.result
