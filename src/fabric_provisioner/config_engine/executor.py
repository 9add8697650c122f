"""Apply orchestrator.

Walks the registry in dependency order and issues every causal group against a
connected fabric client. A failed group is recorded and the run goes on with
the next one; there is no retry and no rollback.
"""
import logging
from typing import Any, Optional

from ..errors import FabricError
from ..fabric.base import FabricClient
from ..utils.audit_log import ChangeTracker
from ..utils.logging_config import timed_section_sync
from .mapping import CausalGroup, build_groups, entry_label, entry_org
from .registry import SectionRegistry
from .schema import SECTION_ORDER, ApplyResult, GroupOutcome

logger = logging.getLogger(__name__)


class ApplyOrchestrator:
    """Issue causal groups section by section."""

    def __init__(
        self,
        client: FabricClient,
        tracker: Optional[ChangeTracker] = None,
        order: tuple[str, ...] = SECTION_ORDER,
    ):
        """
        Initialize orchestrator.

        Args:
            client: Connected fabric client
            tracker: Audit tracker receiving one record per group (optional)
            order: Section apply order
        """
        self.client = client
        self.tracker = tracker
        self.order = order
        self._org_cache: dict[str, str] = {}

    def apply(self, registry: SectionRegistry) -> ApplyResult:
        """
        Apply every present section of a validated registry.

        Undefined sections are skipped and listed in the result.

        Args:
            registry: Frozen registry from validation

        Returns:
            ApplyResult with one outcome per issued group
        """
        result = ApplyResult()

        for section in self.order:
            if not registry.is_present(section):
                logger.info(f"{section}: undefined, skipped")
                result.skipped_sections.append(section)
                continue

            entries = registry.entries(section)
            logger.info(f"{section}: applying {len(entries)} entries")
            with timed_section_sync(f"apply {section}", self.client.client_id, entries=len(entries)):
                for entity in entries:
                    result.outcomes.extend(self._apply_entry(section, entity))

        logger.info(
            f"Apply finished: {len(result.outcomes) - len(result.failed_groups)}/"
            f"{len(result.outcomes)} groups succeeded"
        )
        return result

    def _apply_entry(self, section: str, entity: Any) -> list[GroupOutcome]:
        org = entry_org(section, entity)
        base = ""
        if org is not None:
            try:
                base = self._resolve_org(org)
            except FabricError as e:
                label = entry_label(section, entity)
                logger.error(f"{section} {label}: cannot resolve organization '{org}': {e}")
                return [self._record(section, label, False, [], 0, str(e))]

        return [self._issue(group) for group in build_groups(section, entity, base)]

    def _resolve_org(self, name: str) -> str:
        """Organization dn, resolved once per run."""
        if name not in self._org_cache:
            self._org_cache[name] = self.client.resolve_org(name)
        return self._org_cache[name]

    def _issue(self, group: CausalGroup) -> GroupOutcome:
        """Issue the objects of one group in order, stopping at the first rejection."""
        applied = 0
        try:
            for obj in group.objects:
                self.client.upsert(obj)
                applied += 1
        except FabricError as e:
            if applied:
                logger.error(
                    f"{group.section} {group.label}: failed after {applied}/{len(group.objects)} "
                    f"objects were applied (not rolled back): {e}"
                )
            else:
                logger.error(f"{group.section} {group.label}: failed: {e}")
            return self._record(group.section, group.label, False, group.dns, applied, str(e))

        logger.debug(f"{group.section} {group.label}: {applied} objects applied")
        return self._record(group.section, group.label, True, group.dns, applied)

    def _record(
        self,
        section: str,
        label: str,
        success: bool,
        dns: list[str],
        applied: int,
        error: Optional[str] = None,
    ) -> GroupOutcome:
        if self.tracker is not None:
            self.tracker.log_change(section, label, success, dns, applied, error)
        return GroupOutcome(
            section=section,
            label=label,
            success=success,
            applied=applied,
            total=len(dns),
            error=error,
        )
