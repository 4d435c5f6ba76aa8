from __future__ import annotations
from typing import Any, Optional, TYPE_CHECKING
import logging

from .decision_agent import DecisionAgent

if TYPE_CHECKING:
    from ..catalog import Catalog
    from ..sim import Host

logger = logging.getLogger(__name__)

class RequiredMitigationDefender(DecisionAgent):
    """A defender that answers each stage with a mitigation it requires"""

    def __init__(
        self,
        agent_config: Optional[dict[str, Any]] = None,
        catalog: Optional[Catalog] = None,
        **_: Any
    ):
        if catalog is None:
            raise ValueError("RequiredMitigationDefender needs a catalog")
        self.catalog = catalog

    def get_next_action(
        self, host: Host, available_actions: list[str], **kwargs: Any
    ) -> Optional[str]:
        """Return the best scoring mitigation that meets the current stage"""

        vuln = self.catalog.vulnerability(host.vuln_id)
        stage = vuln.stage(host.stage_index)

        # Something that meets the stage is already applied or on its way
        if stage.is_satisfied_by(host.applied_mitigations + host.pending_ids):
            return None

        # Strategy:
        # - Never pick a mitigation penalized at this stage
        # - Prefer a required mitigation, highest points first
        # - Otherwise fall back to the highest scoring mitigation
        possible_choices = [
            a for a in available_actions if a not in stage.penalty_mitigations
        ]
        if not possible_choices:
            return None

        def points(mitigation_id: str) -> int:
            mitigation = vuln.mitigation(mitigation_id)
            return mitigation.points if mitigation else 0

        required = [
            a for a in possible_choices
            if a in stage.required_mitigations_any_of
        ]
        selected = max(required or possible_choices, key=points)
        logger.debug('Selected %s for host "%s"', selected, host.id)
        return selected
