from __future__ import annotations
from typing import Any, Optional, TYPE_CHECKING

import numpy as np

from .decision_agent import DecisionAgent

if TYPE_CHECKING:
    from ..sim import Host

class RandomAgent(DecisionAgent):
    """An agent that selects random mitigations"""

    def __init__(self, agent_config: Optional[dict[str, Any]] = None, **_: Any):
        agent_config = agent_config or {}
        self.rng = np.random.default_rng(agent_config.get("seed"))

    def get_next_action(
        self, host: Host, available_actions: list[str], **kwargs: Any
    ) -> Optional[str]:
        """Return a random mitigation from the available ones"""
        if not available_actions:
            return None
        return available_actions[self.rng.integers(len(available_actions))]
