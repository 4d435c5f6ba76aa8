"""A passive agent that always choose to do nothing"""

from __future__ import annotations
from typing import TYPE_CHECKING, Optional, Any

from .decision_agent import DecisionAgent

if TYPE_CHECKING:
    from ..sim import Host

class PassiveAgent(DecisionAgent):
    def __init__(self, *args: Any, **kwargs: Any):
        ...

    def get_next_action(
        self,
        host: Host,
        available_actions: list[str],
        **kwargs: Any
    ) -> Optional[str]:
        # A passive agent never does anything
        return None
