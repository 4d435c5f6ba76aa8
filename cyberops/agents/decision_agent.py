"""A decision agent picks mitigations for the focused host"""

from __future__ import annotations
from typing import TYPE_CHECKING, Optional, Any
from abc import ABC, abstractmethod

if TYPE_CHECKING:
    from ..sim import Host

class DecisionAgent(ABC):

    @abstractmethod
    def get_next_action(
        self,
        host: Host,
        available_actions: list[str],
        **kwargs: Any
    ) -> Optional[str]:
        """
        Select next mitigation to apply to `host`.

        Attributes:
            host: Current state of the host the driver focused on
            available_actions: Mitigation ids that can still be applied

        Returns:
            The selected mitigation id or None if there is nothing to do.
        """
        ...

    def learn(
        self,
        host: Host,
        action: str,
        reward: float,
        next_host: Host,
        next_actions: list[str],
    ) -> None:
        """Observe the outcome of an action, agents that do not learn ignore it"""

    def on_episode_end(
        self, won: bool, score: int, duration_sec: int
    ) -> None:
        """Called by the driver once per finished episode"""
