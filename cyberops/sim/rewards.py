from __future__ import annotations

from typing import Optional

from cyberops.sim.host import Host, MitigationOutcome
from cyberops.sim.settings import RunState

PENALTY_REWARD = -20.0
CONTAINMENT_REWARD = 30.0
ESCALATION_REWARD = -40.0
WIN_REWARD = 100.0
LOSS_REWARD = -100.0


def decision_reward(
    before: Host,
    after: Optional[Host],
    points_awarded: int,
    outcome: MitigationOutcome,
) -> float:
    """
    Calculate the reward for one decision on one host.

    Args:
    - before: the host when the action was chosen
    - after: the same host once the tick following the action has run
    - points_awarded: catalog points handed out for the action
    - outcome: how the engine resolved the action
    """
    reward = float(points_awarded)
    if outcome == MitigationOutcome.PENALIZED:
        reward += PENALTY_REWARD

    if after is None:
        return reward

    # Host was contained by the time the tick finished
    if after.is_contained and not before.is_contained:
        reward += CONTAINMENT_REWARD
    if after.stage_index > before.stage_index:
        reward += ESCALATION_REWARD

    return reward


def terminal_reward(run_state: RunState) -> float:
    if run_state == RunState.WON:
        return WIN_REWARD
    if run_state == RunState.LOST:
        return LOSS_REWARD
    return 0.0
