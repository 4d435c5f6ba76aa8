from enum import Enum
from dataclasses import dataclass


class RunState(Enum):
    """State of the episode, owned by whoever drives the ticks"""

    READY = 'ready'
    RUNNING = 'running'
    WON = 'won'
    LOST = 'lost'


@dataclass
class SimulatorSettings:
    """Contains settings used by the host simulation engine"""

    # penalty_seconds
    # - seconds taken off the stage timer by a counter-productive mitigation
    penalty_seconds: int = 20

    # required_bonus_seconds
    # - seconds added to the stage timer when a mitigation satisfying the
    #   current stage completes, capped at max_stage_time_sec
    required_bonus_seconds: int = 20
    max_stage_time_sec: int = 120

    # default_apply_time_sec
    # - ticks a mitigation stays pending when the catalog gives no apply time
    default_apply_time_sec: int = 3

    # compromised_stage_index
    # - escalating into this stage (or later) marks the host compromised
    compromised_stage_index: int = 2

    # loss_threshold
    # - the episode is lost once this many spawned hosts are compromised
    loss_threshold: int = 2

    # max_ticks
    # - headless episodes stop after this many ticks and count as not won
    max_ticks: int = 900

    penalty_message_default: str = (
        'This action is counter-productive at the current attack stage.'
    )

    def __post_init__(self) -> None:
        if self.default_apply_time_sec < 1:
            raise ValueError('default_apply_time_sec must be at least 1')
        if self.loss_threshold < 1:
            raise ValueError('loss_threshold must be at least 1')
