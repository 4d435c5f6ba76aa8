"""Host simulation related modules"""

from .settings import RunState, SimulatorSettings
from .host import (
    Host,
    HostStatus,
    MitigationOutcome,
    MitigationPhase,
    PendingMitigation,
    hosts_by_id,
    mitigation_phase,
)
from .engine import (
    MitigationResult,
    apply_mitigation,
    available_mitigations,
    clear_penalty_message,
    make_initial_hosts,
    step,
)
from .outcome import evaluate_outcome, is_lost, is_won
from .event_logger import EventLogger, LogEntry
from .run_simulation import EpisodeResult, run_episode, select_focus_host, train


__all__ = [
    'RunState',
    'SimulatorSettings',
    'Host',
    'HostStatus',
    'MitigationOutcome',
    'MitigationPhase',
    'PendingMitigation',
    'hosts_by_id',
    'mitigation_phase',
    'MitigationResult',
    'apply_mitigation',
    'available_mitigations',
    'clear_penalty_message',
    'make_initial_hosts',
    'step',
    'evaluate_outcome',
    'is_lost',
    'is_won',
    'EventLogger',
    'LogEntry',
    'EpisodeResult',
    'run_episode',
    'select_focus_host',
    'train',
]
