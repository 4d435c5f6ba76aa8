from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class HostStatus(Enum):
    PENDING = 'pending'  # not spawned yet
    WARNING = 'warning'
    SAFE = 'safe'
    COMPROMISED = 'compromised'
    QUARANTINED = 'quarantined'


CONTAINED_STATUSES = frozenset({HostStatus.SAFE, HostStatus.QUARANTINED})


class MitigationPhase(Enum):
    """Where a mitigation is in its lifecycle on one host"""

    NONE = 'none'
    PENDING = 'pending'
    APPLIED = 'applied'


class MitigationOutcome(Enum):
    """What an attempt to apply a mitigation resulted in"""

    QUEUED = 'queued'  # none -> pending, points awarded
    PENALIZED = 'penalized'  # counter-productive, timer cut
    IGNORED = 'ignored'  # unknown host or mitigation already in flight


@dataclass(frozen=True)
class PendingMitigation:
    """A mitigation that was applied but has not taken effect yet"""

    mitigation_id: str
    time_left: int


@dataclass(frozen=True)
class Host:
    """Stores the state of one simulated host

    Hosts are never mutated, the engine returns new instances.
    """

    id: str
    vuln_id: str
    spawn_delay_sec: int
    spawned: bool
    # Seconds until spawn, 0 once spawned
    spawn_countdown: int
    status: HostStatus
    stage_index: int
    # Seconds before the current stage escalates
    stage_time_left: int
    # Mitigations that have taken effect, in completion order
    applied_mitigations: tuple[str, ...] = ()
    # Mitigations queued but not effective yet, in application order
    pending_mitigations: tuple[PendingMitigation, ...] = ()
    penalty_message: Optional[str] = None
    # Free text for display only
    last_event: str = ''
    name: str = ''
    region: str = ''

    @property
    def is_contained(self) -> bool:
        return self.status in CONTAINED_STATUSES

    @property
    def is_active(self) -> bool:
        """Spawned and still escalating"""
        return self.spawned and not self.is_contained

    @property
    def pending_ids(self) -> tuple[str, ...]:
        return tuple(p.mitigation_id for p in self.pending_mitigations)


def mitigation_phase(host: Host, mitigation_id: str) -> MitigationPhase:
    if mitigation_id in host.applied_mitigations:
        return MitigationPhase.APPLIED
    if mitigation_id in host.pending_ids:
        return MitigationPhase.PENDING
    return MitigationPhase.NONE


def hosts_by_id(hosts: tuple[Host, ...]) -> dict[str, Host]:
    """Index a host collection by id, collection order is kept"""
    return {h.id: h for h in hosts}
