"""Win and loss conditions of an episode"""

from __future__ import annotations
from collections.abc import Iterable

from cyberops.sim.host import Host, HostStatus
from cyberops.sim.settings import RunState, SimulatorSettings


def compromised_hosts(hosts: Iterable[Host]) -> list[Host]:
    return [
        h for h in hosts if h.spawned and h.status == HostStatus.COMPROMISED
    ]


def is_lost(
    hosts: Iterable[Host], settings: SimulatorSettings = SimulatorSettings()
) -> bool:
    """Lost once enough spawned hosts are compromised"""
    return len(compromised_hosts(hosts)) >= settings.loss_threshold


def is_won(hosts: Iterable[Host]) -> bool:
    """Won when every host has spawned and every host is contained"""
    hosts = list(hosts)
    return (
        all(h.spawned for h in hosts)
        and all(h.is_contained for h in hosts)
        and not compromised_hosts(hosts)
    )


def evaluate_outcome(
    hosts: Iterable[Host],
    run_state: RunState,
    settings: SimulatorSettings = SimulatorSettings(),
) -> RunState:
    """Return the run state after checking win/loss on a running episode"""
    if run_state != RunState.RUNNING:
        return run_state

    hosts = list(hosts)
    if is_lost(hosts, settings):
        return RunState.LOST
    if is_won(hosts):
        return RunState.WON
    return RunState.RUNNING
