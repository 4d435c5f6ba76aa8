"""Host simulation engine

Pure state transitions over an ordered collection of hosts. Nothing in
here keeps state between calls, the caller passes in the previous
snapshot and gets a new one back.
"""

from __future__ import annotations
from dataclasses import replace
from typing import NamedTuple, TYPE_CHECKING
import logging

from cyberops.catalog import MitigationEffect
from cyberops.sim.host import (
    Host,
    HostStatus,
    MitigationOutcome,
    MitigationPhase,
    PendingMitigation,
    hosts_by_id,
    mitigation_phase,
)
from cyberops.sim.settings import RunState, SimulatorSettings

if TYPE_CHECKING:
    from cyberops.catalog import Catalog, StageDefinition

logger = logging.getLogger(__name__)

Hosts = tuple[Host, ...]

effect_to_status = {
    MitigationEffect.SECURE: HostStatus.SAFE,
    MitigationEffect.QUARANTINE: HostStatus.QUARANTINED,
}


class MitigationResult(NamedTuple):
    hosts: Hosts
    points_awarded: int
    outcome: MitigationOutcome


def make_initial_hosts(catalog: Catalog) -> Hosts:
    """Build the starting roster of hosts from the catalog"""
    hosts = []
    for spec in catalog.hosts:
        vuln = catalog.vulnerability(spec.vuln_id)
        spawned = spec.spawn_delay_sec == 0
        hosts.append(
            Host(
                id=spec.id,
                name=spec.name,
                region=spec.region,
                vuln_id=spec.vuln_id,
                spawn_delay_sec=spec.spawn_delay_sec,
                spawned=spawned,
                spawn_countdown=spec.spawn_delay_sec,
                status=HostStatus.WARNING if spawned else HostStatus.PENDING,
                stage_index=0,
                stage_time_left=vuln.stage(0).time_limit_sec,
                last_event=(
                    'Alert created' if spawned
                    else f'Threat incoming in {spec.spawn_delay_sec}s'
                ),
            )
        )
    return tuple(hosts)


def step(
    hosts: Hosts,
    run_state: RunState | str,
    catalog: Catalog,
    settings: SimulatorSettings = SimulatorSettings(),
) -> Hosts:
    """Advance all hosts by one tick (one simulated second).

    Returns `hosts` itself if the episode is not running. The phases run
    in a fixed order, each one working on the output of the previous:
    spawn, pending mitigations, stage timers, spread.
    """
    # Unknown state names are treated like any other non-running state
    if run_state not in (RunState.RUNNING, RunState.RUNNING.value):
        return hosts

    next_hosts = tuple(_spawn(h) for h in hosts)
    next_hosts = tuple(
        _complete_pending_mitigations(h, catalog, settings) for h in next_hosts
    )
    next_hosts = tuple(
        _tick_stage_timer(h, catalog, settings) for h in next_hosts
    )
    return _spread(next_hosts, catalog)


def apply_mitigation(
    hosts: Hosts,
    host_id: str,
    mitigation_id: str,
    catalog: Catalog,
    settings: SimulatorSettings = SimulatorSettings(),
) -> MitigationResult:
    """Apply a mitigation to one host.

    Mitigations listed as penalties for the host's current stage cut the
    stage timer right away and are not recorded as applied. Any other
    mitigation awards its catalog points immediately and is queued, its
    effect lands when the apply time has ticked down.
    """
    host = hosts_by_id(hosts).get(host_id)
    if host is None:
        logger.debug('Mitigation %s for unknown host "%s"', mitigation_id, host_id)
        return MitigationResult(hosts, 0, MitigationOutcome.IGNORED)
    if mitigation_phase(host, mitigation_id) != MitigationPhase.NONE:
        return MitigationResult(hosts, 0, MitigationOutcome.IGNORED)

    vuln = catalog.vulnerability(host.vuln_id)
    stage = vuln.stage(host.stage_index)

    if mitigation_id in stage.penalty_mitigations:
        penalized = replace(
            host,
            stage_time_left=max(1, host.stage_time_left - settings.penalty_seconds),
            penalty_message=stage.penalty_reasons.get(
                mitigation_id, settings.penalty_message_default
            ),
            last_event=f'Penalty: {mitigation_id} at {stage.label}',
        )
        logger.debug(
            'Host "%s" penalized for %s, %ds left',
            host.id, mitigation_id, penalized.stage_time_left,
        )
        return MitigationResult(
            _replace_host(hosts, penalized), 0, MitigationOutcome.PENALIZED
        )

    mitigation = vuln.mitigation(mitigation_id)
    points = mitigation.points if mitigation else 0
    apply_time = (
        mitigation.apply_time_sec
        if mitigation and mitigation.apply_time_sec is not None
        else settings.default_apply_time_sec
    )
    queued = replace(
        host,
        pending_mitigations=(
            host.pending_mitigations
            + (PendingMitigation(mitigation_id, apply_time),)
        ),
        last_event=f'Mitigation queued: {mitigation_id} ({apply_time}s)',
    )
    return MitigationResult(
        _replace_host(hosts, queued), points, MitigationOutcome.QUEUED
    )


def clear_penalty_message(hosts: Hosts, host_id: str) -> Hosts:
    """Dismiss the penalty explanation shown for a host"""
    host = hosts_by_id(hosts).get(host_id)
    if host is None or host.penalty_message is None:
        return hosts
    return _replace_host(hosts, replace(host, penalty_message=None))


def available_mitigations(host: Host, catalog: Catalog) -> list[str]:
    """Mitigation ids an operator can still apply to `host`, catalog order"""
    if not host.is_active:
        return []
    vuln = catalog.vulnerability(host.vuln_id)
    return [
        m.id for m in vuln.mitigations
        if mitigation_phase(host, m.id) == MitigationPhase.NONE
    ]


def _replace_host(hosts: Hosts, updated: Host) -> Hosts:
    return tuple(updated if h.id == updated.id else h for h in hosts)


def _spawn(host: Host) -> Host:
    if host.spawned:
        return host

    countdown = host.spawn_countdown - 1
    if countdown <= 0:
        logger.debug('Host "%s" spawned', host.id)
        return replace(
            host,
            spawned=True,
            spawn_countdown=0,
            status=HostStatus.WARNING,
            last_event='New threat detected!',
        )
    return replace(host, spawn_countdown=countdown)


def _complete_pending_mitigations(
    host: Host, catalog: Catalog, settings: SimulatorSettings
) -> Host:
    if not host.pending_mitigations:
        return host

    still_pending: list[PendingMitigation] = []
    completed: list[str] = []
    for pending in host.pending_mitigations:
        time_left = pending.time_left - 1
        if time_left <= 0:
            completed.append(pending.mitigation_id)
        else:
            still_pending.append(replace(pending, time_left=time_left))

    host = replace(host, pending_mitigations=tuple(still_pending))
    stage = catalog.vulnerability(host.vuln_id).stage(host.stage_index)
    for mitigation_id in completed:
        host = _complete_mitigation(host, mitigation_id, stage, catalog, settings)
    return host


def _complete_mitigation(
    host: Host,
    mitigation_id: str,
    stage: StageDefinition,
    catalog: Catalog,
    settings: SimulatorSettings,
) -> Host:
    status = effect_to_status.get(
        catalog.mitigation_effect(mitigation_id), host.status
    )
    stage_time_left = host.stage_time_left

    if mitigation_id in stage.required_mitigations_any_of:
        stage_time_left = min(
            stage_time_left + settings.required_bonus_seconds,
            settings.max_stage_time_sec,
        )
        if status == HostStatus.WARNING:
            status = HostStatus.SAFE

    return replace(
        host,
        applied_mitigations=host.applied_mitigations + (mitigation_id,),
        status=status,
        stage_time_left=stage_time_left,
        last_event=f'Mitigation applied: {mitigation_id}',
    )


def _tick_stage_timer(
    host: Host, catalog: Catalog, settings: SimulatorSettings
) -> Host:
    if not host.spawned or host.is_contained:
        return host

    vuln = catalog.vulnerability(host.vuln_id)
    stage = vuln.stage(host.stage_index)
    time_left = host.stage_time_left - 1
    if time_left > 0:
        return replace(host, stage_time_left=time_left)

    if stage.is_satisfied_by(host.applied_mitigations):
        return replace(
            host,
            status=(
                HostStatus.SAFE if host.status == HostStatus.WARNING
                else host.status
            ),
            stage_time_left=stage.time_limit_sec,
            last_event=f'Stage stabilized: {stage.label}',
        )

    next_index = min(host.stage_index + 1, vuln.last_stage_index)
    next_stage = vuln.stage(next_index)
    status = (
        HostStatus.COMPROMISED
        if next_index >= settings.compromised_stage_index
        else HostStatus.WARNING
    )
    logger.debug(
        'Host "%s" escalated to stage %d (%s)', host.id, next_index, status.value
    )
    # Changing stage invalidates actions still in flight
    return replace(
        host,
        stage_index=next_index,
        status=status,
        stage_time_left=next_stage.time_limit_sec,
        pending_mitigations=(),
        penalty_message=None,
        last_event=f'Escalated to: {next_stage.label}',
    )


def _spread(hosts: Hosts, catalog: Catalog) -> Hosts:
    spreading = any(
        h.status == HostStatus.COMPROMISED
        and catalog.vulnerability(h.vuln_id).stage(h.stage_index).may_spread
        for h in hosts
    )
    if not spreading:
        return hosts

    target = next(
        (h for h in hosts if h.spawned and h.status == HostStatus.SAFE), None
    )
    if target is None:
        return hosts

    logger.debug('Infection spread to host "%s"', target.id)
    first_stage = catalog.vulnerability(target.vuln_id).stage(0)
    infected = replace(
        target,
        status=HostStatus.WARNING,
        stage_index=0,
        stage_time_left=first_stage.time_limit_sec,
        pending_mitigations=(),
        last_event='Infection spread: new alert created',
    )
    return _replace_host(hosts, infected)
