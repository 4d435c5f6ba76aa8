"""Test the host simulation engine"""

import random

import pytest

from cyberops.catalog import Catalog
from cyberops.sim import (
    HostStatus,
    MitigationOutcome,
    PendingMitigation,
    RunState,
    apply_mitigation,
    available_mitigations,
    clear_penalty_message,
    make_initial_hosts,
    step,
)

from .conftest import get_host, make_host, with_host


def test_make_initial_hosts(hosts) -> None:
    assert [h.id for h in hosts] == ['h1', 'h2', 'h3']

    h1 = get_host(hosts, 'h1')
    assert h1.spawned
    assert h1.status == HostStatus.WARNING
    assert h1.stage_index == 0
    assert h1.stage_time_left == 10
    assert h1.applied_mitigations == ()
    assert h1.pending_mitigations == ()
    assert h1.penalty_message is None
    assert h1.last_event == 'Alert created'
    assert h1.name == 'HOST-1'

    h3 = get_host(hosts, 'h3')
    assert not h3.spawned
    assert h3.status == HostStatus.PENDING
    assert h3.spawn_countdown == 2
    assert h3.stage_time_left == 12
    assert h3.last_event == 'Threat incoming in 2s'


@pytest.mark.parametrize(
    'run_state',
    [RunState.READY, RunState.WON, RunState.LOST, 'ready', 'paused', '']
)
def test_step_is_noop_unless_running(hosts, small_catalog, run_state) -> None:
    assert step(hosts, run_state, small_catalog) is hosts


def test_step_accepts_run_state_string(hosts, small_catalog) -> None:
    next_hosts = step(hosts, 'running', small_catalog)
    assert get_host(next_hosts, 'h1').stage_time_left == 9


def test_spawn_countdown(hosts, small_catalog) -> None:
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h3 = get_host(hosts, 'h3')
    assert not h3.spawned
    assert h3.spawn_countdown == 1
    assert h3.status == HostStatus.PENDING

    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h3 = get_host(hosts, 'h3')
    assert h3.spawned
    assert h3.spawn_countdown == 0
    assert h3.status == HostStatus.WARNING
    assert h3.last_event == 'New threat detected!'
    # The stage timer runs in the same tick the host spawned
    assert h3.stage_time_left == 11


def test_unspawned_host_timer_does_not_run(hosts, small_catalog) -> None:
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    assert get_host(hosts, 'h3').stage_time_left == 12


def test_escalation(hosts, small_catalog) -> None:
    """Timer running out with nothing applied moves to the next stage"""

    hosts = with_host(
        hosts, 'h1',
        stage_time_left=1,
        pending_mitigations=(PendingMitigation('notify', 5),),
        penalty_message='bad call',
    )
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.stage_index == 1
    assert h1.stage_time_left == 8
    assert h1.status == HostStatus.WARNING
    assert h1.pending_mitigations == ()
    assert h1.penalty_message is None
    assert h1.last_event == 'Escalated to: Persistence'


def test_escalation_into_compromised_stage(hosts, small_catalog) -> None:
    hosts = with_host(hosts, 'h1', stage_index=1, stage_time_left=1)
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.stage_index == 2
    assert h1.stage_time_left == 6
    assert h1.status == HostStatus.COMPROMISED


def test_escalation_clamps_to_last_stage(hosts, small_catalog) -> None:
    hosts = with_host(
        hosts, 'h1',
        stage_index=2,
        stage_time_left=1,
        status=HostStatus.COMPROMISED,
    )
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.stage_index == 2
    assert h1.stage_time_left == 6
    assert h1.status == HostStatus.COMPROMISED


def test_stabilization(hosts, small_catalog) -> None:
    """Timer running out with a satisfying mitigation resets the timer"""

    hosts = with_host(
        hosts, 'h1', stage_time_left=1, applied_mitigations=('isolate',)
    )
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.status == HostStatus.SAFE
    assert h1.stage_index == 0
    assert h1.stage_time_left == 10
    assert h1.last_event == 'Stage stabilized: Foothold'


def test_stabilization_keeps_compromised_status(hosts, small_catalog) -> None:
    hosts = with_host(
        hosts, 'h1',
        stage_index=2,
        stage_time_left=1,
        status=HostStatus.COMPROMISED,
        applied_mitigations=('wipe',),
    )
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.status == HostStatus.COMPROMISED
    assert h1.stage_index == 2
    assert h1.stage_time_left == 6


@pytest.mark.parametrize('status', [HostStatus.SAFE, HostStatus.QUARANTINED])
def test_contained_hosts_do_not_decay(hosts, small_catalog, status) -> None:
    hosts = with_host(hosts, 'h1', status=status, stage_time_left=1)
    next_hosts = step(hosts, RunState.RUNNING, small_catalog)
    assert get_host(next_hosts, 'h1') == get_host(hosts, 'h1')


def test_queue_mitigation(hosts, small_catalog) -> None:
    result = apply_mitigation(hosts, 'h1', 'isolate', small_catalog)
    assert result.points_awarded == 30
    assert result.outcome == MitigationOutcome.QUEUED

    h1 = get_host(result.hosts, 'h1')
    assert h1.pending_mitigations == (PendingMitigation('isolate', 2),)
    assert h1.applied_mitigations == ()
    # Other hosts are untouched
    assert get_host(result.hosts, 'h2') is get_host(hosts, 'h2')


def test_queued_mitigation_completes_after_apply_time(hosts, small_catalog) -> None:
    hosts, _, _ = apply_mitigation(hosts, 'h1', 'isolate', small_catalog)

    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.pending_mitigations == (PendingMitigation('isolate', 1),)
    assert h1.applied_mitigations == ()
    assert h1.stage_time_left == 9

    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.pending_mitigations == ()
    assert h1.applied_mitigations == ('isolate',)
    # Required for the stage: bonus time and warning -> safe
    assert h1.status == HostStatus.SAFE
    assert h1.stage_time_left == 29
    assert h1.last_event == 'Mitigation applied: isolate'


def test_required_bonus_is_capped(hosts, small_catalog) -> None:
    hosts = with_host(
        hosts, 'h1',
        stage_time_left=115,
        pending_mitigations=(PendingMitigation('isolate', 1),),
    )
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    assert get_host(hosts, 'h1').stage_time_left == 120


def test_default_apply_time_and_secure_effect(hosts, small_catalog) -> None:
    result = apply_mitigation(hosts, 'h1', 'patch', small_catalog)
    assert result.points_awarded == 20
    hosts = result.hosts
    assert get_host(hosts, 'h1').pending_mitigations == (
        PendingMitigation('patch', 3),
    )

    for _ in range(2):
        hosts = step(hosts, RunState.RUNNING, small_catalog)
    assert get_host(hosts, 'h1').status == HostStatus.WARNING

    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.status == HostStatus.SAFE
    assert h1.applied_mitigations == ('patch',)
    # Not required by the stage, so no bonus time
    assert h1.stage_time_left == 8


def test_quarantine_effect(hosts, small_catalog) -> None:
    hosts, points, _ = apply_mitigation(hosts, 'h2', 'lockdown', small_catalog)
    assert points == 50
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    assert get_host(hosts, 'h2').status == HostStatus.QUARANTINED


def test_containment_effect_is_catalog_wide(hosts, small_catalog) -> None:
    """An effect applies even to hosts whose vulnerability does not list it"""

    result = apply_mitigation(hosts, 'h3', 'lockdown', small_catalog)
    assert result.points_awarded == 0
    assert get_host(result.hosts, 'h3').pending_mitigations == (
        PendingMitigation('lockdown', 3),
    )

    hosts = result.hosts
    for _ in range(3):
        hosts = step(hosts, RunState.RUNNING, small_catalog)
    assert get_host(hosts, 'h3').status == HostStatus.QUARANTINED


def test_unknown_mitigation_is_queued_without_points(hosts, small_catalog) -> None:
    result = apply_mitigation(hosts, 'h1', 'bogus', small_catalog)
    assert result.points_awarded == 0
    assert result.outcome == MitigationOutcome.QUEUED
    assert get_host(result.hosts, 'h1').pending_mitigations == (
        PendingMitigation('bogus', 3),
    )


def test_apply_mitigation_noops(hosts, small_catalog) -> None:
    result = apply_mitigation(hosts, 'nope', 'isolate', small_catalog)
    assert result.hosts is hosts
    assert result.points_awarded == 0
    assert result.outcome == MitigationOutcome.IGNORED

    # Already pending
    hosts, _, _ = apply_mitigation(hosts, 'h1', 'isolate', small_catalog)
    result = apply_mitigation(hosts, 'h1', 'isolate', small_catalog)
    assert result.hosts is hosts
    assert result.points_awarded == 0

    # Already applied
    hosts = with_host(
        hosts, 'h2', applied_mitigations=('notify',)
    )
    result = apply_mitigation(hosts, 'h2', 'notify', small_catalog)
    assert result.hosts is hosts
    assert result.outcome == MitigationOutcome.IGNORED


def test_penalty(hosts, small_catalog) -> None:
    hosts = with_host(hosts, 'h1', stage_time_left=30)
    result = apply_mitigation(hosts, 'h1', 'wipe', small_catalog)
    assert result.points_awarded == 0
    assert result.outcome == MitigationOutcome.PENALIZED

    h1 = get_host(result.hosts, 'h1')
    assert h1.stage_time_left == 10
    assert h1.applied_mitigations == ()
    assert h1.pending_mitigations == ()
    assert h1.penalty_message == 'Wiping now destroys the evidence.'


def test_penalty_floors_timer_at_one(hosts, small_catalog) -> None:
    result = apply_mitigation(hosts, 'h1', 'wipe', small_catalog)
    assert get_host(result.hosts, 'h1').stage_time_left == 1

    # Escalation happens on the next tick, not in apply_mitigation
    hosts = step(result.hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.stage_index == 1
    assert h1.penalty_message is None


def test_penalty_default_message(small_catalog) -> None:
    hosts = (make_host('x', 'leak', stage_time_left=12),)
    result = apply_mitigation(hosts, 'x', 'isolate', small_catalog)
    assert result.outcome == MitigationOutcome.PENALIZED
    assert get_host(result.hosts, 'x').penalty_message == (
        'This action is counter-productive at the current attack stage.'
    )


def test_penalty_depends_on_current_stage(hosts, small_catalog) -> None:
    hosts = with_host(hosts, 'h1', stage_index=1, stage_time_left=8)
    result = apply_mitigation(hosts, 'h1', 'wipe', small_catalog)
    assert result.outcome == MitigationOutcome.QUEUED
    assert result.points_awarded == 40


def test_clear_penalty_message(hosts, small_catalog) -> None:
    assert clear_penalty_message(hosts, 'h1') is hosts
    assert clear_penalty_message(hosts, 'nope') is hosts

    hosts, _, _ = apply_mitigation(hosts, 'h1', 'wipe', small_catalog)
    hosts = clear_penalty_message(hosts, 'h1')
    assert get_host(hosts, 'h1').penalty_message is None


def test_mitigation_completing_on_last_second_prevents_escalation(
    hosts, small_catalog
) -> None:
    """Pending mitigations complete before the stage timer is checked"""

    hosts = with_host(
        hosts, 'h1',
        stage_time_left=1,
        pending_mitigations=(PendingMitigation('isolate', 1),),
    )
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.stage_index == 0
    assert h1.status == HostStatus.SAFE
    assert h1.stage_time_left == 21


def test_pending_completes_in_list_order(hosts, small_catalog) -> None:
    hosts = with_host(
        hosts, 'h1',
        pending_mitigations=(
            PendingMitigation('notify', 1),
            PendingMitigation('wipe', 2),
            PendingMitigation('patch', 1),
        ),
    )
    hosts = step(hosts, RunState.RUNNING, small_catalog)
    h1 = get_host(hosts, 'h1')
    assert h1.applied_mitigations == ('notify', 'patch')
    assert h1.pending_mitigations == (PendingMitigation('wipe', 1),)


def test_spread_infects_one_safe_host(small_catalog) -> None:
    hosts = (
        make_host('s0', 'leak', status=HostStatus.PENDING, spawned=False,
                  spawn_countdown=50),
        make_host('c1', 'worm', stage_index=2, stage_time_left=6,
                  status=HostStatus.COMPROMISED),
        make_host('c2', 'worm', stage_index=2, stage_time_left=6,
                  status=HostStatus.COMPROMISED),
        make_host('s1', 'leak', status=HostStatus.SAFE, stage_index=1,
                  stage_time_left=4,
                  pending_mitigations=(PendingMitigation('rotate', 5),)),
        make_host('s2', 'leak', status=HostStatus.SAFE, stage_time_left=7),
        make_host('s3', 'worm', status=HostStatus.SAFE, stage_time_left=3),
    )
    next_hosts = step(hosts, RunState.RUNNING, small_catalog)

    s1 = get_host(next_hosts, 's1')
    assert s1.status == HostStatus.WARNING
    assert s1.stage_index == 0
    assert s1.stage_time_left == 12
    assert s1.pending_mitigations == ()
    assert s1.last_event == 'Infection spread: new alert created'

    assert get_host(next_hosts, 's2') == get_host(hosts, 's2')
    assert get_host(next_hosts, 's3') == get_host(hosts, 's3')


def test_no_spread_from_non_spreading_stage(small_catalog) -> None:
    hosts = (
        make_host('c1', 'leak', stage_index=1, stage_time_left=9,
                  status=HostStatus.COMPROMISED),
        make_host('s1', 'worm', status=HostStatus.SAFE),
    )
    next_hosts = step(hosts, RunState.RUNNING, small_catalog)
    assert get_host(next_hosts, 's1').status == HostStatus.SAFE


def test_available_mitigations(hosts, small_catalog) -> None:
    h1 = get_host(hosts, 'h1')
    assert available_mitigations(h1, small_catalog) == [
        'isolate', 'wipe', 'lockdown', 'patch', 'notify'
    ]

    hosts, _, _ = apply_mitigation(hosts, 'h1', 'isolate', small_catalog)
    hosts = with_host(hosts, 'h1', applied_mitigations=('notify',))
    assert available_mitigations(get_host(hosts, 'h1'), small_catalog) == [
        'wipe', 'lockdown', 'patch'
    ]

    # Nothing to do for unspawned or contained hosts
    assert available_mitigations(get_host(hosts, 'h3'), small_catalog) == []
    safe = with_host(hosts, 'h2', status=HostStatus.SAFE)
    assert available_mitigations(get_host(safe, 'h2'), small_catalog) == []


def test_invariants_hold_under_random_play(default_catalog: Catalog) -> None:
    rng = random.Random(7)
    hosts = make_initial_hosts(default_catalog)

    for _ in range(400):
        previous = {h.id: h for h in hosts}
        for host in hosts:
            actions = available_mitigations(host, default_catalog)
            if actions and rng.random() < 0.3:
                hosts, _, _ = apply_mitigation(
                    hosts, host.id, rng.choice(actions), default_catalog
                )
        hosts = step(hosts, RunState.RUNNING, default_catalog)

        for host in hosts:
            vuln = default_catalog.vulnerability(host.vuln_id)
            assert 0 <= host.stage_index <= vuln.last_stage_index
            assert host.stage_time_left >= 0
            assert host.spawn_countdown >= 0
            pending = host.pending_ids
            assert len(set(pending)) == len(pending)
            assert len(set(host.applied_mitigations)) == len(
                host.applied_mitigations
            )
            assert not set(pending) & set(host.applied_mitigations)
            if previous[host.id].spawned:
                assert host.spawned
            if host.spawned and not previous[host.id].spawned:
                assert host.spawn_countdown == 0
