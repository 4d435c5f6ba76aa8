from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING
import logging

from cyberops.sim.engine import (
    Hosts,
    apply_mitigation,
    available_mitigations,
    make_initial_hosts,
    step,
)
from cyberops.sim.event_logger import EventLogger
from cyberops.sim.host import Host, hosts_by_id
from cyberops.sim.outcome import evaluate_outcome
from cyberops.sim.rewards import decision_reward, terminal_reward
from cyberops.sim.settings import RunState, SimulatorSettings

if TYPE_CHECKING:
    from cyberops.catalog import Catalog
    from cyberops.agents import DecisionAgent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpisodeResult:
    won: bool
    score: int
    # Ticks the episode lasted, one tick is one simulated second
    duration_sec: int
    run_state: RunState
    hosts: Hosts
    decisions: int = 0


def select_focus_host(hosts: Hosts) -> Optional[Host]:
    """Return the active host closest to escalating.

    Ties go to the host first in collection order.
    """
    active = [h for h in hosts if h.is_active]
    if not active:
        return None
    return min(active, key=lambda h: h.stage_time_left)


def run_episode(
    catalog: Catalog,
    agent: DecisionAgent,
    settings: SimulatorSettings = SimulatorSettings(),
    event_logger: Optional[EventLogger] = None,
) -> EpisodeResult:
    """Run one episode headlessly with `agent` as the operator.

    Each tick the agent may apply one mitigation to the focused host,
    then the engine advances. The agent learns from the host as it looks
    after the tick. Episodes end when won, lost or after
    `settings.max_ticks` ticks (which counts as not won).
    """
    hosts = make_initial_hosts(catalog)
    run_state = RunState.RUNNING
    score = 0
    tick = 0
    decisions = 0

    logger.info('Starting episode with %d hosts.', len(hosts))
    while run_state == RunState.RUNNING and tick < settings.max_ticks:
        previous_hosts = hosts
        decision = None

        focus = select_focus_host(hosts)
        if focus is not None:
            action = agent.get_next_action(
                focus, available_mitigations(focus, catalog)
            )
            if action is not None:
                hosts, points, outcome = apply_mitigation(
                    hosts, focus.id, action, catalog, settings
                )
                score += points
                decisions += 1
                decision = (focus, action, points, outcome)
                logger.debug(
                    'Agent chose %s on "%s" (%s, %d points)',
                    action, focus.id, outcome.value, points,
                )

        hosts = step(hosts, run_state, catalog, settings)
        tick += 1
        run_state = evaluate_outcome(hosts, run_state, settings)

        if event_logger is not None:
            event_logger.collect_logs(tick, previous_hosts, hosts)

        if decision is not None:
            before, action, points, outcome = decision
            after = hosts_by_id(hosts)[before.id]
            reward = (
                decision_reward(before, after, points, outcome)
                + terminal_reward(run_state)
            )
            next_actions = (
                available_mitigations(after, catalog)
                if run_state == RunState.RUNNING else []
            )
            agent.learn(before, action, reward, after, next_actions)

    won = run_state == RunState.WON
    agent.on_episode_end(won, score, tick)
    logger.info(
        'Episode over after %d ticks: %s, score %d.',
        tick, run_state.value if run_state != RunState.RUNNING else 'timed out',
        score,
    )
    return EpisodeResult(
        won=won,
        score=score,
        duration_sec=tick,
        run_state=run_state,
        hosts=hosts,
        decisions=decisions,
    )


def train(
    catalog: Catalog,
    agent: DecisionAgent,
    episodes: int,
    settings: SimulatorSettings = SimulatorSettings(),
) -> list[EpisodeResult]:
    """Run `episodes` episodes back to back with the same agent"""
    return [run_episode(catalog, agent, settings) for _ in range(episodes)]
