from __future__ import annotations
from typing import Any, Optional, SupportsFloat

import gymnasium as gym
from gymnasium import spaces
import numpy as np

from ..catalog import Catalog, load_catalog
from ..sim import (
    HostStatus,
    MitigationOutcome,
    RunState,
    SimulatorSettings,
    apply_mitigation,
    available_mitigations,
    evaluate_outcome,
    hosts_by_id,
    make_initial_hosts,
    step,
)
from ..sim.rewards import decision_reward, terminal_reward

# Per host: spawned, status, stage index, stage time left,
# applied mitigation count, spawn countdown
NUM_HOST_FEATURES = 6
_status_index = {status: i for i, status in enumerate(HostStatus)}


class DefenderEnv(gym.Env):
    """Single operator environment over the host simulation engine.

    Action 0 waits for a tick, action 1 + h * M + m applies mitigation
    `m` (index into `mitigation_ids`) to host `h`. `info['action_mask']`
    flags the actions that are currently legal.
    """

    metadata = {'render_modes': []}

    def __init__(
        self,
        catalog: Optional[Catalog | str] = None,
        settings: Optional[SimulatorSettings] = None,
        **kwargs: Any
    ) -> None:
        self.render_mode = kwargs.pop('render_mode', None)

        if catalog is None or isinstance(catalog, str):
            catalog = load_catalog(catalog)
        self.catalog = catalog
        self.settings = settings or SimulatorSettings()

        self.host_ids = [spec.id for spec in catalog.hosts]
        self.mitigation_ids = catalog.mitigation_ids

        self.observation_space = spaces.Box(
            low=0.0,
            high=np.inf,
            shape=(len(self.host_ids), NUM_HOST_FEATURES),
            dtype=np.float32,
        )
        self.action_space = spaces.Discrete(
            1 + len(self.host_ids) * len(self.mitigation_ids)
        )

        self.hosts = make_initial_hosts(catalog)
        self.run_state = RunState.RUNNING
        self.tick = 0
        self.score = 0
        super().__init__()

    def decode_action(self, action: int) -> Optional[tuple[str, str]]:
        """Return (host_id, mitigation_id) for an action, None for waiting"""
        if action == 0:
            return None
        host_index, mitigation_index = divmod(
            int(action) - 1, len(self.mitigation_ids)
        )
        return self.host_ids[host_index], self.mitigation_ids[mitigation_index]

    def encode_action(self, host_id: str, mitigation_id: str) -> int:
        return (
            1
            + self.host_ids.index(host_id) * len(self.mitigation_ids)
            + self.mitigation_ids.index(mitigation_id)
        )

    def action_mask(self) -> np.ndarray:
        mask = np.zeros(self.action_space.n, dtype=np.int8)
        mask[0] = 1
        for host in self.hosts:
            for mitigation_id in available_mitigations(host, self.catalog):
                mask[self.encode_action(host.id, mitigation_id)] = 1
        return mask

    def _observation(self) -> np.ndarray:
        return np.array(
            [
                [
                    float(h.spawned),
                    _status_index[h.status],
                    h.stage_index,
                    h.stage_time_left,
                    len(h.applied_mitigations),
                    h.spawn_countdown,
                ]
                for h in self.hosts
            ],
            dtype=np.float32,
        ).reshape(self.observation_space.shape)

    def _info(self) -> dict[str, Any]:
        return {
            'tick': self.tick,
            'score': self.score,
            'run_state': self.run_state.value,
            'action_mask': self.action_mask(),
        }

    def reset(
        self, *, seed: int | None = None, options: dict[str, Any] | None = None
    ) -> tuple[Any, dict[str, Any]]:
        super().reset(seed=seed, options=options)
        self.hosts = make_initial_hosts(self.catalog)
        self.run_state = RunState.RUNNING
        self.tick = 0
        self.score = 0
        return self._observation(), self._info()

    def step(
        self, action: int
    ) -> tuple[Any, SupportsFloat, bool, bool, dict[str, Any]]:

        if self.run_state != RunState.RUNNING:
            # Episode already over, nothing advances until reset
            return self._observation(), 0.0, True, False, self._info()

        reward = 0.0
        decision = None
        decoded = self.decode_action(action)
        if decoded is not None:
            host_id, mitigation_id = decoded
            target = hosts_by_id(self.hosts)[host_id]
            # Only mitigations the host can still take are applied
            if mitigation_id in available_mitigations(target, self.catalog):
                self.hosts, points, outcome = apply_mitigation(
                    self.hosts, host_id, mitigation_id, self.catalog, self.settings
                )
            else:
                points, outcome = 0, MitigationOutcome.IGNORED
            self.score += points
            decision = (target, points, outcome)

        self.hosts = step(self.hosts, self.run_state, self.catalog, self.settings)
        self.tick += 1
        self.run_state = evaluate_outcome(self.hosts, self.run_state, self.settings)

        if decision is not None:
            target, points, outcome = decision
            after = hosts_by_id(self.hosts)[target.id]
            reward += decision_reward(target, after, points, outcome)
        reward += terminal_reward(self.run_state)

        terminated = self.run_state in (RunState.WON, RunState.LOST)
        truncated = not terminated and self.tick >= self.settings.max_ticks

        return self._observation(), reward, terminated, truncated, self._info()

    def render(self):
        return None


def register_envs():
    gym.register('CyberOpsDefenderEnv-v0', entry_point=DefenderEnv)
