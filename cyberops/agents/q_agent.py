"""Tabular Q-learning agent

The agent learns an action-value table over a small discrete encoding of
a host's situation and chooses mitigations epsilon-greedily. The table
and episode statistics are kept in an `AgentStorage`, loaded when the
agent is created and saved after every episode.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING
import logging

import numpy as np

from .decision_agent import DecisionAgent
from .storage import AgentStorage, InMemoryStorage

if TYPE_CHECKING:
    from ..sim import Host

logger = logging.getLogger(__name__)

ALPHA = 0.4  # learning rate
GAMMA = 0.85  # discount factor
EPSILON_START = 0.9  # initial exploration rate
EPSILON_MIN = 0.05  # floor
EPSILON_DECAY = 0.97  # per-episode multiplier

HISTORY_LENGTH = 50
RECORD_VERSION = 2


def encode_state(host: Host) -> str:
    """Encode a host's situation into a discrete state key.

    State = vuln_id : stage_index : urgency : applied_count
      urgency       - "hi" (<= 20s), "med" (<= 40s), "lo" (> 40s)
      applied_count - capped at 2 to keep the space small
    """
    if host.stage_time_left <= 20:
        urgency = 'hi'
    elif host.stage_time_left <= 40:
        urgency = 'med'
    else:
        urgency = 'lo'
    applied = min(len(host.applied_mitigations), 2)
    return f'{host.vuln_id}:{host.stage_index}:{urgency}:{applied}'


def decayed_epsilon(episodes: int) -> float:
    return max(EPSILON_MIN, EPSILON_START * EPSILON_DECAY ** episodes)


@dataclass(frozen=True)
class EpisodeRecord:
    ep: int
    won: bool
    score: int
    duration_sec: int

    def to_dict(self) -> dict[str, Any]:
        return {
            'ep': self.ep,
            'won': self.won,
            'score': self.score,
            'durationSec': self.duration_sec,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> EpisodeRecord:
        return cls(
            ep=int(d['ep']),
            won=bool(d['won']),
            score=d['score'],
            duration_sec=int(d.get('durationSec') or 0),
        )


class QAgent(DecisionAgent):
    """Epsilon-greedy agent learning a tabular action-value function"""

    def __init__(
        self,
        agent_config: Optional[dict[str, Any]] = None,
        storage: Optional[AgentStorage] = None,
        **_: Any
    ):
        agent_config = agent_config or {}
        self.alpha: float = agent_config.get('alpha', ALPHA)
        self.gamma: float = agent_config.get('gamma', GAMMA)
        self.rng = np.random.default_rng(agent_config.get('seed'))
        self.storage = storage if storage is not None else InMemoryStorage()

        self.qtable: dict[str, float] = {}
        self.episodes = 0
        self.wins = 0
        self.score_history: deque = deque(maxlen=HISTORY_LENGTH)
        self.episode_log: deque[EpisodeRecord] = deque(maxlen=HISTORY_LENGTH)
        self.epsilon = EPSILON_START
        self.load()

    def __repr__(self) -> str:
        return (
            f'QAgent(episodes={self.episodes}, wins={self.wins}, '
            f'epsilon={self.epsilon:.3f}, entries={len(self.qtable)})'
        )

    def encode_state(self, host: Host) -> str:
        return encode_state(host)

    def get_q(self, state_key: str, action: str) -> float:
        return self.qtable.get(f'{state_key}|{action}', 0.0)

    def set_q(self, state_key: str, action: str, value: float) -> None:
        self.qtable[f'{state_key}|{action}'] = value

    def choose_action(
        self, host: Host, available_actions: list[str]
    ) -> Optional[str]:
        """Pick an action epsilon-greedily, None if there is none to pick"""
        if not available_actions:
            return None

        if self.rng.random() < self.epsilon:
            # Explore
            return available_actions[int(self.rng.integers(len(available_actions)))]

        # Exploit, ties go to the first action in input order
        state_key = encode_state(host)
        best_action = available_actions[0]
        best_q = self.get_q(state_key, best_action)
        for action in available_actions[1:]:
            q = self.get_q(state_key, action)
            if q > best_q:
                best_q = q
                best_action = action
        return best_action

    def get_next_action(
        self, host: Host, available_actions: list[str], **kwargs: Any
    ) -> Optional[str]:
        return self.choose_action(host, available_actions)

    def update_q(
        self,
        state_key: str,
        action: str,
        reward: float,
        next_state_key: str,
        next_actions: list[str],
    ) -> None:
        """Q(s,a) <- Q(s,a) + alpha * (r + gamma * max Q(s',a') - Q(s,a))"""
        current = self.get_q(state_key, action)
        max_next = (
            max(self.get_q(next_state_key, a) for a in next_actions)
            if next_actions else 0.0
        )
        updated = current + self.alpha * (reward + self.gamma * max_next - current)
        self.set_q(state_key, action, updated)

    def learn(
        self,
        host: Host,
        action: str,
        reward: float,
        next_host: Host,
        next_actions: list[str],
    ) -> None:
        self.update_q(
            encode_state(host), action, reward,
            encode_state(next_host), next_actions,
        )

    def on_episode_end(
        self, won: bool, score: int, duration_sec: Optional[int] = None
    ) -> None:
        self.episodes += 1
        if won:
            self.wins += 1
        self.score_history.append(score)
        self.episode_log.append(
            EpisodeRecord(self.episodes, won, score, duration_sec or 0)
        )
        self.epsilon = decayed_epsilon(self.episodes)
        self.save()

    @property
    def win_rate(self) -> float:
        return self.wins / self.episodes if self.episodes > 0 else 0.0

    def to_record(self) -> dict[str, Any]:
        """The persisted form of what the agent has learned"""
        return {
            'version': RECORD_VERSION,
            'qtable': dict(self.qtable),
            'episodes': self.episodes,
            'wins': self.wins,
            'scoreHistory': list(self.score_history),
            'episodeLog': [r.to_dict() for r in self.episode_log],
        }

    def save(self) -> None:
        try:
            self.storage.save(self.to_record())
        except (OSError, TypeError, ValueError) as e:
            logger.warning('Could not save agent record: %s', e)

    def load(self) -> None:
        """Restore from storage, keeping defaults if nothing usable is stored"""
        try:
            record = self.storage.load()
            if record is None:
                return
            self._apply_record(record)
        except (OSError, TypeError, ValueError, KeyError, AttributeError) as e:
            logger.warning('Ignoring unusable agent record: %s', e)

    def _apply_record(self, record: dict[str, Any]) -> None:
        version = record.get('version')
        if not isinstance(version, int) or version < 1:
            raise ValueError(f'unsupported record version {version!r}')

        qtable = record.get('qtable') or {}
        if not isinstance(qtable, dict):
            raise ValueError('qtable is not a mapping')
        qtable = {str(key): float(value) for key, value in qtable.items()}

        score_history = list(record.get('scoreHistory') or [])
        if not all(isinstance(s, (int, float)) for s in score_history):
            raise ValueError('scoreHistory holds non-numeric scores')
        episode_log = [
            EpisodeRecord.from_dict(r) for r in record.get('episodeLog') or []
        ]
        episodes = int(record.get('episodes') or 0)
        wins = int(record.get('wins') or 0)
        if episodes < 0 or wins < 0 or wins > episodes:
            raise ValueError(
                f'inconsistent counters: {wins} wins in {episodes} episodes'
            )

        # Only take the record over once all of it parsed
        self.qtable = qtable
        self.episodes = episodes
        self.wins = wins
        self.score_history = deque(score_history, maxlen=HISTORY_LENGTH)
        self.episode_log = deque(episode_log, maxlen=HISTORY_LENGTH)
        # Epsilon is where it would be after this many episodes
        self.epsilon = decayed_epsilon(self.episodes)

    def reset(self) -> None:
        """Forget everything learned and remove the persisted record"""
        self.qtable = {}
        self.episodes = 0
        self.wins = 0
        self.score_history = deque(maxlen=HISTORY_LENGTH)
        self.episode_log = deque(maxlen=HISTORY_LENGTH)
        self.epsilon = EPSILON_START
        try:
            self.storage.clear()
        except OSError as e:
            logger.warning('Could not clear agent record: %s', e)
