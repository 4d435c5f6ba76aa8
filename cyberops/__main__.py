"""CLI to run headless episodes of the CyberOps Simulator"""

from __future__ import annotations
import argparse
import logging
from typing import Optional

from cyberops.agents import (
    DecisionAgent,
    InMemoryStorage,
    JsonFileStorage,
    QAgent,
    policy_name_to_class,
)
from cyberops.catalog import Catalog, load_catalog
from cyberops.sim import EpisodeResult, SimulatorSettings, run_episode

logger = logging.getLogger(__name__)


def create_agent(
    policy_name: str,
    catalog: Catalog,
    seed: Optional[int] = None,
    store: Optional[str] = None,
) -> DecisionAgent:
    """Instantiate the decision agent named `policy_name`"""
    if policy_name not in policy_name_to_class:
        raise LookupError(
            f"Policy class '{policy_name}' not supported. "
            f'Must be one of: {list(policy_name_to_class.keys())}'
        )
    storage = JsonFileStorage(store) if store else InMemoryStorage()
    return policy_name_to_class[policy_name](
        {'seed': seed}, catalog=catalog, storage=storage
    )


def run_episodes(
    catalog: Catalog,
    agent: DecisionAgent,
    episodes: int,
    settings: SimulatorSettings,
) -> list[EpisodeResult]:
    results = []
    for episode in range(1, episodes + 1):
        result = run_episode(catalog, agent, settings)
        results.append(result)
        print(
            f'Episode {episode}: {"won" if result.won else "lost"} '
            f'score={result.score} ticks={result.duration_sec}'
        )

    wins = sum(r.won for r in results)
    print(f'Won {wins} of {len(results)} episodes.')
    if isinstance(agent, QAgent):
        print(
            f'Agent: {agent.episodes} episodes total, '
            f'win rate {agent.win_rate:.2f}, epsilon {agent.epsilon:.3f}'
        )
    return results


def main(argv: Optional[list[str]] = None) -> None:
    """Entrypoint function of the CyberOps CLI"""
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(prog='cyberops')
    parser.add_argument(
        'catalog_file',
        type=str,
        nargs='?',
        help="Catalog yml file, the packaged catalog is used if left out",
    )
    parser.add_argument(
        '-e', '--episodes', type=int, default=1,
        help="Number of episodes to run",
    )
    parser.add_argument(
        '-a', '--agent', type=str, default='QAgent',
        choices=sorted(policy_name_to_class),
        help="Decision agent playing the operator",
    )
    parser.add_argument(
        '-s', '--seed', type=int,
        help="If set to a seed, the agent will use it",
    )
    parser.add_argument(
        '--store', type=str,
        help="Json file the QAgent loads its knowledge from and saves it to",
    )
    parser.add_argument(
        '--reset', action='store_true',
        help="Forget what the QAgent learned before running",
    )
    parser.add_argument(
        '--max-ticks', type=int, default=SimulatorSettings.max_ticks,
        help="Ticks before an episode is stopped",
    )
    args = parser.parse_args(argv)

    catalog = load_catalog(args.catalog_file)
    settings = SimulatorSettings(max_ticks=args.max_ticks)
    agent = create_agent(args.agent, catalog, seed=args.seed, store=args.store)

    if args.reset:
        if isinstance(agent, QAgent):
            agent.reset()
        else:
            logger.warning('--reset only applies to QAgent, ignored.')

    run_episodes(catalog, agent, args.episodes, settings)


if __name__ == '__main__':
    main()
