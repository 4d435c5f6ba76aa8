from .decision_agent import DecisionAgent
from .passive_agent import PassiveAgent
from .random_agent import RandomAgent
from .heuristic_agent import RequiredMitigationDefender
from .q_agent import EpisodeRecord, QAgent, encode_state
from .storage import AgentStorage, InMemoryStorage, JsonFileStorage

policy_name_to_class = {
    'PassiveAgent': PassiveAgent,
    'RandomAgent': RandomAgent,
    'RequiredMitigationDefender': RequiredMitigationDefender,
    'QAgent': QAgent,
}

__all__ = [
    'DecisionAgent',
    'PassiveAgent',
    'RandomAgent',
    'RequiredMitigationDefender',
    'QAgent',
    'EpisodeRecord',
    'encode_state',
    'AgentStorage',
    'InMemoryStorage',
    'JsonFileStorage',
    'policy_name_to_class',
]
