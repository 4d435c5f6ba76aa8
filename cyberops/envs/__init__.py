from .gym_envs import DefenderEnv, register_envs

__all__ = [
    'DefenderEnv',
    'register_envs',
]
