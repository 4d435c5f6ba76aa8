"""Where learning agents keep their knowledge between runs"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Optional
import copy
import json
import logging
import os

logger = logging.getLogger(__name__)


class AgentStorage(ABC):
    """Load/save/clear port for one persisted agent record.

    Implementations may raise OSError or ValueError, the agent using the
    storage decides how to recover.
    """

    @abstractmethod
    def load(self) -> Optional[dict[str, Any]]:
        """Return the stored record or None if nothing is stored"""
        ...

    @abstractmethod
    def save(self, record: dict[str, Any]) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...


class InMemoryStorage(AgentStorage):
    """Keeps the record in memory, used for tests and throwaway runs"""

    def __init__(self, record: Optional[dict[str, Any]] = None):
        self._record = copy.deepcopy(record)

    def load(self) -> Optional[dict[str, Any]]:
        return copy.deepcopy(self._record)

    def save(self, record: dict[str, Any]) -> None:
        self._record = copy.deepcopy(record)

    def clear(self) -> None:
        self._record = None


class JsonFileStorage(AgentStorage):
    """Keeps the record as a json document on disk"""

    def __init__(self, file_path: str):
        self.file_path = file_path

    def __repr__(self) -> str:
        return f'JsonFileStorage({self.file_path!r})'

    def load(self) -> Optional[dict[str, Any]]:
        if not os.path.exists(self.file_path):
            return None
        with open(self.file_path, 'r', encoding='utf-8') as f:
            record = json.load(f)
        if not isinstance(record, dict):
            raise ValueError(f'{self.file_path} does not contain a json object')
        return record

    def save(self, record: dict[str, Any]) -> None:
        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.file_path, 'w', encoding='utf-8') as f:
            json.dump(record, f)
        logger.debug('Saved agent record to %s', self.file_path)

    def clear(self) -> None:
        if os.path.exists(self.file_path):
            os.remove(self.file_path)
