"""EventLog functionality which records what happened to hosts each tick"""

from collections.abc import Iterable
from dataclasses import dataclass
import logging

from cyberops.sim.host import Host

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEntry:
    """A single event produced by a host during a tick."""

    tick: int
    host_id: str
    event: str


class EventLogger:
    """Collects host events during a simulated episode."""

    def __init__(self):
        self.logs: list[LogEntry] = []

    def __repr__(self) -> str:
        return f'EventLogger(num_logs={len(self.logs)})'

    def collect_logs(
        self,
        tick: int,
        previous_hosts: Iterable[Host],
        hosts: Iterable[Host],
    ) -> list[LogEntry]:
        """Record an entry for every host whose last event changed.

        Args:
          tick: The tick the new snapshot was produced in.
          previous_hosts: The snapshot before the tick.
          hosts: The snapshot after the tick.

        Returns:
          The entries added by this call.
        """
        previous_events = {h.id: h.last_event for h in previous_hosts}
        new_entries = [
            LogEntry(tick=tick, host_id=h.id, event=h.last_event)
            for h in hosts
            if previous_events.get(h.id) != h.last_event
        ]
        for entry in new_entries:
            logger.debug('[%d] %s: %s', entry.tick, entry.host_id, entry.event)

        self.logs.extend(new_entries)
        return new_entries

    def for_host(self, host_id: str) -> list[LogEntry]:
        return [entry for entry in self.logs if entry.host_id == host_id]

    def clear(self) -> None:
        self.logs.clear()
