"""
Command transcript for diagnostics and replay.

Pure capture: entries are stored exactly as given, newest first, and the
oldest entries are dropped once the capacity is exceeded.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

DEFAULT_CAPACITY = 100


class Direction(Enum):
    """Which way the text travelled, seen from the printer's client."""

    SENT = "sent"
    RECEIVED = "received"


@dataclass(frozen=True)
class LogEntry:
    """One recorded line of the exchange."""

    direction: Direction
    text: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        arrow = ">>" if self.direction is Direction.SENT else "<<"
        text = self.text.replace("\r\n", " | ")
        return f"{self.timestamp:%H:%M:%S} {arrow} {text}"


class Transcript:
    """Bounded, most-recent-first record of commands and responses."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries = deque(maxlen=capacity)

    def record(self, direction: Direction, text: str) -> LogEntry:
        entry = LogEntry(direction, text)
        self._entries.appendleft(entry)
        return entry

    def history(self) -> list[LogEntry]:
        """Return entries, newest first."""
        return list(self._entries)

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
