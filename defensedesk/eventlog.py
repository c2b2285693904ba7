from __future__ import annotations
import itertools
import time
from collections import deque
from typing import List, Optional

from .models import SecurityLogEntry


class EventLog:
    """Append-only security log that keeps only the most recent entries."""

    def __init__(self, max_entries: int = 50):
        self._entries: deque = deque(maxlen=max_entries)
        self._ids = itertools.count(1)

    def append(self, severity: str, message: str, ts: Optional[int] = None) -> SecurityLogEntry:
        entry = SecurityLogEntry(
            id=next(self._ids),
            ts=int(time.time()) if ts is None else ts,
            severity=severity,
            message=message,
        )
        self._entries.append(entry)
        return entry

    def entries(self) -> List[SecurityLogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
