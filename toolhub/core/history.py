"""Usage-history collaborator contract.

The generation clients never touch history themselves. Adapters record one
lightweight entry after a successful generation; persistence belongs to the
store implementation, which is outside this package. `InMemoryHistory` is a
process-local implementation used by the CLI and in tests.
"""

import time
from dataclasses import dataclass, field
from typing import Protocol

MAX_HISTORY_ENTRIES = 50


@dataclass(frozen=True)
class HistoryEntry:
    path: str
    name: str
    result: str
    type: str = "ai"
    timestamp: float = field(default_factory=time.time)


class HistoryStore(Protocol):
    """Minimal interface a history backend must provide."""

    def add(self, entry: HistoryEntry) -> None:
        ...


class InMemoryHistory:
    """Newest-first bounded history list."""

    def __init__(self, limit: int = MAX_HISTORY_ENTRIES) -> None:
        self.limit = limit
        self._entries: list[HistoryEntry] = []

    def add(self, entry: HistoryEntry) -> None:
        self._entries.insert(0, entry)
        del self._entries[self.limit:]

    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
