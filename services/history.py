"""Fixed-capacity circular history of formatted sample records."""

from __future__ import annotations

from typing import List


class RingHistory:
    """Keeps the most recent ``capacity`` records, overwriting the oldest slot.

    ``all()`` returns the slots in physical order, so once the buffer has
    wrapped the newest record sits just before the oldest one. Consumers that
    need oldest-to-newest order use ``chronological()``.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError("History capacity must be positive.")
        self.capacity = capacity
        self._entries: List[str] = []
        self._next_write_index = 0

    @property
    def next_write_index(self) -> int:
        return self._next_write_index

    def add(self, entry: str) -> None:
        if len(self._entries) < self.capacity:
            self._entries.append(entry)
            return
        self._entries[self._next_write_index] = entry
        self._next_write_index = (self._next_write_index + 1) % self.capacity

    def all(self) -> List[str]:
        return list(self._entries)

    def chronological(self) -> List[str]:
        start = self._next_write_index
        return self._entries[start:] + self._entries[:start]

    def __len__(self) -> int:
        return len(self._entries)
