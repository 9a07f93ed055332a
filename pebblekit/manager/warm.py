"""
Warm tier: decoded snapshots of recently resolved blue checkpoints.

Resolving a blue checkpoint does not re-promote it to red. The warm tier
only remembers the last few decoded snapshots so repeated resolves of the
same target do not repeat the storage read, which is why capacity is
never zero. Entries are decoded snapshots, never raw record bytes.
"""

from collections import OrderedDict
from typing import Any, Optional


class WarmCache:
    """LRU of decoded blue snapshots keyed by checkpoint index."""

    def __init__(self, capacity: int = 1) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: "OrderedDict[int, Any]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, index: object) -> bool:
        return index in self._entries

    def get(self, index: int) -> Optional[Any]:
        if index not in self._entries:
            self.misses += 1
            return None
        self._entries.move_to_end(index)
        self.hits += 1
        return self._entries[index]

    def put(self, index: int, snapshot: Any) -> None:
        self._entries[index] = snapshot
        self._entries.move_to_end(index)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def invalidate(self, index: int) -> None:
        self._entries.pop(index, None)

    def clear(self) -> None:
        self._entries.clear()
