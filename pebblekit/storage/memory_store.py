"""
In-memory storage backend.

Holds records in a dict. Useful for tests, simulations and short-lived
processes that only need blue checkpoints to leave the red budget.
"""

from typing import Dict, Iterator

from ..core.errors import StorageFailure
from .store import StorageBackend


class MemoryStorage(StorageBackend):
    """
    Dict-backed storage with I/O counters.

    Counters (reads, writes, bytes_read, bytes_written) count successful
    operations only.
    """

    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.reads = 0
        self.writes = 0
        self.bytes_read = 0
        self.bytes_written = 0

    def write(self, key: str, data: bytes) -> None:
        self.objects[key] = bytes(data)
        self.writes += 1
        self.bytes_written += len(data)

    def read(self, key: str) -> bytes:
        try:
            data = self.objects[key]
        except KeyError:
            raise StorageFailure(f"missing record {key}") from None
        self.reads += 1
        self.bytes_read += len(data)
        return data

    def keys(self, prefix: str = "") -> Iterator[str]:
        for key in sorted(self.objects):
            if key.startswith(prefix):
                yield key

    def read_header(self, key: str) -> bytes:
        # listing headers is metadata access, not counted as a record read
        try:
            return self.objects[key].partition(b"\n")[0]
        except KeyError:
            raise StorageFailure(f"missing record {key}") from None
