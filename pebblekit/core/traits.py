"""
Collaborator contracts consumed by the checkpoint manager.
"""

from abc import ABC, abstractmethod
from typing import Any


class Checkpointable(ABC):
    """
    Application state that can produce restorable snapshots.

    snapshot() must be a pure function of current state: calling it has no
    side effects observable to the manager, and the returned value is owned
    by the caller (later state changes must not leak into it).
    """

    @abstractmethod
    def snapshot(self) -> Any:
        ...


class Serializer(ABC):
    """
    Snapshot <-> bytes codec.

    decode() must raise SerializationFailure on malformed input rather than
    return a partially valid object.
    """

    @abstractmethod
    def encode(self, snapshot: Any) -> bytes:
        ...

    @abstractmethod
    def decode(self, data: bytes) -> Any:
        ...
