"""
Checkpoint node model.

A node is identified by its event index and is either red (snapshot held in
memory) or blue (snapshot serialized to storage under storage_key).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Set, Tuple


class Color(str, Enum):
    """Pebble color of a checkpoint node."""

    RED = "red"
    BLUE = "blue"


@dataclass
class CheckpointNode:
    """
    Mutable checkpoint node owned by CheckpointDAG.

    Fields:
        index: Event index (unique, never reused)
        parents: Indices of parent checkpoints (all smaller than index)
        color: RED or BLUE
        payload: Owned snapshot when red, None when blue
        storage_key: Storage key when blue
        weight: Path-counted leaf count (1 for a leaf)
        last_used: Event index of mint or last use as a replay anchor
        usable: False once the payload was lost to a (de)serialization
            failure; the node stays as a structural tombstone
        children: Indices of child checkpoints
    """
    index: int
    parents: Tuple[int, ...] = ()
    color: Color = Color.RED
    payload: Any = None
    storage_key: Optional[str] = None
    weight: int = 1
    last_used: int = 0
    usable: bool = True
    children: Set[int] = field(default_factory=set)

    @property
    def parent(self) -> Optional[int]:
        """Nearest parent (largest parent index), or None for a root."""
        if not self.parents:
            return None
        return max(self.parents)

    @property
    def is_red(self) -> bool:
        return self.color is Color.RED

    @property
    def is_blue(self) -> bool:
        return self.color is Color.BLUE

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_root(self) -> bool:
        return not self.parents

    def describe(self) -> dict:
        """Plain dict view for logging and CLI output (no payload)."""
        return {
            "index": self.index,
            "parents": list(self.parents),
            "color": self.color.value,
            "storage_key": self.storage_key,
            "weight": self.weight,
            "usable": self.usable,
            "children": sorted(self.children),
        }
