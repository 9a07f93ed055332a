"""
Decision log of mint/evict/discard/load steps.

The manager appends decisions when record_decisions is enabled. The
diagnostic simulator consumes the log and never calls back into the manager.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Tuple


class Action(str, Enum):
    MINT = "mint"
    EVICT = "evict"
    DISCARD = "discard"
    LOSE = "lose"
    LOAD = "load"
    RECOVER = "recover"
    PASS = "pass"


@dataclass(frozen=True)
class Decision:
    """
    One logged step.

    Fields:
        action: What happened
        index: Checkpoint index acted on (-1 for PASS)
        total_events: Event count when it happened
        parents: Parent indices (MINT and RECOVER only)
        budget: Budget in force (PASS only)
        red_count: Red nodes after the step (PASS only)
    """
    action: Action
    index: int
    total_events: int
    parents: Tuple[int, ...] = ()
    budget: int = 0
    red_count: int = 0

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "index": self.index,
            "total_events": self.total_events,
            "parents": list(self.parents),
            "budget": self.budget,
            "red_count": self.red_count,
        }


class DecisionLog:
    """Append-only list of decisions; disabled logs drop everything."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._entries: List[Decision] = []

    def append(self, decision: Decision) -> None:
        if self.enabled:
            self._entries.append(decision)

    def __iter__(self) -> Iterator[Decision]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> List[Decision]:
        return list(self._entries)
