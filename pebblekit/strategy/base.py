"""
Retention strategy contract.

A strategy is pure policy: it decides when to mint and which red node to
evict or discard next. The manager performs every snapshot, write and DAG
edit, then reports back through on_applied().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..core.dag import CheckpointDAG


class ActionKind(str, Enum):
    EVICT = "evict"
    DISCARD = "discard"


@dataclass(frozen=True)
class PlannedAction:
    """
    One rebalancing step chosen by a strategy.

    Fields:
        kind: EVICT (red -> blue, one storage write) or DISCARD (drop node)
        index: Target checkpoint index
        forced: Eviction taken beyond the strategy's I/O credit
    """
    kind: ActionKind
    index: int
    forced: bool = False


class RetentionStrategy(ABC):
    """
    Base strategy.

    Mint cadence: with a fixed mint_interval a checkpoint is minted every
    mint_interval events; otherwise spacing follows the current budget, so
    the distance from the latest checkpoint to T never exceeds the budget.
    """

    name = "base"
    # maximum parents per checkpoint, None for unlimited
    max_parents: Optional[int] = None

    def __init__(self, mint_interval: Optional[int] = None) -> None:
        if mint_interval is not None and mint_interval < 1:
            raise ValueError("mint_interval must be at least 1")
        self.mint_interval = mint_interval

    def should_mint(
        self,
        total_events: int,
        last_mint: Optional[int],
        budget: int,
        event: Any = None,
    ) -> bool:
        """
        Decide whether the event that brought the stream to total_events
        gets a checkpoint. Subclasses may inspect event to mint on
        application-defined boundaries.
        """
        if last_mint is None:
            return True
        interval = self.mint_interval if self.mint_interval is not None else budget
        return total_events - last_mint >= interval

    @abstractmethod
    def next_action(
        self,
        dag: CheckpointDAG,
        head: Optional[int],
        budget: int,
        total_events: int,
    ) -> Optional[PlannedAction]:
        """
        Choose the next step while red nodes exceed budget.

        Returns:
            PlannedAction, or None if no red node is eligible
        """
        ...

    def on_applied(self, action: PlannedAction) -> None:
        """Called after the manager successfully applied action."""
        pass

    def describe(self) -> Dict[str, Any]:
        return {"strategy": self.name, "mint_interval": self.mint_interval}
