"""
Retention budget: target number of red checkpoints for T observed events.
"""

import math
from dataclasses import dataclass
from enum import Enum


class BudgetCadence(str, Enum):
    """When the manager re-evaluates the budget target."""

    EVENT = "event"
    MINT = "mint"


@dataclass(frozen=True)
class RetentionBudget:
    """
    Budget proportional to sqrt(T).

    target(T) = max(minimum, ceil(coefficient * sqrt(T)))

    The budget is a target, not a mid-operation cap: the strategy restores it
    after every mint.
    """
    coefficient: float = 1.0
    cadence: BudgetCadence = BudgetCadence.EVENT
    minimum: int = 1

    def __post_init__(self) -> None:
        if self.coefficient <= 0:
            raise ValueError("budget coefficient must be positive")
        if self.minimum < 1:
            raise ValueError("minimum budget must be at least 1")

    def target(self, total_events: int) -> int:
        if total_events < 0:
            raise ValueError("total_events must be non-negative")
        # round first so float noise cannot bump an exact square
        raw = round(self.coefficient * math.sqrt(total_events), 9)
        return max(self.minimum, math.ceil(raw))

    def refresh_on_event(self) -> bool:
        return self.cadence is BudgetCadence.EVENT
