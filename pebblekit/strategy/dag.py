"""
DAG strategy: credit-bounded eviction for multi-parent checkpoint graphs.

I/O credit
----------
optimal_writes is a running lower bound on the blue records any schedule
needs: at every pass at least required_checkpoints(budget) checkpoints must
survive, and at most budget of them can be red. Since blue writes cannot be
taken back, the running maximum is a lower bound on cumulative writes.

The strategy may spend io_ratio * max(1, optimal_writes) writes. Beyond that
it discards a subsumed red node instead. When nothing is subsumed it evicts
anyway and counts an overdraft: the red budget always wins over the credit.
"""

import math
from typing import Any, Callable, Dict, Optional

from ..core.dag import CheckpointDAG
from ..core.node import CheckpointNode
from .base import ActionKind, PlannedAction, RetentionStrategy

# (node, total_events, budget) -> eviction score, higher evicts first
Scorer = Callable[[CheckpointNode, int, int], float]

DEFAULT_IO_RATIO = 3.0


def anchor_weighted_score(node: CheckpointNode, total_events: int, budget: int) -> float:
    """
    Path-aggregated weight damped by recency of use.

    A node minted or used as a replay anchor within the last few budget
    windows keeps most of its residency; long-idle heavy nodes go first.
    """
    age = max(0, total_events - node.last_used)
    return node.weight * (age / (age + budget))


class DagStrategy(RetentionStrategy):
    """
    Eviction by combined score with an I/O credit bound.

    Fields:
        writes: Evictions performed (one storage write each)
        discards: Nodes dropped instead of written
        overdrafts: Evictions performed beyond the credit limit
        optimal_writes: Running lower bound on required blue records
    """

    name = "dag"

    def __init__(
        self,
        mint_interval: Optional[int] = None,
        io_ratio: float = DEFAULT_IO_RATIO,
        scorer: Optional[Scorer] = None,
    ) -> None:
        super().__init__(mint_interval=mint_interval)
        if io_ratio < 1:
            raise ValueError("io_ratio must be at least 1")
        self.io_ratio = io_ratio
        self.scorer: Scorer = scorer or anchor_weighted_score
        self.writes = 0
        self.discards = 0
        self.overdrafts = 0
        self.optimal_writes = 0

    @property
    def credit_limit(self) -> int:
        return math.floor(self.io_ratio * max(1, self.optimal_writes))

    def next_action(
        self,
        dag: CheckpointDAG,
        head: Optional[int],
        budget: int,
        total_events: int,
    ) -> Optional[PlannedAction]:
        self.optimal_writes = max(self.optimal_writes, dag.required_checkpoints(budget) - budget)

        candidates = [n for n in dag.red_nodes() if n.index != head]
        if not candidates:
            return None

        def rank(n: CheckpointNode):
            return (self.scorer(n, total_events, budget), -n.index)

        # scorer only orders nodes whose parents are already stored
        evictable = dag.evictable(head)
        best = max(evictable, key=rank) if evictable else None
        if best is not None and self.writes + 1 <= self.credit_limit:
            return PlannedAction(ActionKind.EVICT, best.index)

        # a stored child record names its parents; dropping one would orphan it
        subsumed = [
            n
            for n in candidates
            if dag.is_subsumed(n.index, budget, head)
            and all(dag.node(c).is_red for c in n.children)
        ]
        if subsumed:
            return PlannedAction(ActionKind.DISCARD, max(subsumed, key=rank).index)

        if best is None:
            return None
        return PlannedAction(ActionKind.EVICT, best.index, forced=True)

    def on_applied(self, action: PlannedAction) -> None:
        if action.kind is ActionKind.EVICT:
            self.writes += 1
            if action.forced:
                self.overdrafts += 1
        else:
            self.discards += 1

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info.update(
            {
                "io_ratio": self.io_ratio,
                "writes": self.writes,
                "discards": self.discards,
                "overdrafts": self.overdrafts,
                "optimal_writes": self.optimal_writes,
                "credit_limit": self.credit_limit,
            }
        )
        return info
