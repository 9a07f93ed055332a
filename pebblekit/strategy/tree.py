"""
Tree strategy: leaf-count eviction for single-parent checkpoint trees.
"""

from typing import Optional, Set

from ..core.dag import CheckpointDAG
from .base import ActionKind, PlannedAction, RetentionStrategy


class TreeStrategy(RetentionStrategy):
    """
    Evict the red node with the largest leaf count.

    Candidates are red nodes other than the head (the most recent
    checkpoint) whose parents are already out of memory. Nodes off the
    head-to-root path rank before nodes on it, then larger leaf count first,
    then smaller index first.

    Never discards: every evicted node stays reachable as a blue checkpoint.
    """

    name = "tree"
    max_parents = 1

    def next_action(
        self,
        dag: CheckpointDAG,
        head: Optional[int],
        budget: int,
        total_events: int,
    ) -> Optional[PlannedAction]:
        candidates = dag.evictable(head)
        if not candidates:
            return None

        path: Set[int] = set()
        if head is not None and head in dag:
            path = dag.ancestors(head)
            path.add(head)

        victim = min(candidates, key=lambda n: (n.index in path, -n.weight, n.index))
        return PlannedAction(ActionKind.EVICT, victim.index)
