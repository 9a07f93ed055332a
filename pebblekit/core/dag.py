"""
Checkpoint DAG: index-addressed table of checkpoint nodes.

Pure structure, no retention policy. Edges are plain integer indices and
always point from a higher index to a lower one, so the graph is acyclic by
construction.

Node weight is the path-counted leaf count: 1 for a leaf, otherwise the sum
of the children's weights. In tree mode this is the number of leaves below a
node; in DAG mode a leaf reachable along several paths counts once per path.
"""

import math
from bisect import bisect_right, insort
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .errors import NotFound
from .node import CheckpointNode, Color


class CheckpointDAG:
    """
    Mapping from event index to CheckpointNode.

    Guarantees:
    - Indices strictly increase on insert and are never reused
    - Every parent index is smaller than its child's index
    - Exactly one root once the graph is non-empty
    """

    def __init__(self) -> None:
        self._nodes: Dict[int, CheckpointNode] = {}
        self._order: List[int] = []
        self._high_water = -1

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, index: object) -> bool:
        return index in self._nodes

    def __iter__(self) -> Iterator[CheckpointNode]:
        for index in list(self._order):
            yield self._nodes[index]

    def get(self, index: int) -> Optional[CheckpointNode]:
        return self._nodes.get(index)

    def node(self, index: int) -> CheckpointNode:
        """
        Get node by index.

        Raises:
            KeyError: If index is not retained
        """
        try:
            return self._nodes[index]
        except KeyError:
            raise KeyError(f"checkpoint {index} is not retained") from None

    def indices(self) -> List[int]:
        """Retained indices in ascending order."""
        return list(self._order)

    @property
    def root(self) -> Optional[int]:
        for index in self._order:
            if self._nodes[index].is_root:
                return index
        return None

    @property
    def latest(self) -> Optional[int]:
        return self._order[-1] if self._order else None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def insert(
        self,
        index: int,
        parents: Iterable[int] = (),
        payload: Any = None,
        last_used: Optional[int] = None,
    ) -> CheckpointNode:
        """
        Insert a new red node holding payload.

        Args:
            index: Event index (must exceed every index ever inserted)
            parents: Parent indices (empty only for the first node)
            payload: Owned snapshot handle
            last_used: Event index of last use (defaults to index)

        Raises:
            ValueError: If index or parents violate DAG invariants
        """
        parent_tuple = self._check_new(index, parents)
        node = CheckpointNode(
            index=index,
            parents=parent_tuple,
            color=Color.RED,
            payload=payload,
            last_used=index if last_used is None else last_used,
        )
        self._link(node)
        return node

    def insert_blue(self, index: int, parents: Iterable[int], storage_key: str) -> CheckpointNode:
        """Insert a node that already lives in storage (used by warm recovery)."""
        parent_tuple = self._check_new(index, parents)
        node = CheckpointNode(
            index=index,
            parents=parent_tuple,
            color=Color.BLUE,
            storage_key=storage_key,
            last_used=index,
        )
        self._link(node)
        return node

    def mark_blue(self, index: int, storage_key: str) -> CheckpointNode:
        """
        Re-home a node's payload to storage.

        The in-memory handle is released; the payload is never held in both
        colors at once.
        """
        node = self.node(index)
        node.color = Color.BLUE
        node.payload = None
        node.storage_key = storage_key
        return node

    def mark_red(self, index: int, payload: Any) -> CheckpointNode:
        """
        Bring a blue node's payload back into memory.

        The stored record is left in place but no longer referenced; a later
        eviction writes it again.

        Raises:
            ValueError: If the node is already red or lost its payload
        """
        node = self.node(index)
        if not node.usable:
            raise ValueError(f"checkpoint {index} lost its payload")
        if node.is_red:
            raise ValueError(f"checkpoint {index} is already red")
        node.color = Color.RED
        node.payload = payload
        node.storage_key = None
        return node

    def mark_unusable(self, index: int) -> CheckpointNode:
        """
        Turn a node whose payload was lost into a tombstone.

        The node keeps its edges so ancestry stays intact, but it holds no
        payload, counts as neither red nor blue and is skipped by
        nearest_ancestor().
        """
        node = self.node(index)
        node.color = Color.BLUE
        node.payload = None
        node.usable = False
        return node

    def touch(self, index: int, when: int) -> None:
        """Record use of a node as a replay anchor at event index when."""
        node = self.node(index)
        node.last_used = max(node.last_used, when)

    def remove(self, index: int) -> CheckpointNode:
        """
        Remove a node, re-attaching its children to its parents.

        Raises:
            KeyError: If index is not retained
            ValueError: If index is the root and still has children
        """
        node = self.node(index)
        if node.is_root and node.children:
            raise ValueError(f"cannot remove root checkpoint {index} while it has dependents")

        for child_index in node.children:
            child = self._nodes[child_index]
            new_parents = (set(child.parents) - {index}) | set(node.parents)
            child.parents = tuple(sorted(new_parents))

        for parent_index in node.parents:
            parent = self._nodes[parent_index]
            parent.children.discard(index)
            parent.children.update(node.children)

        del self._nodes[index]
        self._order.remove(index)

        for parent_index in node.parents:
            self.update_weight(parent_index)

        node.children = set()
        return node

    def update_weight(self, index: int) -> int:
        """
        Recompute a node's weight from its children and propagate the change.

        Returns:
            The node's new weight
        """
        node = self.node(index)
        if node.children:
            new_weight = sum(self._nodes[c].weight for c in node.children)
        else:
            new_weight = 1
        delta = new_weight - node.weight
        if delta:
            node.weight = new_weight
            self._propagate(node.parents, delta)
        return new_weight

    def _propagate(self, start: Iterable[int], delta: int) -> None:
        # one visit per path, matching the path-counted weight definition
        stack = list(start)
        while stack:
            ancestor = self._nodes[stack.pop()]
            ancestor.weight += delta
            stack.extend(ancestor.parents)

    def _check_new(self, index: int, parents: Iterable[int]) -> tuple:
        if index in self._nodes:
            raise ValueError(f"checkpoint {index} already exists")
        if index <= self._high_water:
            raise ValueError(
                f"checkpoint index {index} must exceed previous index {self._high_water}"
            )
        parent_tuple = tuple(sorted(set(parents)))
        for parent_index in parent_tuple:
            if parent_index not in self._nodes:
                raise ValueError(f"parent {parent_index} of checkpoint {index} is not retained")
            if parent_index >= index:
                raise ValueError(f"parent {parent_index} is not older than checkpoint {index}")
        if not parent_tuple and self._nodes:
            raise ValueError(f"checkpoint {index} has no parent but a root already exists")
        return parent_tuple

    def _link(self, node: CheckpointNode) -> None:
        self._nodes[node.index] = node
        insort(self._order, node.index)
        self._high_water = max(self._high_water, node.index)
        for parent_index in node.parents:
            self._nodes[parent_index].children.add(node.index)
            self.update_weight(parent_index)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def red_nodes(self) -> List[CheckpointNode]:
        return [n for n in self if n.is_red]

    def blue_nodes(self) -> List[CheckpointNode]:
        return [n for n in self if n.is_blue and n.usable]

    def red_count(self) -> int:
        return sum(1 for n in self._nodes.values() if n.is_red)

    def blue_count(self) -> int:
        return sum(1 for n in self._nodes.values() if n.is_blue and n.usable)

    def unusable_count(self) -> int:
        return sum(1 for n in self._nodes.values() if not n.usable)

    def evictable(self, head: Optional[int] = None) -> List[CheckpointNode]:
        """
        Red nodes, other than head, whose parents are all out of memory.

        A stored record names its parents, so a node may only be written once
        none of its parents is still red. The lowest red non-head node always
        qualifies, so the result is empty only when no such node exists.
        """
        return [
            n
            for n in self
            if n.is_red
            and n.index != head
            and not any(self._nodes[p].is_red for p in n.parents)
        ]

    def covering_span(self) -> Optional[Tuple[int, int]]:
        """
        Lowest and highest usable checkpoint index, or None when empty.

        Every target from the lowest index up to the event count resolves.
        """
        usable = [i for i in self._order if self._nodes[i].usable]
        if not usable:
            return None
        return usable[0], usable[-1]

    def ancestors(self, index: int) -> Set[int]:
        """All indices reachable from index by following parent edges."""
        seen: Set[int] = set()
        stack = list(self.node(index).parents)
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._nodes[current].parents)
        return seen

    def descendants(self, index: int) -> Set[int]:
        """All indices that reach index by following parent edges."""
        seen: Set[int] = set()
        stack = list(self.node(index).children)
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._nodes[current].children)
        return seen

    def nearest_ancestor(self, target: int, head: Optional[int] = None) -> CheckpointNode:
        """
        Find the retained node with the largest index <= target.

        Args:
            target: Event index to reconstruct
            head: Restrict the search to head and its ancestors

        Raises:
            NotFound: If target predates every eligible retained node

        Tombstoned (unusable) nodes are skipped.
        """
        if head is None:
            pos = bisect_right(self._order, target)
            while pos > 0:
                candidate = self._nodes[self._order[pos - 1]]
                if candidate.usable:
                    return candidate
                pos -= 1
            usable = [i for i in self._order if self._nodes[i].usable]
            raise NotFound(target, usable[0] if usable else None)

        if head not in self._nodes:
            raise NotFound(target, self.latest, reason=f"head {head} is not retained")

        best: Optional[int] = None
        lowest: Optional[int] = None
        seen: Set[int] = set()
        stack = [head]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            node = self._nodes[current]
            if not node.usable:
                stack.extend(node.parents)
                continue
            lowest = current if lowest is None else min(lowest, current)
            if current <= target:
                # parents are older, nothing above current can beat it
                if best is None or current > best:
                    best = current
                continue
            stack.extend(self._nodes[current].parents)

        if best is None:
            raise NotFound(target, lowest)
        return self._nodes[best]

    def is_subsumed(self, index: int, budget: int, head: Optional[int] = None) -> bool:
        """
        True when removing index keeps replay coverage within budget.

        Only plain chain links qualify: one parent, one child, not the root
        and not the head, and the child stays within budget events of the
        parent once index is gone.
        """
        node = self._nodes.get(index)
        if node is None or node.is_root or index == head:
            return False
        if len(node.parents) != 1 or len(node.children) != 1:
            return False
        (child_index,) = tuple(node.children)
        return child_index - node.parents[0] <= budget

    def max_gap(self) -> int:
        """Largest event distance between a node and its nearest parent."""
        gap = 0
        for node in self._nodes.values():
            if node.parents:
                gap = max(gap, node.index - max(node.parents))
        return gap

    def _is_skeleton(self, node: CheckpointNode) -> bool:
        return node.is_root or node.is_leaf or len(node.children) > 1 or len(node.parents) > 1

    def required_checkpoints(self, budget: int) -> int:
        """
        Minimum number of checkpoints that cover the current graph.

        Skeleton nodes (root, leaves, branch and merge points) must stay;
        each chain between skeleton nodes spanning L events needs
        ceil(L / budget) - 1 interior checkpoints to keep every gap within
        budget.
        """
        if budget < 1:
            raise ValueError("budget must be positive")
        total = 0
        for node in self._nodes.values():
            if not self._is_skeleton(node):
                continue
            total += 1
            for child_index in node.children:
                current = self._nodes[child_index]
                while not self._is_skeleton(current):
                    (next_index,) = tuple(current.children)
                    current = self._nodes[next_index]
                span = current.index - node.index
                total += max(0, math.ceil(span / budget) - 1)
        return total
