"""
Synthetic workloads for tests, the simulate command and benchmarking.

CounterApp is a minimal Checkpointable whose state after n events is known
in closed form, so replay from any anchor can be checked exactly.
"""

import random
from typing import Any, Dict, Iterator, List, Optional

from .core.traits import Checkpointable
from .manager.pebble_manager import PebbleManager


class CounterApp(Checkpointable):
    """
    Counts events and sums their values.

    State after applying events 1..n with value v_i is
    {"count": n, "total": sum(v_i)}.
    """

    def __init__(self) -> None:
        self.count = 0
        self.total = 0

    def apply(self, event: Any = None) -> None:
        self.count += 1
        self.total += event if isinstance(event, int) else 1

    def snapshot(self) -> Dict[str, int]:
        return {"count": self.count, "total": self.total}

    def restore(self, snapshot: Dict[str, int]) -> None:
        self.count = snapshot["count"]
        self.total = snapshot["total"]


def chain_events(count: int, start: int = 1) -> Iterator[int]:
    """Event values start, start+1, ... (count of them)."""
    return iter(range(start, start + count))


def run_chain(manager: PebbleManager, app: CounterApp, count: int) -> List[int]:
    """
    Apply count events on a single line of history.

    Returns:
        Indices minted along the way
    """
    minted: List[int] = []
    for event in chain_events(count, start=manager.total_events + 1):
        app.apply(event)
        index = manager.advance(event)
        if index is not None:
            minted.append(index)
    return minted


def run_branching(
    manager: PebbleManager,
    app: CounterApp,
    count: int,
    merge_every: int = 5,
    seed: Optional[int] = None,
) -> List[int]:
    """
    Apply count events, forcing a branch or merge point every merge_every
    events.

    With a single-parent strategy the forced checkpoint branches from a
    random retained checkpoint; otherwise it merges the head with one.

    Returns:
        Indices minted along the way
    """
    rng = random.Random(seed)
    single_parent = manager.strategy.max_parents == 1
    minted: List[int] = []

    for event in chain_events(count, start=manager.total_events + 1):
        app.apply(event)
        parents = None
        if merge_every > 0 and event % merge_every == 0:
            usable = [n.index for n in manager.dag if n.usable]
            other = rng.choice(usable)
            if single_parent:
                parents = [other]
            elif manager.head is not None:
                parents = [manager.head, other]
        index = manager.advance(event, parents=parents)
        if index is not None:
            minted.append(index)
    return minted


def expected_state(index: int, start: int = 1) -> Dict[str, int]:
    """CounterApp state after a chain of events start..index."""
    count = index - start + 1
    if count <= 0:
        return {"count": 0, "total": 0}
    return {"count": count, "total": (start + index) * count // 2}
