"""
Manager statistics and checks against the sqrt(T) space bound.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class TheoreticalValidation:
    """
    Comparison of live state with the pebble-game bounds.

    Fields:
        red_within_budget: red_count <= current_budget
        gap_within_budget: max replay gap <= current_budget
        max_gap: Largest distance between adjacent retained checkpoints,
            or from the latest checkpoint to T
        space_ratio: red_count / sqrt(T) (None at T = 0)
    """
    red_within_budget: bool
    gap_within_budget: bool
    max_gap: int
    space_ratio: Optional[float]

    @property
    def valid(self) -> bool:
        return self.red_within_budget and self.gap_within_budget


@dataclass(frozen=True)
class PebbleStats:
    """
    Snapshot of manager counters.

    Fields:
        red_count: Checkpoints resident in memory
        blue_count: Checkpoints in storage
        current_budget: Red budget in force
        total_events: T
        max_gap: See TheoreticalValidation.max_gap
        writes / reads: Successful storage writes and record reads
        bytes_written / bytes_read: Record bytes moved
        discarded: Nodes dropped by the strategy
        lost: Nodes dropped because their payload could not be (de)serialized
        recovered: Blue nodes rebuilt by warm recovery
        dropped_records: Records rejected by warm recovery
        warm_hits: Resolves served from the warm tier
    """
    red_count: int
    blue_count: int
    current_budget: int
    total_events: int
    max_gap: int = 0
    writes: int = 0
    reads: int = 0
    bytes_written: int = 0
    bytes_read: int = 0
    discarded: int = 0
    lost: int = 0
    recovered: int = 0
    dropped_records: int = 0
    warm_hits: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> TheoreticalValidation:
        ratio = None
        if self.total_events > 0:
            ratio = self.red_count / math.sqrt(self.total_events)
        return TheoreticalValidation(
            red_within_budget=self.red_count <= self.current_budget,
            gap_within_budget=self.max_gap <= self.current_budget,
            max_gap=self.max_gap,
            space_ratio=ratio,
        )
