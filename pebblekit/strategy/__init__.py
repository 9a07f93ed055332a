"""
Retention strategies.

- TreeStrategy: leaf-count eviction, single parent per checkpoint
- DagStrategy: credit-bounded eviction with discard fallback, any DAG
"""

from .base import ActionKind, PlannedAction, RetentionStrategy
from .tree import TreeStrategy
from .dag import DEFAULT_IO_RATIO, DagStrategy, Scorer, anchor_weighted_score

__all__ = [
    "ActionKind",
    "PlannedAction",
    "RetentionStrategy",
    "TreeStrategy",
    "DagStrategy",
    "DEFAULT_IO_RATIO",
    "Scorer",
    "anchor_weighted_score",
]
