"""
Core checkpoint primitives.

This module provides the structural layer shared by strategies, the manager
and the diagnostic simulator:
- CheckpointNode / Color: red (resident) or blue (stored) checkpoints
- CheckpointDAG: index-addressed ancestry graph
- RetentionBudget: sqrt(T) target for red checkpoints
- Checkpointable / Serializer: collaborator contracts
- DecisionLog: record of manager decisions
- Canonical: deterministic JSON encoding
"""

from .node import CheckpointNode, Color
from .dag import CheckpointDAG
from .budget import BudgetCadence, RetentionBudget
from .traits import Checkpointable, Serializer
from .decisions import Action, Decision, DecisionLog
from .canonical import canonicalize, canonical_json_bytes, canonical_json_str
from .errors import (
    PebbleError,
    NotFound,
    StorageFailure,
    SerializationFailure,
    IntegrityError,
    Inconsistent,
    BuilderError,
)

__all__ = [
    "CheckpointNode",
    "Color",
    "CheckpointDAG",
    "BudgetCadence",
    "RetentionBudget",
    "Checkpointable",
    "Serializer",
    "Action",
    "Decision",
    "DecisionLog",
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "PebbleError",
    "NotFound",
    "StorageFailure",
    "SerializationFailure",
    "IntegrityError",
    "Inconsistent",
    "BuilderError",
]
