"""
pebblekit - sqrt(T) checkpoint retention for event-sourced state.

Keeps at most ceil(c * sqrt(T)) snapshots in memory (red) and spills the rest
to durable storage (blue), so any past state is reachable by resolving the
nearest retained checkpoint and replaying a bounded number of events.
"""

__version__ = "0.1.0"

from .core import (
    BuilderError,
    CheckpointDAG,
    Checkpointable,
    Color,
    Inconsistent,
    IntegrityError,
    NotFound,
    PebbleError,
    RetentionBudget,
    SerializationFailure,
    Serializer,
    StorageFailure,
)
from .manager import (
    OrphanPolicy,
    PebbleConfig,
    PebbleManager,
    PebbleManagerBuilder,
    PebbleStats,
    Resolved,
    StrategyKind,
)
from .serializers import JsonSerializer
from .storage import FileStorage, MemoryStorage, S3Storage, StorageBackend
from .strategy import DagStrategy, TreeStrategy
from .verify import PebbleGame, SimulationReport

__all__ = [
    "__version__",
    "BuilderError",
    "CheckpointDAG",
    "Checkpointable",
    "Color",
    "Inconsistent",
    "IntegrityError",
    "NotFound",
    "PebbleError",
    "RetentionBudget",
    "SerializationFailure",
    "Serializer",
    "StorageFailure",
    "OrphanPolicy",
    "PebbleConfig",
    "PebbleManager",
    "PebbleManagerBuilder",
    "PebbleStats",
    "Resolved",
    "StrategyKind",
    "JsonSerializer",
    "FileStorage",
    "MemoryStorage",
    "S3Storage",
    "StorageBackend",
    "DagStrategy",
    "TreeStrategy",
    "PebbleGame",
    "SimulationReport",
]
