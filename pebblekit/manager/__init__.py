from .builder import PebbleManagerBuilder
from .config import OrphanPolicy, PebbleConfig, StrategyKind
from .pebble_manager import PebbleManager, Resolved
from .recovery import DroppedRecord, RecoveryReport, warm_recover
from .stats import PebbleStats, TheoreticalValidation
from .warm import WarmCache

__all__ = [
    "DroppedRecord",
    "OrphanPolicy",
    "PebbleConfig",
    "PebbleManager",
    "PebbleManagerBuilder",
    "PebbleStats",
    "RecoveryReport",
    "Resolved",
    "StrategyKind",
    "TheoreticalValidation",
    "WarmCache",
    "warm_recover",
]
