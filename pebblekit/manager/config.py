"""
Manager configuration.

Environment Variables (read by PebbleConfig.from_env):
    PEBBLE_STRATEGY: tree | dag - default: tree
    PEBBLE_BUDGET_COEFFICIENT: c in ceil(c * sqrt(T)) - default: 1.0
    PEBBLE_BUDGET_CADENCE: event | mint - default: event
    PEBBLE_MIN_BUDGET: lower bound on the budget - default: 1
    PEBBLE_MINT_INTERVAL: fixed mint spacing (unset = adaptive)
    PEBBLE_ORPHAN_POLICY: promote_to_root | drop_subtree - default: drop_subtree
    PEBBLE_ABORT_ON_INCONSISTENT: true | false - default: false
    PEBBLE_NAMESPACE: storage key namespace - default: pebble
    PEBBLE_IO_RATIO: DAG strategy I/O credit ratio - default: 3.0
    PEBBLE_WARM_CAPACITY: decoded blue snapshots kept warm (at least 1) - default: 1
    PEBBLE_VERIFY_ON_RECOVERY: check payload checksums at recovery - default: true
    PEBBLE_RECORD_DECISIONS: keep a decision log - default: false
"""

import os
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.budget import BudgetCadence, RetentionBudget
from ..strategy import DagStrategy, RetentionStrategy, TreeStrategy


class StrategyKind(str, Enum):
    TREE = "tree"
    DAG = "dag"


class OrphanPolicy(str, Enum):
    """What warm recovery does with a record whose parent is missing."""

    PROMOTE_TO_ROOT = "promote_to_root"
    DROP_SUBTREE = "drop_subtree"


class PebbleConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    strategy: StrategyKind = StrategyKind.TREE
    budget_coefficient: float = Field(1.0, gt=0)
    budget_cadence: BudgetCadence = BudgetCadence.EVENT
    min_budget: int = Field(1, ge=1)
    mint_interval: Optional[int] = Field(None, ge=1)
    orphan_policy: OrphanPolicy = OrphanPolicy.DROP_SUBTREE
    abort_on_inconsistent: bool = False
    namespace: str = Field("pebble", min_length=1)
    io_ratio: float = Field(3.0, ge=1)
    warm_capacity: int = Field(1, ge=1)
    verify_on_recovery: bool = True
    record_decisions: bool = False

    @field_validator("namespace")
    @classmethod
    def _check_namespace(cls, value: str) -> str:
        parts = value.split("/")
        if any(p in ("", ".", "..") for p in parts):
            raise ValueError(f"invalid namespace: {value!r}")
        return value

    def budget(self) -> RetentionBudget:
        return RetentionBudget(
            coefficient=self.budget_coefficient,
            cadence=self.budget_cadence,
            minimum=self.min_budget,
        )

    def build_strategy(self) -> RetentionStrategy:
        if self.strategy is StrategyKind.DAG:
            return DagStrategy(mint_interval=self.mint_interval, io_ratio=self.io_ratio)
        return TreeStrategy(mint_interval=self.mint_interval)

    @classmethod
    def from_env(cls, prefix: str = "PEBBLE_", **overrides: Any) -> "PebbleConfig":
        """
        Build config from environment variables, then apply overrides.

        Empty variables are ignored. Validation errors surface as
        pydantic.ValidationError.
        """
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.getenv(prefix + name.upper())
            if raw is None or raw == "":
                continue
            values[name] = raw
        values.update(overrides)
        return cls.model_validate(values)
