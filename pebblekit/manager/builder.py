"""
Fluent construction of a PebbleManager.

Usage:
    manager = (
        PebbleManagerBuilder()
        .checkpointable(app)
        .storage(FileStorage("ckpt"))
        .strategy("dag")
        .budget(coefficient=2.0)
        .build()
    )
"""

from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from ..core.budget import BudgetCadence
from ..core.errors import BuilderError
from ..core.traits import Checkpointable, Serializer
from ..serializers import JsonSerializer
from ..storage.signer import SigningKey, VerifyingKey
from ..storage.store import StorageBackend
from ..strategy.base import RetentionStrategy
from .config import OrphanPolicy, PebbleConfig, StrategyKind
from .pebble_manager import PebbleManager
from .warm import WarmCache


class PebbleManagerBuilder:
    def __init__(self, config: Optional[PebbleConfig] = None) -> None:
        self._options: Dict[str, Any] = config.model_dump() if config else {}
        self._checkpointable: Optional[Checkpointable] = None
        self._serializer: Optional[Serializer] = None
        self._storage: Optional[StorageBackend] = None
        self._strategy: Optional[RetentionStrategy] = None
        self._warm: Optional[WarmCache] = None
        self._signer: Optional[SigningKey] = None
        self._verifier: Optional[VerifyingKey] = None

    def checkpointable(self, app: Checkpointable) -> "PebbleManagerBuilder":
        self._checkpointable = app
        return self

    def serializer(self, serializer: Serializer) -> "PebbleManagerBuilder":
        self._serializer = serializer
        return self

    def storage(self, storage: StorageBackend) -> "PebbleManagerBuilder":
        self._storage = storage
        return self

    def strategy(self, strategy: Union[str, StrategyKind, RetentionStrategy]) -> "PebbleManagerBuilder":
        """Select a built-in strategy by name, or pass a configured instance."""
        if isinstance(strategy, RetentionStrategy):
            self._strategy = strategy
        else:
            self._options["strategy"] = strategy
        return self

    def budget(
        self,
        coefficient: Optional[float] = None,
        cadence: Optional[Union[str, BudgetCadence]] = None,
        minimum: Optional[int] = None,
    ) -> "PebbleManagerBuilder":
        if coefficient is not None:
            self._options["budget_coefficient"] = coefficient
        if cadence is not None:
            self._options["budget_cadence"] = cadence
        if minimum is not None:
            self._options["min_budget"] = minimum
        return self

    def mint_interval(self, interval: Optional[int]) -> "PebbleManagerBuilder":
        self._options["mint_interval"] = interval
        return self

    def orphan_policy(self, policy: Union[str, OrphanPolicy]) -> "PebbleManagerBuilder":
        self._options["orphan_policy"] = policy
        return self

    def abort_on_inconsistent(self, flag: bool = True) -> "PebbleManagerBuilder":
        self._options["abort_on_inconsistent"] = flag
        return self

    def namespace(self, namespace: str) -> "PebbleManagerBuilder":
        self._options["namespace"] = namespace
        return self

    def io_ratio(self, ratio: float) -> "PebbleManagerBuilder":
        self._options["io_ratio"] = ratio
        return self

    def warm_cache(self, capacity: int) -> "PebbleManagerBuilder":
        self._options["warm_capacity"] = capacity
        return self

    def record_decisions(self, flag: bool = True) -> "PebbleManagerBuilder":
        self._options["record_decisions"] = flag
        return self

    def signing_key(self, key: SigningKey) -> "PebbleManagerBuilder":
        self._signer = key
        return self

    def warm(self, cache: WarmCache) -> "PebbleManagerBuilder":
        """Use a shared or pre-sized warm cache instead of one built from config."""
        self._warm = cache
        return self

    def verifying_key(self, key: VerifyingKey) -> "PebbleManagerBuilder":
        self._verifier = key
        return self

    def build(self) -> PebbleManager:
        """
        Validate options and construct the manager (runs warm recovery).

        Raises:
            BuilderError: If a required component is missing or an option
                is invalid
        """
        if self._checkpointable is None:
            raise BuilderError("checkpointable is required")
        if self._storage is None:
            raise BuilderError("storage backend is required")

        try:
            config = PebbleConfig.model_validate(self._options)
        except ValidationError as e:
            raise BuilderError(f"invalid manager configuration: {e}") from e

        return PebbleManager(
            self._checkpointable,
            self._serializer or JsonSerializer(),
            self._storage,
            config=config,
            strategy=self._strategy,
            warm=self._warm,
            signer=self._signer,
            verifier=self._verifier,
        )
