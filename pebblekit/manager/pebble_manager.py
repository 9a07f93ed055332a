"""
PebbleManager: checkpoint orchestration over an event stream.

The manager owns the checkpoint DAG and the active retention strategy. It
counts events, mints checkpoints when the strategy asks for one, and runs
a rebalancing pass after every mint so that at most budget checkpoints
stay red. Resolving a past event returns the nearest retained checkpoint
and the number of events the caller must replay from it.

Single writer: every call runs to completion before the next one, storage
I/O is synchronous, and nothing here is thread-safe.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from .. import metrics
from ..core.budget import RetentionBudget
from ..core.dag import CheckpointDAG
from ..core.decisions import Action, Decision, DecisionLog
from ..core.errors import NotFound, PebbleError, SerializationFailure
from ..core.node import CheckpointNode, Color
from ..core.traits import Checkpointable, Serializer
from ..logging_config import get_logger
from ..storage.record import decode_record, encode_record, record_key
from ..storage.signer import SigningKey, VerifyingKey
from ..storage.store import StorageBackend
from ..strategy.base import ActionKind, PlannedAction, RetentionStrategy
from .config import PebbleConfig
from .recovery import RecoveryReport, warm_recover
from .stats import PebbleStats
from .warm import WarmCache


@dataclass(frozen=True)
class Resolved:
    """
    Result of resolve().

    Fields:
        snapshot: Snapshot of the anchor checkpoint
        gap: Events to replay from the anchor to reach target_index
        anchor_index: Index of the checkpoint that was used
        target_index: Requested event index
        color: Anchor color when resolved (resolving never changes it)
    """
    snapshot: Any
    gap: int
    anchor_index: int
    target_index: int
    color: Color


class PebbleManager:
    """
    Facade over checkpoint DAG, strategy, storage and warm recovery.

    Usage:
        manager = PebbleManager(app, JsonSerializer(), FileStorage("ckpt"))
        for event in events:
            app.apply(event)
            manager.advance(event)
        resolved = manager.resolve(1234)
        app.restore(resolved.snapshot)
        # replay resolved.gap events
    """

    def __init__(
        self,
        checkpointable: Checkpointable,
        serializer: Serializer,
        storage: StorageBackend,
        config: Optional[PebbleConfig] = None,
        strategy: Optional[RetentionStrategy] = None,
        warm: Optional[WarmCache] = None,
        signer: Optional[SigningKey] = None,
        verifier: Optional[VerifyingKey] = None,
    ) -> None:
        """
        Create a manager, run warm recovery and mint the genesis checkpoint.

        Args:
            checkpointable: Source of snapshots
            serializer: Snapshot codec
            storage: Backend for blue checkpoints
            config: Manager configuration (defaults to PebbleConfig())
            strategy: Overrides the strategy selected by config
            warm: Overrides the warm cache built from config.warm_capacity
            signer: Sign every record header with this key
            verifier: Only trust records signed by this key (defaults to the
                signer's public key when a signer is given)

        Raises:
            StorageFailure: If listing the namespace fails
            Inconsistent: If recovery aborts on an invariant violation
        """
        self.config = config or PebbleConfig()
        self.checkpointable = checkpointable
        self.serializer = serializer
        self.storage = storage
        self.strategy = strategy or self.config.build_strategy()
        self.budget: RetentionBudget = self.config.budget()
        self.warm = warm if warm is not None else WarmCache(self.config.warm_capacity)
        self.signer = signer
        if verifier is None and signer is not None:
            verifier = VerifyingKey.from_signing_key(signer)
        self.verifier = verifier

        self.dag = CheckpointDAG()
        self.decisions = DecisionLog(enabled=self.config.record_decisions)
        self._log = get_logger(__name__, trace_id=self.config.namespace)

        self._total_events = 0
        self._head: Optional[int] = None
        self._current_budget = self.budget.target(0)
        self._writes = 0
        self._reads = 0
        self._bytes_written = 0
        self._bytes_read = 0
        self._discarded = 0
        self._lost = 0
        self._recovery: Optional[RecoveryReport] = None

        self.recover()
        if not len(self.dag):
            self._mint(0, (), self.checkpointable.snapshot())

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def total_events(self) -> int:
        return self._total_events

    @property
    def head(self) -> Optional[int]:
        """Index of the most recent checkpoint."""
        return self._head

    @property
    def current_budget(self) -> int:
        return self._current_budget

    @property
    def recovery_report(self) -> Optional[RecoveryReport]:
        return self._recovery

    # ------------------------------------------------------------------
    # Event stream
    # ------------------------------------------------------------------

    def advance(self, event: Any = None, parents: Optional[Sequence[int]] = None) -> Optional[int]:
        """
        Record one event and mint a checkpoint if the strategy asks for one.

        Args:
            event: The event just applied by the caller (forwarded to the
                strategy's mint decision)
            parents: Explicit parent checkpoints for a branch or merge
                point; forces a mint. Defaults to the current head.

        Returns:
            Index of the minted checkpoint, or None if nothing was minted

        Raises:
            ValueError: If parents are empty, unknown, or more than the
                strategy allows
            StorageFailure: If an eviction write fails (the new checkpoint
                is kept; the rebalancing pass is retried on the next mint
                or by calling rebalance())
        """
        explicit: Optional[Tuple[int, ...]] = None
        if parents is not None:
            explicit = tuple(sorted(set(parents)))
            self._check_parents(explicit)

        total = self._total_events + 1
        budget = self.budget.target(total)
        mint = explicit is not None or self.strategy.should_mint(
            total, self._head, budget, event=event
        )
        snapshot = self.checkpointable.snapshot() if mint else None

        self._total_events = total
        if mint or self.budget.refresh_on_event():
            self._current_budget = budget
        if not mint:
            return None

        if explicit is None:
            explicit = (self._head,) if self._head is not None else ()
        self._mint(total, explicit, snapshot)
        return total

    def _check_parents(self, parents: Tuple[int, ...]) -> None:
        if not parents:
            raise ValueError("explicit parents must not be empty")
        limit = self.strategy.max_parents
        if limit is not None and len(parents) > limit:
            raise ValueError(
                f"{self.strategy.name} strategy allows {limit} parent(s), got {len(parents)}"
            )
        for index in parents:
            node = self.dag.get(index)
            if node is None:
                raise ValueError(f"parent {index} is not a retained checkpoint")
            if not node.usable:
                raise ValueError(f"parent {index} lost its payload")

    def _mint(self, index: int, parents: Tuple[int, ...], snapshot: Any) -> CheckpointNode:
        node = self.dag.insert(index, parents, payload=snapshot)
        self._head = index
        self.decisions.append(
            Decision(Action.MINT, index, self._total_events, parents=tuple(parents))
        )
        self._log.debug(f"Minted checkpoint {index} (parents={list(parents)})")
        self.rebalance()
        return node

    # ------------------------------------------------------------------
    # Rebalancing
    # ------------------------------------------------------------------

    def rebalance(self) -> None:
        """
        Evict or discard red checkpoints until the budget holds.

        Raises:
            StorageFailure: If a write fails; the candidate stays red
        """
        budget = self._current_budget
        while self.dag.red_count() > budget:
            action = self.strategy.next_action(self.dag, self._head, budget, self._total_events)
            if action is None:
                self._log.warning(
                    f"No eviction candidate with {self.dag.red_count()} red over budget {budget}"
                )
                break
            self._apply(action)

        red = self.dag.red_count()
        self.decisions.append(
            Decision(Action.PASS, -1, self._total_events, budget=budget, red_count=red)
        )
        if metrics.enabled():
            metrics.observe_counts(self.config.namespace, red, self.dag.blue_count(), budget)

    def _apply(self, action: PlannedAction) -> None:
        if action.kind is ActionKind.DISCARD:
            self._discard(action.index)
            self.strategy.on_applied(action)
            return
        if self._evict(action.index):
            if action.forced:
                self._log.warning(f"Evicted checkpoint {action.index} beyond I/O credit")
            self.strategy.on_applied(action)

    def _evict(self, index: int) -> bool:
        node = self.dag.node(index)
        try:
            payload = self.serializer.encode(node.payload)
        except SerializationFailure as e:
            self._mark_lost(index, e)
            return False

        key = record_key(self.config.namespace, index)
        data = encode_record(self.config.namespace, index, node.parents, payload, self.signer)
        self.storage.write(key, data)

        self.dag.mark_blue(index, key)
        self._writes += 1
        self._bytes_written += len(data)
        metrics.track_write(self.config.namespace, len(data))
        self.decisions.append(Decision(Action.EVICT, index, self._total_events))
        self._log.debug(f"Evicted checkpoint {index} to {key} ({len(data)} bytes)")
        return True

    def _discard(self, index: int) -> None:
        self.dag.remove(index)
        self.warm.invalidate(index)
        self._discarded += 1
        metrics.track_discard(self.config.namespace)
        self.decisions.append(Decision(Action.DISCARD, index, self._total_events))
        self._log.debug(f"Discarded checkpoint {index}")

    def _mark_lost(self, index: int, error: SerializationFailure) -> None:
        self.dag.mark_unusable(index)
        self.warm.invalidate(index)
        self._lost += 1
        metrics.track_lost(self.config.namespace)
        self.decisions.append(Decision(Action.LOSE, index, self._total_events))
        self._log.error(f"Checkpoint {index} marked unusable (data loss): {error}")

    # ------------------------------------------------------------------
    # Replay support
    # ------------------------------------------------------------------

    def resolve(self, target_index: int, head: Optional[int] = None) -> Resolved:
        """
        Find the checkpoint to replay from for target_index.

        Blue checkpoints are read and decoded but stay blue. Repeated
        resolves are served from the warm cache without another read.

        Args:
            target_index: Event index to reconstruct
            head: Only consider head and its ancestors (branch-aware lookup)

        Raises:
            NotFound: If target_index is beyond T or below retained coverage
            StorageFailure: If the record cannot be read
            SerializationFailure: If the record is corrupt or cannot be
                decoded; the checkpoint is marked unusable, so a retry
                resolves to an older checkpoint
        """
        if target_index < 0 or target_index > self._total_events:
            raise NotFound(
                target_index,
                self.dag.latest,
                reason=f"outside recorded history [0, {self._total_events}]",
            )

        node = self.dag.nearest_ancestor(target_index, head=head)
        color = node.color
        if node.is_red:
            snapshot = node.payload
        else:
            snapshot = self._load(node)

        self.dag.touch(node.index, self._total_events)
        return Resolved(
            snapshot=snapshot,
            gap=target_index - node.index,
            anchor_index=node.index,
            target_index=target_index,
            color=color,
        )

    def _load(self, node: CheckpointNode) -> Any:
        if node.index in self.warm:
            return self.warm.get(node.index)

        key = node.storage_key
        if key is None:
            raise PebbleError(f"blue checkpoint {node.index} has no storage key")
        data = self.storage.read(key)
        self._reads += 1
        self._bytes_read += len(data)
        metrics.track_read(self.config.namespace)
        self.decisions.append(Decision(Action.LOAD, node.index, self._total_events))

        try:
            record = decode_record(data, key, self.verifier)
            snapshot = self.serializer.decode(record.payload)
        except SerializationFailure as e:
            self._mark_lost(node.index, e)
            raise SerializationFailure(str(e), index=node.index) from e

        self.warm.put(node.index, snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Recovery and stats
    # ------------------------------------------------------------------

    def recover(self) -> RecoveryReport:
        """
        Rebuild the DAG from storage (runs once, from the constructor).

        Raises:
            PebbleError: If called a second time
        """
        if self._recovery is not None:
            raise PebbleError("warm recovery already ran for this manager")

        dag, report = warm_recover(
            self.storage,
            namespace=self.config.namespace,
            orphan_policy=self.config.orphan_policy,
            abort_on_inconsistent=self.config.abort_on_inconsistent,
            verify_payloads=self.config.verify_on_recovery,
            verifier=self.verifier,
        )
        self.dag = dag
        self._recovery = report
        metrics.track_dropped(self.config.namespace, len(report.dropped))

        latest = dag.latest
        if latest is not None:
            self._head = latest
            self._total_events = latest
            self._current_budget = self.budget.target(latest)
            for node in dag:
                self.decisions.append(
                    Decision(Action.RECOVER, node.index, latest, parents=node.parents)
                )
        return report

    def stats(self) -> PebbleStats:
        gap = self.dag.max_gap()
        if self._head is not None:
            gap = max(gap, self._total_events - self._head)
        report = self._recovery
        return PebbleStats(
            red_count=self.dag.red_count(),
            blue_count=self.dag.blue_count(),
            current_budget=self._current_budget,
            total_events=self._total_events,
            max_gap=gap,
            writes=self._writes,
            reads=self._reads,
            bytes_written=self._bytes_written,
            bytes_read=self._bytes_read,
            discarded=self._discarded,
            lost=self._lost,
            recovered=len(report.recovered) if report else 0,
            dropped_records=len(report.dropped) if report else 0,
            warm_hits=self.warm.hits,
        )
