"""
Warm recovery: rebuild the checkpoint DAG from persisted records.

Runs once, before normal operation. Every record is validated on its own;
a corrupt or unreadable record is dropped and logged as partial loss, it
never blocks the rest. Edges come strictly from each record's declared
parents. All recovered nodes are blue; payloads are not decoded until the
first resolve, and nothing is minted.

Orphans (records whose declared parents are all missing) follow the
configured OrphanPolicy:
- DROP_SUBTREE: the record and everything that descends from it is dropped
- PROMOTE_TO_ROOT: the record is re-attached to the nearest surviving lower
  checkpoint, or becomes the root when none survives

Records that violate DAG invariants (a parent not older than the record,
a second root) are Inconsistent: dropped with their subtree, or raised
when abort_on_inconsistent is set.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from ..core.dag import CheckpointDAG
from ..core.errors import Inconsistent, IntegrityError, StorageFailure
from ..storage.record import RecordMeta, decode_record, verify_record
from ..storage.signer import VerifyingKey
from ..storage.store import StorageBackend
from .config import OrphanPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DroppedRecord:
    key: str
    index: Optional[int]
    reason: str


@dataclass
class RecoveryReport:
    """
    Outcome of warm recovery.

    Fields:
        namespace: Namespace that was scanned
        policy: Orphan policy applied
        recovered: Indices rebuilt as blue nodes (ascending)
        dropped: Records rejected, with reasons
        promoted: Orphans re-attached or made root under PROMOTE_TO_ROOT
        reads: Storage reads spent validating payloads
    """
    namespace: str
    policy: OrphanPolicy
    recovered: List[int] = field(default_factory=list)
    dropped: List[DroppedRecord] = field(default_factory=list)
    promoted: List[int] = field(default_factory=list)
    reads: int = 0

    @property
    def partial_loss(self) -> bool:
        return bool(self.dropped)

    def to_dict(self) -> dict:
        return {
            "namespace": self.namespace,
            "policy": self.policy.value,
            "recovered": list(self.recovered),
            "dropped": [
                {"key": d.key, "index": d.index, "reason": d.reason} for d in self.dropped
            ],
            "promoted": list(self.promoted),
            "reads": self.reads,
        }


def _validated_records(
    storage: StorageBackend,
    namespace: str,
    report: RecoveryReport,
    verify_payloads: bool,
    verifier: Optional[VerifyingKey],
) -> List[RecordMeta]:
    metas: List[RecordMeta] = []
    for listing in storage.list(namespace):
        if listing.meta is None:
            _drop(report, listing.key, None, listing.error or "unreadable header")
            continue

        meta = listing.meta
        if meta.namespace != namespace:
            _drop(report, meta.key, meta.index, f"namespace {meta.namespace!r} does not match")
            continue

        try:
            if verify_payloads:
                data = storage.read(meta.key)
                report.reads += 1
                meta = decode_record(data, meta.key, verifier).meta
            elif verifier is not None:
                verify_record(meta, verifier)
        except StorageFailure as e:
            _drop(report, meta.key, meta.index, f"unreadable: {e}")
            continue
        except IntegrityError as e:
            _drop(report, meta.key, meta.index, str(e))
            continue

        metas.append(meta)

    metas.sort(key=lambda m: m.index)
    return metas


def _drop(report: RecoveryReport, key: str, index: Optional[int], reason: str) -> None:
    logger.warning(f"Recovery dropped record {key}: {reason}")
    report.dropped.append(DroppedRecord(key=key, index=index, reason=reason))


def warm_recover(
    storage: StorageBackend,
    namespace: str,
    orphan_policy: OrphanPolicy,
    abort_on_inconsistent: bool = False,
    verify_payloads: bool = True,
    verifier: Optional[VerifyingKey] = None,
) -> Tuple[CheckpointDAG, RecoveryReport]:
    """
    Rebuild a DAG of blue nodes from the records in namespace.

    Args:
        storage: Backend holding the records
        namespace: Storage key namespace to scan
        orphan_policy: What to do with records whose parents are missing
        abort_on_inconsistent: Raise instead of dropping invariant violations
        verify_payloads: Read each record and check size/checksum/signature;
            when False only headers are validated
        verifier: Require records signed by this key

    Returns:
        (dag, report)

    Raises:
        StorageFailure: If the listing itself fails
        Inconsistent: On an invariant violation with abort_on_inconsistent
    """
    report = RecoveryReport(namespace=namespace, policy=orphan_policy)
    dag = CheckpointDAG()
    # indices whose descendants must be dropped too
    poisoned: Set[int] = set()

    for meta in _validated_records(storage, namespace, report, verify_payloads, verifier):
        if meta.index in dag or meta.index in poisoned:
            reason = f"duplicate checkpoint index {meta.index}"
            if abort_on_inconsistent:
                raise Inconsistent(f"record {meta.key}: {reason}")
            _drop(report, meta.key, meta.index, reason)
            continue

        bad_parents = [p for p in meta.parents if p >= meta.index]
        if bad_parents:
            reason = f"parent {bad_parents[0]} is not older than checkpoint {meta.index}"
            if abort_on_inconsistent:
                raise Inconsistent(f"record {meta.key}: {reason}")
            poisoned.add(meta.index)
            _drop(report, meta.key, meta.index, reason)
            continue

        if any(p in poisoned for p in meta.parents):
            poisoned.add(meta.index)
            _drop(report, meta.key, meta.index, "ancestor was dropped")
            continue

        present = [p for p in meta.parents if p in dag]
        if present:
            if len(present) < len(meta.parents):
                logger.warning(
                    f"Recovered checkpoint {meta.index} without missing parents "
                    f"{sorted(set(meta.parents) - set(present))}"
                )
            dag.insert_blue(meta.index, present, meta.key)
            report.recovered.append(meta.index)
            continue

        if not meta.parents and not len(dag):
            dag.insert_blue(meta.index, (), meta.key)
            report.recovered.append(meta.index)
            continue

        # orphan: declared parents missing, or a second root
        if not meta.parents and abort_on_inconsistent:
            raise Inconsistent(f"record {meta.key}: second root after {dag.root}")

        if orphan_policy is OrphanPolicy.DROP_SUBTREE:
            poisoned.add(meta.index)
            _drop(report, meta.key, meta.index, f"orphan: parents {list(meta.parents)} missing")
            continue

        anchor = dag.latest
        if anchor is None:
            dag.insert_blue(meta.index, (), meta.key)
            logger.warning(f"Orphan checkpoint {meta.index} promoted to root")
        else:
            dag.insert_blue(meta.index, (anchor,), meta.key)
            logger.warning(f"Orphan checkpoint {meta.index} re-attached to {anchor}")
        report.promoted.append(meta.index)
        report.recovered.append(meta.index)

    if report.dropped:
        logger.warning(
            f"Warm recovery of {namespace!r}: partial loss, "
            f"{len(report.dropped)} record(s) dropped, {len(report.recovered)} recovered"
        )
    else:
        logger.info(f"Warm recovery of {namespace!r}: {len(report.recovered)} record(s) recovered")
    return dag, report
