"""
Canonical JSON encoding.

Record headers, signatures and the JSON serializer all go through these
functions so the same logical value always produces the same bytes.
"""

import json
from typing import Any


def canonicalize(obj: Any) -> Any:
    """
    Normalize nested containers for deterministic encoding.

    Rules:
    - dict keys are stringified and sorted
    - tuples become lists
    - sets and frozensets become sorted lists
    """
    if isinstance(obj, dict):
        return {str(k): canonicalize(obj[k]) for k in sorted(obj.keys(), key=str)}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    if isinstance(obj, (set, frozenset)):
        return [canonicalize(x) for x in sorted(obj)]
    return obj


def canonical_json_bytes(obj: Any) -> bytes:
    """
    Deterministic UTF-8 JSON bytes (sorted keys, no whitespace).

    Raises:
        TypeError, ValueError: If obj holds values JSON cannot represent
    """
    canon = canonicalize(obj)
    s = json.dumps(
        canon,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return s.encode("utf-8")


def canonical_json_str(obj: Any) -> str:
    """Same as canonical_json_bytes, decoded to str."""
    return canonical_json_bytes(obj).decode("utf-8")
