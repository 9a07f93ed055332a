"""
Serializer implementations.
"""

import json
from typing import Any

from .core.canonical import canonical_json_bytes
from .core.errors import SerializationFailure
from .core.traits import Serializer


class JsonSerializer(Serializer):
    """
    Canonical JSON codec for JSON-compatible snapshots.

    Same snapshot always encodes to the same bytes. Tuples come back as
    lists, so snapshots should use lists where round-trip equality matters.
    """

    def encode(self, snapshot: Any) -> bytes:
        try:
            return canonical_json_bytes(snapshot)
        except (TypeError, ValueError) as e:
            raise SerializationFailure(f"cannot encode snapshot: {e}") from e

    def decode(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SerializationFailure(f"malformed snapshot bytes: {e}") from e
