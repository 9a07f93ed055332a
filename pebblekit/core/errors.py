"""
Exception types for the checkpoint engine.
"""

from typing import Optional


class PebbleError(Exception):
    """Base class for all checkpoint engine errors."""
    pass


class NotFound(PebbleError):
    """
    Raised when requested history is not covered by any retained checkpoint.

    Permanent miss: retrying the same target cannot succeed.

    Fields:
        target_index: Event index that was requested
        nearest_index: Closest retained checkpoint index, if any
    """

    def __init__(self, target_index: int, nearest_index: Optional[int] = None, reason: str = ""):
        self.target_index = target_index
        self.nearest_index = nearest_index
        msg = f"no retained checkpoint covers event {target_index}"
        if reason:
            msg = f"{msg}: {reason}"
        if nearest_index is not None:
            msg = f"{msg} (nearest available: {nearest_index})"
        super().__init__(msg)


class StorageFailure(PebbleError):
    """Raised when the storage backend fails a read, write or listing."""
    pass


class SerializationFailure(PebbleError):
    """Raised when a snapshot cannot be encoded or decoded."""

    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        if index is not None:
            message = f"checkpoint {index}: {message}"
        super().__init__(message)


class IntegrityError(SerializationFailure):
    """Raised when a storage record does not match its integrity tag."""
    pass


class Inconsistent(PebbleError):
    """Raised when persisted metadata violates checkpoint DAG invariants."""
    pass


class BuilderError(PebbleError):
    """Raised when a manager is built without a required collaborator."""
    pass
