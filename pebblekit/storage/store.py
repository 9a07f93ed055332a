"""
StorageBackend abstract interface.

Defines the contract for the durable medium blue checkpoints live in.
"""

from abc import ABC, abstractmethod
from typing import Iterator

from ..core.errors import IntegrityError, StorageFailure
from .record import RecordListing, index_from_key, parse_header


class StorageBackend(ABC):
    """
    Abstract storage for checkpoint records.

    All implementations must guarantee:
    - A successful write is durably readable by a later read (no silent loss)
    - Failures surface as StorageFailure, never as library exceptions
    - Keys are opaque "/"-separated strings
    """

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """
        Persist data under key, replacing any previous value.

        Raises:
            StorageFailure: If the write did not durably succeed
        """
        ...

    @abstractmethod
    def read(self, key: str) -> bytes:
        """
        Read the bytes stored under key.

        Raises:
            StorageFailure: If key is missing or unreadable
        """
        ...

    @abstractmethod
    def keys(self, prefix: str = "") -> Iterator[str]:
        """
        Enumerate stored keys starting with prefix.

        Raises:
            StorageFailure: If the listing itself fails
        """
        ...

    def read_header(self, key: str) -> bytes:
        """
        Read the header line of a record.

        Backends that can read a prefix cheaply should override this.
        """
        return self.read(key).partition(b"\n")[0]

    def list(self, namespace: str) -> Iterator[RecordListing]:
        """
        Enumerate persisted records in namespace with their metadata.

        Unreadable or malformed records are reported through
        RecordListing.error; one bad record never stops the listing.

        Yields:
            RecordListing in index order
        """
        record_keys = [k for k in self.keys(namespace + "/") if index_from_key(namespace, k) is not None]
        record_keys.sort(key=lambda k: index_from_key(namespace, k))
        for key in record_keys:
            try:
                meta = parse_header(self.read_header(key), key)
            except (StorageFailure, IntegrityError) as e:
                yield RecordListing(key=key, error=str(e))
                continue
            yield RecordListing(key=key, meta=meta)
