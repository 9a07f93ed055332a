"""
Durable storage for blue checkpoints.

This module provides:
- StorageBackend: Abstract write/read/list contract
- MemoryStorage: Dict-backed storage with I/O counters
- FileStorage: One file per record, atomic replace + fsync
- S3Storage: One S3 object per record
- Record envelope: header + payload with SHA-256 integrity tag
- SigningKey / VerifyingKey: optional Ed25519 record signatures
"""

from .store import StorageBackend
from .record import (
    RECORD_FORMAT,
    RecordListing,
    RecordMeta,
    StorageRecord,
    decode_record,
    encode_record,
    index_from_key,
    parse_header,
    record_key,
    verify_record,
)
from .signer import SigningKey, VerifyingKey
from .memory_store import MemoryStorage
from .file_store import FileStorage
from .s3_store import S3Storage

__all__ = [
    "StorageBackend",
    "RECORD_FORMAT",
    "RecordListing",
    "RecordMeta",
    "StorageRecord",
    "decode_record",
    "encode_record",
    "index_from_key",
    "parse_header",
    "record_key",
    "verify_record",
    "SigningKey",
    "VerifyingKey",
    "MemoryStorage",
    "FileStorage",
    "S3Storage",
]
