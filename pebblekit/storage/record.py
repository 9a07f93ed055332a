"""
Storage record envelope and integrity tag.

A blue checkpoint is persisted as one object:

    <canonical JSON header>\\n<payload bytes>

Header fields: format, index, parents, namespace, size, checksum (SHA-256 of
the payload) and, when records are signed, pubkey_id and signature (Ed25519
over the header without the signature field).

Key naming: {namespace}/{index:010d}.rec, so lexicographic key order equals
index order.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

from ..core.canonical import canonical_json_bytes
from ..core.errors import IntegrityError

if TYPE_CHECKING:
    from .signer import SigningKey, VerifyingKey

RECORD_FORMAT = 1
RECORD_SUFFIX = ".rec"


@dataclass(frozen=True)
class RecordMeta:
    """
    Metadata of a persisted checkpoint (everything but the payload).

    Fields:
        key: Storage key the record lives under
        index: Checkpoint event index
        parents: Declared parent indices
        namespace: Storage key namespace
        size: Payload length in bytes
        checksum: SHA-256 hex digest of the payload
        format: Envelope format version
        pubkey_id: Signing key id (signed records only)
        signature: Base64 Ed25519 signature (signed records only)
    """
    key: str
    index: int
    parents: Tuple[int, ...]
    namespace: str
    size: int
    checksum: str
    format: int = RECORD_FORMAT
    pubkey_id: Optional[str] = None
    signature: Optional[str] = None

    @property
    def parent(self) -> Optional[int]:
        return max(self.parents) if self.parents else None

    def signing_payload(self) -> Dict[str, Any]:
        """Header fields covered by the signature."""
        payload: Dict[str, Any] = {
            "format": self.format,
            "index": self.index,
            "parents": list(self.parents),
            "namespace": self.namespace,
            "size": self.size,
            "checksum": self.checksum,
        }
        if self.pubkey_id is not None:
            payload["pubkey_id"] = self.pubkey_id
        return payload

    def header(self) -> Dict[str, Any]:
        data = self.signing_payload()
        if self.signature is not None:
            data["signature"] = self.signature
        return data


@dataclass(frozen=True)
class StorageRecord:
    """A validated record: metadata plus payload bytes."""
    meta: RecordMeta
    payload: bytes


@dataclass(frozen=True)
class RecordListing:
    """
    One entry of a storage listing.

    Exactly one of meta / error is set.
    """
    key: str
    meta: Optional[RecordMeta] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.meta is not None


def record_key(namespace: str, index: int) -> str:
    return f"{namespace}/{index:010d}{RECORD_SUFFIX}"


def index_from_key(namespace: str, key: str) -> Optional[int]:
    """Extract the checkpoint index from a record key, None if not a record key."""
    prefix = namespace + "/"
    if not key.startswith(prefix) or not key.endswith(RECORD_SUFFIX):
        return None
    stem = key[len(prefix) : -len(RECORD_SUFFIX)]
    if not stem.isdigit():
        return None
    return int(stem)


def checksum(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def encode_record(
    namespace: str,
    index: int,
    parents: Tuple[int, ...],
    payload: bytes,
    signer: Optional["SigningKey"] = None,
) -> bytes:
    """
    Build the persisted bytes for a checkpoint.

    Args:
        namespace: Storage key namespace
        index: Checkpoint index
        parents: Parent indices
        payload: Serialized snapshot
        signer: Optional Ed25519 key to sign the header

    Returns:
        Envelope bytes ready for StorageBackend.write
    """
    meta = RecordMeta(
        key=record_key(namespace, index),
        index=index,
        parents=tuple(parents),
        namespace=namespace,
        size=len(payload),
        checksum=checksum(payload),
        pubkey_id=signer.get_pubkey_id() if signer is not None else None,
    )
    header = meta.header()
    if signer is not None:
        header["signature"] = signer.sign_base64(meta.signing_payload())
    return canonical_json_bytes(header) + b"\n" + payload


def parse_header(header_bytes: bytes, key: str) -> RecordMeta:
    """
    Parse and sanity-check a record header.

    Raises:
        IntegrityError: If the header is malformed, has an unsupported
            format, or does not match its key
    """
    try:
        data = json.loads(header_bytes.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise IntegrityError(f"record {key}: unreadable header ({e})") from e
    if not isinstance(data, dict):
        raise IntegrityError(f"record {key}: header is not an object")

    fmt = data.get("format")
    if fmt != RECORD_FORMAT:
        raise IntegrityError(f"record {key}: unsupported format {fmt!r}")

    try:
        meta = RecordMeta(
            key=key,
            index=int(data["index"]),
            parents=tuple(int(p) for p in data.get("parents", [])),
            namespace=str(data["namespace"]),
            size=int(data["size"]),
            checksum=str(data["checksum"]),
            format=fmt,
            pubkey_id=data.get("pubkey_id"),
            signature=data.get("signature"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise IntegrityError(f"record {key}: incomplete header ({e})") from e

    expected = index_from_key(meta.namespace, key)
    if expected is not None and expected != meta.index:
        raise IntegrityError(f"record {key}: header index {meta.index} does not match key")
    return meta


def decode_record(
    data: bytes,
    key: str,
    verifier: Optional["VerifyingKey"] = None,
) -> StorageRecord:
    """
    Split and validate persisted bytes.

    Checks size and checksum of the payload, and the signature when a
    verifier is given (unsigned records are rejected in that case).

    Raises:
        IntegrityError: If any check fails
    """
    header_bytes, sep, payload = data.partition(b"\n")
    if not sep:
        raise IntegrityError(f"record {key}: missing header terminator")
    meta = parse_header(header_bytes, key)

    if len(payload) != meta.size:
        raise IntegrityError(
            f"record {key}: payload size {len(payload)} does not match header size {meta.size}"
        )
    if checksum(payload) != meta.checksum:
        raise IntegrityError(f"record {key}: checksum mismatch")

    if verifier is not None:
        verify_record(meta, verifier)

    return StorageRecord(meta=meta, payload=payload)


def verify_record(meta: RecordMeta, verifier: "VerifyingKey") -> None:
    """
    Check the header signature against verifier.

    Raises:
        IntegrityError: If the record is unsigned, signed by another key,
            or the signature does not match the header
    """
    if meta.signature is None:
        raise IntegrityError(f"record {meta.key}: unsigned record")
    if meta.pubkey_id != verifier.get_pubkey_id():
        raise IntegrityError(f"record {meta.key}: signed by unknown key {meta.pubkey_id}")
    if not verifier.verify_base64(meta.signing_payload(), meta.signature):
        raise IntegrityError(f"record {meta.key}: invalid signature")
