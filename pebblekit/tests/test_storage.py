"""
Tests for the record envelope, signing and the memory/file backends.

Critical tests:
1. Checksum and size detect payload tampering
2. Signature binds the header to the signing key
3. Listing reports bad records without raising
4. FileStorage writes are atomic and OSError becomes StorageFailure
"""

import os

import pytest

from pebblekit.core.errors import IntegrityError, SerializationFailure, StorageFailure
from pebblekit.storage import (
    FileStorage,
    MemoryStorage,
    SigningKey,
    VerifyingKey,
    decode_record,
    encode_record,
    index_from_key,
    parse_header,
    record_key,
)


def test_record_key_is_zero_padded():
    assert record_key("orders", 42) == "orders/0000000042.rec"
    assert index_from_key("orders", "orders/0000000042.rec") == 42
    assert index_from_key("orders", "other/0000000042.rec") is None
    assert index_from_key("orders", "orders/notes.txt") is None


def test_record_roundtrip():
    data = encode_record("ns", 7, (3, 5), b'{"count":7}')

    record = decode_record(data, record_key("ns", 7))

    assert record.payload == b'{"count":7}'
    assert record.meta.index == 7
    assert record.meta.parents == (3, 5)
    assert record.meta.parent == 5
    assert record.meta.namespace == "ns"
    assert record.meta.size == len(b'{"count":7}')
    assert record.meta.signature is None


def test_tampered_payload_fails_checksum():
    data = encode_record("ns", 1, (0,), b'{"count":1}')
    tampered = data[:-2] + b"9}"

    with pytest.raises(IntegrityError, match="checksum"):
        decode_record(tampered, record_key("ns", 1))


def test_truncated_payload_fails_size():
    data = encode_record("ns", 1, (0,), b'{"count":1}')

    with pytest.raises(IntegrityError, match="size"):
        decode_record(data[:-1], record_key("ns", 1))


def test_integrity_error_is_serialization_failure():
    """Callers that handle SerializationFailure also see corrupt records."""
    with pytest.raises(SerializationFailure):
        decode_record(b"no header terminator", "ns/0000000001.rec")


def test_header_must_match_key():
    data = encode_record("ns", 1, (0,), b"x")
    header = data.partition(b"\n")[0]

    with pytest.raises(IntegrityError, match="does not match key"):
        parse_header(header, record_key("ns", 2))


def test_unsupported_format_rejected():
    with pytest.raises(IntegrityError, match="format"):
        parse_header(b'{"format":99,"index":1}', "ns/0000000001.rec")


def test_signed_record_verifies():
    signing_key = SigningKey.generate()
    verifying_key = VerifyingKey.from_signing_key(signing_key)

    data = encode_record("ns", 3, (1,), b"payload", signer=signing_key)
    record = decode_record(data, record_key("ns", 3), verifier=verifying_key)

    assert record.meta.pubkey_id == signing_key.get_pubkey_id()
    assert record.meta.signature


def test_wrong_key_rejected():
    data = encode_record("ns", 3, (1,), b"payload", signer=SigningKey.generate())
    other = VerifyingKey.from_signing_key(SigningKey.generate())

    with pytest.raises(IntegrityError, match="unknown key"):
        decode_record(data, record_key("ns", 3), verifier=other)


def test_unsigned_record_rejected_when_verifying():
    data = encode_record("ns", 3, (1,), b"payload")
    verifier = VerifyingKey.from_signing_key(SigningKey.generate())

    with pytest.raises(IntegrityError, match="unsigned"):
        decode_record(data, record_key("ns", 3), verifier=verifier)


def test_tampered_header_breaks_signature():
    signing_key = SigningKey.generate()
    verifier = VerifyingKey.from_signing_key(signing_key)
    data = encode_record("ns", 3, (1,), b"payload", signer=signing_key)

    # re-parent the record without re-signing
    tampered = data.replace(b'"parents":[1]', b'"parents":[0]', 1)

    with pytest.raises(IntegrityError, match="invalid signature"):
        decode_record(tampered, record_key("ns", 3), verifier=verifier)


def test_signing_key_file_roundtrip(tmp_path):
    key = SigningKey.generate()
    private_path = str(tmp_path / "keys" / "signing.pem")
    public_path = str(tmp_path / "keys" / "verifying.pem")

    key.save_to_file(private_path, public_path)

    assert SigningKey.load_from_file(private_path).get_pubkey_id() == key.get_pubkey_id()
    assert VerifyingKey.load_from_file(public_path).get_pubkey_id() == key.get_pubkey_id()


# ----------------------------------------------------------------------
# Backends
# ----------------------------------------------------------------------


def test_memory_storage_counters():
    storage = MemoryStorage()
    storage.write("ns/0000000001.rec", b"abc")

    assert storage.read("ns/0000000001.rec") == b"abc"
    assert storage.writes == 1
    assert storage.reads == 1
    assert storage.bytes_written == 3
    assert storage.bytes_read == 3

    with pytest.raises(StorageFailure):
        storage.read("ns/missing.rec")


def test_memory_storage_header_reads_are_free():
    storage = MemoryStorage()
    storage.write(record_key("ns", 0), encode_record("ns", 0, (), b"{}"))

    listings = list(storage.list("ns"))

    assert listings[0].ok
    assert storage.reads == 0


def test_file_storage_roundtrip(tmp_path):
    storage = FileStorage(str(tmp_path))
    key = record_key("ns", 5)
    storage.write(key, b"hello\nworld")

    assert storage.read(key) == b"hello\nworld"
    assert (tmp_path / "ns" / "0000000005.rec").exists()
    assert storage.read_header(key) == b"hello"


def test_file_storage_overwrite(tmp_path):
    storage = FileStorage(str(tmp_path))
    storage.write("ns/a.rec", b"one")
    storage.write("ns/a.rec", b"two")

    assert storage.read("ns/a.rec") == b"two"


def test_file_storage_missing_key(tmp_path):
    storage = FileStorage(str(tmp_path))

    with pytest.raises(StorageFailure):
        storage.read("ns/0000000001.rec")


def test_file_storage_rejects_escaping_keys(tmp_path):
    storage = FileStorage(str(tmp_path / "root"))

    with pytest.raises(StorageFailure):
        storage.write("../outside.rec", b"x")


def test_file_storage_ignores_temp_files(tmp_path):
    storage = FileStorage(str(tmp_path))
    storage.write(record_key("ns", 1), b"x")
    (tmp_path / "ns" / "0000000002.rec.tmp").write_bytes(b"partial")

    assert list(storage.keys("ns/")) == ["ns/0000000001.rec"]


def test_file_storage_failed_write_leaves_no_temp_file(tmp_path, monkeypatch):
    storage = FileStorage(str(tmp_path))

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("pebblekit.storage.file_store.os.replace", failing_replace)

    with pytest.raises(StorageFailure):
        storage.write(record_key("ns", 3), b"payload")

    monkeypatch.undo()
    assert sorted(p.name for p in (tmp_path / "ns").iterdir()) == []


def test_list_orders_by_index_and_reports_errors(tmp_path):
    storage = FileStorage(str(tmp_path))
    for index, parents in [(0, ()), (2, (0,)), (10, (2,))]:
        storage.write(record_key("ns", index), encode_record("ns", index, parents, b"{}"))
    storage.write(record_key("ns", 5), b"garbage without header")
    # other namespaces and non-record keys are not listed
    storage.write(record_key("other", 1), encode_record("other", 1, (), b"{}"))
    storage.write("ns/readme.txt", b"hi")

    listings = list(storage.list("ns"))

    assert [entry.key for entry in listings] == [
        "ns/0000000000.rec",
        "ns/0000000002.rec",
        "ns/0000000005.rec",
        "ns/0000000010.rec",
    ]
    assert [entry.ok for entry in listings] == [True, True, False, True]
    assert listings[2].error


def test_file_storage_unwritable_root(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_bytes(b"")

    with pytest.raises(StorageFailure):
        FileStorage(os.path.join(str(blocker), "sub"))
