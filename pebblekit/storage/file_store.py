"""
File-based storage backend: one file per record.

Key "ns/0000000042.rec" maps to <root>/ns/0000000042.rec. Writes go to a
temporary sibling, are fsynced, then atomically renamed into place, so a
crash never leaves a half-written record under its final name.
"""

import os
from pathlib import Path
from typing import Iterator

from ..core.errors import StorageFailure
from .store import StorageBackend

TMP_SUFFIX = ".tmp"


class FileStorage(StorageBackend):
    """
    Directory-backed storage.

    Guarantees:
    - Atomic replace (os.replace) after fsync
    - OSError always surfaces as StorageFailure
    """

    def __init__(self, root: str) -> None:
        """
        Initialize file storage.

        Args:
            root: Directory holding records (created if missing)
        """
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as ex:
            raise StorageFailure(f"cannot create storage root {root}: {ex}") from ex

    def _path_for(self, key: str) -> Path:
        parts = key.split("/")
        if not key or any(p in ("", ".", "..") for p in parts):
            raise StorageFailure(f"invalid storage key: {key!r}")
        return self.root.joinpath(*parts)

    def write(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        tmp_path = path.with_name(path.name + TMP_SUFFIX)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as ex:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise StorageFailure(f"write {key} failed: {ex}") from ex

    def read(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as ex:
            raise StorageFailure(f"missing record {key}") from ex
        except OSError as ex:
            raise StorageFailure(f"read {key} failed: {ex}") from ex

    def read_header(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            with open(path, "rb") as f:
                return f.readline().rstrip(b"\n")
        except FileNotFoundError as ex:
            raise StorageFailure(f"missing record {key}") from ex
        except OSError as ex:
            raise StorageFailure(f"read {key} failed: {ex}") from ex

    def keys(self, prefix: str = "") -> Iterator[str]:
        found = []
        try:
            for dirpath, _dirnames, filenames in os.walk(self.root):
                for name in filenames:
                    if name.endswith(TMP_SUFFIX):
                        continue
                    rel = Path(dirpath, name).relative_to(self.root).as_posix()
                    if rel.startswith(prefix):
                        found.append(rel)
        except OSError as ex:
            raise StorageFailure(f"listing {self.root} failed: {ex}") from ex
        found.sort()
        return iter(found)
