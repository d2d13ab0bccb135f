"""
Module: persistence.blob_store

Purpose:
    Durable key/value blob storage. Each key is written atomically: the
    new bytes go to a temp file in the same directory, are fsynced and
    then replace the old file, so a crash mid-write leaves either the old
    blob or the new one, never a torn mix.

Key Classes:
    - BlobStore: Protocol consumed by persistence and upload ledger
    - FileBlobStore: One file per key under a root directory

Dependencies:
    - portalocker: Cross-process lock around each key

Used By:
    - persistence.adapter.CompositionPersistence
    - upload.orchestrator.UploadOrchestrator (task ledger)
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Protocol

import portalocker

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class BlobStore(Protocol):
    """Atomic-per-key durable storage. Failures raise OSError."""

    def write(self, key: str, data: bytes) -> None: ...

    def read(self, key: str) -> bytes: ...

    def exists(self, key: str) -> bool: ...

    def delete(self, key: str) -> None: ...


class FileBlobStore:
    """
    Blob store backed by files in ``root``.

    Usage:
        store = FileBlobStore(Path("~/.photobook").expanduser())
        store.write("photobook", payload)
        payload = store.read("photobook")

    Attributes:
        root: Directory holding ``<key>.blob`` and ``<key>.lock`` files
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def write(self, key: str, data: bytes) -> None:
        """
        Atomically replace the blob for ``key``.

        Raises:
            OSError: If the directory or file cannot be written
        """
        path = self._path(key)
        with self._locked(key, portalocker.LOCK_EX):
            f = tempfile.NamedTemporaryFile(
                mode="wb",
                suffix=".tmp",
                dir=path.parent,
                delete=False,
            )
            temp_path = Path(f.name)
            try:
                with f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                temp_path.replace(path)
            except OSError:
                temp_path.unlink(missing_ok=True)
                raise
        logger.debug(f"Wrote {len(data)} bytes to {path.name}")

    def read(self, key: str) -> bytes:
        """
        Read the blob for ``key``.

        Raises:
            FileNotFoundError: If nothing was written under ``key``
            OSError: On other read failures
        """
        path = self._path(key)
        with self._locked(key, portalocker.LOCK_SH):
            return path.read_bytes()

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> None:
        with self._locked(key, portalocker.LOCK_EX):
            self._path(key).unlink(missing_ok=True)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid blob key: {key!r}")
        return self.root / f"{key}.blob"

    @contextmanager
    def _locked(self, key: str, lock_type: int) -> Generator[None, None, None]:
        """Hold a lock on the key's companion lock file."""
        self.root.mkdir(parents=True, exist_ok=True)
        lock_path = self.root / f"{key}.lock"
        with open(lock_path, "a", encoding="utf-8") as f:
            portalocker.lock(f, lock_type)
            try:
                yield
            finally:
                portalocker.unlock(f)
