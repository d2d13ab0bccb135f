"""
Module: persistence

Purpose:
    Durable, atomic storage of the in-progress composition.

Key Classes:
    - BlobStore: Storage protocol
    - FileBlobStore: File-backed store with portalocker locks
    - CompositionPersistence: Composition save/load

Used By:
    - layout.store.CompositionStore
    - upload.orchestrator (task ledger)
"""

from .blob_store import BlobStore, FileBlobStore
from .adapter import CompositionPersistence, DEFAULT_COMPOSITION_KEY

__all__ = [
    "BlobStore",
    "FileBlobStore",
    "CompositionPersistence",
    "DEFAULT_COMPOSITION_KEY",
]
