"""
Module: persistence.adapter

Purpose:
    Save and load the full Composition through a BlobStore. Saves and
    loads are mutually exclusive, and every failure surfaces as a single
    PersistenceError type so the store can leave its state untouched.

Key Classes:
    - CompositionPersistence: save()/load()/clear() for one key

Dependencies:
    - core.utils.serialization: JSON encoding and validation
    - persistence.blob_store: Atomic storage

Used By:
    - layout.store.CompositionStore.persist()/restore()
"""

from __future__ import annotations

import json
import logging
import threading

from ..core.errors import PersistenceError, ValidationError
from ..core.utils.serialization import composition_from_json, composition_to_json
from ..layout.models import Composition
from .blob_store import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_COMPOSITION_KEY = "photobook"


class CompositionPersistence:
    """
    Durable storage of the in-progress composition.

    Example:
        >>> persistence = CompositionPersistence(FileBlobStore(tmp_dir))
        >>> persistence.save(composition)
        >>> persistence.load() == composition
        True
    """

    def __init__(self, store: BlobStore, key: str = DEFAULT_COMPOSITION_KEY):
        self._store = store
        self._key = key
        self._lock = threading.Lock()

    @property
    def key(self) -> str:
        return self._key

    def save(self, composition: Composition) -> None:
        """
        Write the composition.

        Raises:
            PersistenceError: If encoding or writing fails
        """
        with self._lock:
            try:
                payload = composition_to_json(composition)
            except (TypeError, ValueError) as e:
                raise PersistenceError(f"Could not encode composition: {e}") from e
            try:
                self._store.write(self._key, payload)
            except OSError as e:
                raise PersistenceError(f"Could not write composition: {e}") from e
        logger.info(f"Saved composition with {composition.page_count} pages")

    def load(self) -> Composition:
        """
        Read and decode the composition.

        Raises:
            PersistenceError: If nothing is stored, or reading/decoding fails
        """
        with self._lock:
            try:
                payload = self._store.read(self._key)
            except OSError as e:
                raise PersistenceError(f"Could not read composition: {e}") from e
            try:
                composition = composition_from_json(payload)
            except ValidationError as e:
                where = f" at {e.path}" if e.path else ""
                raise PersistenceError(f"Stored composition is invalid{where}: {e}") from e
            except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                raise PersistenceError(f"Could not decode composition: {e}") from e
        logger.info(f"Loaded composition with {composition.page_count} pages")
        return composition

    def exists(self) -> bool:
        return self._store.exists(self._key)

    def clear(self) -> None:
        """Forget the stored composition (e.g. after the order is placed)."""
        with self._lock:
            try:
                self._store.delete(self._key)
            except OSError as e:
                raise PersistenceError(f"Could not delete composition: {e}") from e
