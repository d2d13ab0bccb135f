"""
Module: upload.orchestrator

Purpose:
    Upload every asset of an order to the backend with bounded concurrency,
    exactly once per identifier, retrying transient failures with
    exponential backoff and surviving restarts through a persisted ledger.

Key Classes:
    - UploadTransport: What the orchestrator needs from the API client
    - UploadOrchestrator: Worker pool plus per-identifier task table

Dependencies:
    - concurrent.futures: Worker pool
    - threading: Condition for idle waits, Timer for backoff
    - queue: Event delivery to callers

Used By:
    - layout.store.CompositionStore.start_order
    - order.place_order
    - build.coordinator (remote_reference lookup)
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Protocol, Set

from ..core.errors import (
    AssetDataError,
    AssetFetchError,
    PersistenceError,
    UploadPermanentError,
    UploadTransientError,
)
from ..core.models.assets import Asset
from ..persistence.blob_store import BlobStore
from .config import UploadConfig
from .models import UploadEvent, UploadEventKind, UploadMetadata, UploadState, UploadTask

logger = logging.getLogger(__name__)

LEDGER_VERSION = 1

_RESUMABLE = (UploadState.IN_FLIGHT, UploadState.FAILED_TRANSIENT)


class UploadTransport(Protocol):
    """Sends one asset's bytes; returns the server's reference (URL)."""

    def upload(self, data: bytes, metadata: UploadMetadata) -> str: ...


class UploadOrchestrator:
    """
    Bounded-concurrency uploader keyed by asset identifier.

    At most one upload per identifier is ever in flight, and an identifier
    that already SUCCEEDED is never uploaded again. Failures are classified:
    transient errors (network, 5xx, asset fetch) are retried after
    ``config.retry_delay(attempt)`` until ``config.max_retries`` is used up,
    permanent errors (bad asset data, rejected upload) are terminal.

    Usage:
        with UploadOrchestrator(client, ledger=store) as uploader:
            uploader.enqueue(composition.assets())
            uploader.wait_until_idle(timeout=300)
            uploader.require_ready()

    Attributes:
        config: Pool size and retry policy
        events: Queue receiving UploadEvent notifications
    """

    def __init__(
        self,
        transport: UploadTransport,
        config: Optional[UploadConfig] = None,
        *,
        ledger: Optional[BlobStore] = None,
        events: Optional[queue.Queue] = None,
    ):
        self.config = config or UploadConfig()
        self.events: queue.Queue = events if events is not None else queue.Queue()
        self._transport = transport
        self._ledger = ledger
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._tasks: Dict[str, UploadTask] = {}
        self._assets: Dict[str, Asset] = {}
        self._backing_off: Set[str] = set()
        self._timers: Dict[str, threading.Timer] = {}
        self._in_flight = 0
        self._closed = False
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="upload",
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────────────

    def enqueue(self, assets: Iterable[Asset]) -> int:
        """
        Add assets to the upload set.

        Identifiers already known (pending, in flight, done or failed) are
        not added twice. A recovered identifier gets its asset attached so
        it can be dispatched.

        Returns:
            Number of identifiers newly added
        """
        added = 0
        with self._lock:
            if self._closed:
                raise RuntimeError("UploadOrchestrator is shut down")
            for asset in assets:
                identifier = asset.identifier
                if identifier in self._tasks:
                    self._assets.setdefault(identifier, asset)
                    continue
                self._tasks[identifier] = UploadTask(identifier)
                self._assets[identifier] = asset
                added += 1
            if added:
                self._save_ledger_locked()
            self._dispatch_locked()
        if added:
            logger.info(f"Queued {added} assets for upload")
        return added

    @property
    def pending_count(self) -> int:
        """Identifiers not yet SUCCEEDED."""
        with self._lock:
            return self._pending_count_locked()

    @property
    def is_ready(self) -> bool:
        """True when every known identifier has SUCCEEDED."""
        with self._lock:
            return self._pending_count_locked() == 0

    def task(self, identifier: str) -> Optional[UploadTask]:
        with self._lock:
            task = self._tasks.get(identifier)
            return task.copy() if task is not None else None

    def tasks(self) -> List[UploadTask]:
        with self._lock:
            return [t.copy() for t in self._tasks.values()]

    def remote_reference(self, identifier: str) -> Optional[str]:
        """Server reference for a SUCCEEDED identifier, else None."""
        with self._lock:
            task = self._tasks.get(identifier)
            if task is None or task.state is not UploadState.SUCCEEDED:
                return None
            return task.remote_reference

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until nothing is in flight, waiting for backoff or dispatchable.

        Returns:
            True if idle was reached, False on timeout
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._is_busy_locked(), timeout)

    def require_ready(self) -> None:
        """
        Raise unless every identifier has SUCCEEDED.

        Raises:
            UploadPermanentError: If any identifier failed permanently
            UploadTransientError: If any identifier is still outstanding
        """
        with self._lock:
            permanent = [
                t.identifier for t in self._tasks.values()
                if t.state is UploadState.FAILED_PERMANENT
            ]
            outstanding = [
                t.identifier for t in self._tasks.values()
                if t.state is not UploadState.SUCCEEDED
            ]
        if permanent:
            raise UploadPermanentError(
                f"{len(permanent)} assets cannot be uploaded: {', '.join(permanent)}"
            )
        if outstanding:
            raise UploadTransientError(f"{len(outstanding)} uploads outstanding")

    def retry_failed(self) -> int:
        """
        Re-queue identifiers whose automatic retries are exhausted.

        Returns:
            Number of identifiers re-queued
        """
        count = 0
        with self._lock:
            for task in self._tasks.values():
                if task.state is UploadState.FAILED_TRANSIENT and task.identifier not in self._backing_off:
                    task.state = UploadState.PENDING
                    task.attempts = 0
                    count += 1
            if count:
                self._save_ledger_locked()
            self._dispatch_locked()
        logger.info(f"Retrying {count} failed uploads")
        return count

    def recover(self, assets: Iterable[Asset] = ()) -> int:
        """
        Load the ledger and resume interrupted work.

        IN_FLIGHT and FAILED_TRANSIENT records go back to PENDING; SUCCEEDED
        records keep their reference and are not uploaded again. Records are
        dispatched once their asset is supplied here or via enqueue().

        Returns:
            Number of records reset to PENDING

        Raises:
            PersistenceError: If the ledger exists but cannot be read
        """
        records = self._load_ledger()
        reset = 0
        with self._lock:
            for task in records:
                if task.identifier in self._tasks:
                    continue
                if task.state in _RESUMABLE:
                    task.state = UploadState.PENDING
                    task.attempts = 0
                    reset += 1
                self._tasks[task.identifier] = task
            for asset in assets:
                if asset.identifier in self._tasks:
                    self._assets.setdefault(asset.identifier, asset)
            self._save_ledger_locked()
            self._dispatch_locked()
        logger.info(f"Recovered {len(records)} upload records ({reset} resumed)")
        return reset

    def shutdown(self, wait: bool = True) -> None:
        """Stop dispatching, cancel pending backoff timers and stop the pool."""
        with self._lock:
            self._closed = True
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._backing_off.clear()
            self._idle.notify_all()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "UploadOrchestrator":
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()

    # ─────────────────────────────────────────────────────────────────────────
    # Worker side
    # ─────────────────────────────────────────────────────────────────────────

    def _run(self, identifier: str, asset: Asset) -> None:
        try:
            data, extension = asset.image_data()
            metadata = UploadMetadata(
                identifier=identifier,
                width=int(asset.size.width),
                height=int(asset.size.height),
                extension=extension,
            )
            reference = self._transport.upload(data, metadata)
            if not isinstance(reference, str) or not reference:
                raise UploadPermanentError(f"No remote reference returned for {identifier}")
        except (UploadPermanentError, AssetDataError) as e:
            self._fail_permanent(identifier, e)
        except (UploadTransientError, AssetFetchError) as e:
            self._fail_transient(identifier, e)
        except Exception as e:
            logger.exception(f"Unexpected error uploading {identifier}")
            self._fail_permanent(identifier, e)
        else:
            self._succeed(identifier, reference)

    def _succeed(self, identifier: str, reference: str) -> None:
        with self._lock:
            task = self._tasks[identifier]
            task.state = UploadState.SUCCEEDED
            task.remote_reference = reference
            task.error = None
            self._in_flight -= 1
            self._save_ledger_locked()
            pending = self._pending_count_locked()
            self.events.put(UploadEvent(UploadEventKind.COMPLETED, identifier, pending))
            self._dispatch_locked()
            self._idle.notify_all()
        logger.debug(f"Uploaded {identifier} ({pending} remaining)")

    def _fail_transient(self, identifier: str, error: BaseException) -> None:
        with self._lock:
            task = self._tasks[identifier]
            task.state = UploadState.FAILED_TRANSIENT
            task.error = str(error)
            self._in_flight -= 1
            pending = self._pending_count_locked()
            self.events.put(UploadEvent(UploadEventKind.FAILED, identifier, pending, error))
            if task.attempts <= self.config.max_retries and not self._closed:
                delay = self.config.retry_delay(task.attempts)
                logger.warning(
                    f"Upload of {identifier} failed (attempt {task.attempts}), "
                    f"retrying in {delay:.1f}s: {error}"
                )
                self._schedule_retry_locked(identifier, delay)
            else:
                logger.warning(f"Upload of {identifier} failed, retries exhausted: {error}")
                self.events.put(UploadEvent(UploadEventKind.SHOULD_RETRY, identifier, pending, error))
            self._save_ledger_locked()
            self._dispatch_locked()
            self._idle.notify_all()

    def _fail_permanent(self, identifier: str, error: BaseException) -> None:
        with self._lock:
            task = self._tasks[identifier]
            task.state = UploadState.FAILED_PERMANENT
            task.error = str(error)
            self._in_flight -= 1
            self._save_ledger_locked()
            pending = self._pending_count_locked()
            self.events.put(UploadEvent(UploadEventKind.FATAL, identifier, pending, error))
            self._dispatch_locked()
            self._idle.notify_all()
        logger.error(f"Upload of {identifier} failed permanently: {error}")

    def _schedule_retry_locked(self, identifier: str, delay: float) -> None:
        if delay <= 0:
            self._tasks[identifier].state = UploadState.PENDING
            return
        self._backing_off.add(identifier)
        timer = threading.Timer(delay, self._requeue, args=(identifier,))
        timer.daemon = True
        self._timers[identifier] = timer
        timer.start()

    def _requeue(self, identifier: str) -> None:
        with self._lock:
            self._timers.pop(identifier, None)
            if identifier not in self._backing_off:
                return
            self._backing_off.discard(identifier)
            task = self._tasks[identifier]
            if task.state is UploadState.FAILED_TRANSIENT and not self._closed:
                task.state = UploadState.PENDING
                self._save_ledger_locked()
                self._dispatch_locked()
            self._idle.notify_all()

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers (caller holds the lock)
    # ─────────────────────────────────────────────────────────────────────────

    def _dispatch_locked(self) -> None:
        """Start PENDING tasks while fewer than max_workers are in flight."""
        if self._closed:
            return
        started = False
        for task in self._tasks.values():
            if self._in_flight >= self.config.max_workers:
                break
            if task.state is not UploadState.PENDING or task.identifier not in self._assets:
                continue
            task.state = UploadState.IN_FLIGHT
            task.attempts += 1
            self._in_flight += 1
            started = True
            self._executor.submit(self._run, task.identifier, self._assets[task.identifier])
        if started:
            self._save_ledger_locked()

    def _is_busy_locked(self) -> bool:
        if self._closed:
            return False
        if self._in_flight or self._backing_off:
            return True
        return any(
            t.state is UploadState.PENDING and t.identifier in self._assets
            for t in self._tasks.values()
        )

    def _pending_count_locked(self) -> int:
        return sum(1 for t in self._tasks.values() if t.state is not UploadState.SUCCEEDED)

    def _save_ledger_locked(self) -> None:
        if self._ledger is None:
            return
        payload = {
            "version": LEDGER_VERSION,
            "tasks": [t.to_dict() for t in self._tasks.values()],
        }
        try:
            self._ledger.write(self.config.ledger_key, json.dumps(payload).encode("utf-8"))
        except OSError as e:
            logger.error(f"Could not save upload ledger: {e}")

    def _load_ledger(self) -> List[UploadTask]:
        if self._ledger is None:
            return []
        try:
            raw = self._ledger.read(self.config.ledger_key)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise PersistenceError(f"Could not read upload ledger: {e}") from e
        try:
            data = json.loads(raw.decode("utf-8"))
            return [UploadTask.from_dict(item) for item in data["tasks"]]
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Upload ledger is corrupt: {e}") from e
