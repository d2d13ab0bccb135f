"""
Module: build.coordinator

Purpose:
    Submit a composition for PDF building and follow the resulting job to a
    terminal state by polling its status in a background thread.

Key Classes:
    - BuildTransport: What the coordinator needs from the API client
    - BuildCoordinator: Submission, polling and cancellation

Dependencies:
    - threading: One polling thread per job, cancellable via an Event

Used By:
    - order.place_order
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, Optional, Protocol

from ..core.errors import (
    BuildStatusError,
    BuildSubmissionError,
    BuildTimeoutError,
    InvalidTransitionError,
    PhotobookError,
)
from ..layout.models import Composition
from .config import BuildConfig
from .models import BuildJob, FailureReason
from .parameters import ReferenceLookup, pdf_parameters

logger = logging.getLogger(__name__)

IN_PROGRESS_STATUSES = frozenset({"pending", "queued", "processing", "running"})


class BuildTransport(Protocol):
    def create_pdf(self, parameters: dict) -> dict: ...

    def job_status(self, job_id: str) -> dict: ...


class BuildCoordinator:
    """
    Turns a composition into a BuildJob and polls it to completion.

    Usage:
        coordinator = BuildCoordinator(client, uploader.remote_reference)
        job = coordinator.submit(store.snapshot())
        job.wait(timeout=900)

    Attributes:
        config: Polling policy
    """

    def __init__(
        self,
        transport: BuildTransport,
        reference_lookup: ReferenceLookup,
        config: Optional[BuildConfig] = None,
    ):
        self.config = config or BuildConfig()
        self._transport = transport
        self._reference_lookup = reference_lookup
        self._lock = threading.Lock()
        self._cancel_events: Dict[str, threading.Event] = {}
        self._threads: Dict[str, threading.Thread] = {}

    def submit(self, composition: Composition) -> BuildJob:
        """
        Submit a build and start polling.

        Returns:
            Job in AWAITING_COMPLETION with provisional urls

        Raises:
            MissingTemplateInfoError: Parameters cannot be derived
            BuildSubmissionError: Transport failure or unusable reply
        """
        parameters = pdf_parameters(composition, self._reference_lookup)
        response = self._transport.create_pdf(parameters)
        job = _job_from_response(response)
        job.mark_awaiting()
        logger.info(f"Submitted build job {job.job_id}")

        cancel = threading.Event()
        thread = threading.Thread(
            target=self._poll,
            args=(job, cancel),
            name=f"build-poll-{job.job_id}",
            daemon=True,
        )
        with self._lock:
            self._cancel_events[job.job_id] = cancel
            self._threads[job.job_id] = thread
        thread.start()
        return job

    def cancel(self, job: BuildJob) -> bool:
        """
        Stop polling and fail the job as CANCELLED.

        The server-side job is left alone.

        Returns:
            False if the job was already terminal
        """
        with self._lock:
            cancel = self._cancel_events.get(job.job_id)
        if cancel is not None:
            cancel.set()
        cancelled = self._finish(job, lambda: job.mark_failed(FailureReason.CANCELLED))
        if cancelled:
            logger.info(f"Cancelled build job {job.job_id}")
        return cancelled

    @property
    def active_jobs(self) -> int:
        with self._lock:
            return sum(1 for t in self._threads.values() if t.is_alive())

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop every polling thread. Jobs still running are left non-terminal."""
        with self._lock:
            events = list(self._cancel_events.values())
            threads = list(self._threads.values())
        for event in events:
            event.set()
        for thread in threads:
            thread.join(timeout)

    # ─────────────────────────────────────────────────────────────────────────
    # Polling
    # ─────────────────────────────────────────────────────────────────────────

    def _poll(self, job: BuildJob, cancel: threading.Event) -> None:
        deadline = time.monotonic() + self.config.max_wait
        interval = self.config.poll_interval
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    error = BuildTimeoutError(
                        f"Job {job.job_id} not finished after {self.config.max_wait:.0f}s"
                    )
                    logger.error(str(error))
                    self._finish(job, lambda: job.mark_failed(FailureReason.TIMEOUT, error))
                    return
                if cancel.wait(min(interval, remaining)):
                    return
                if self._check(job):
                    return
                interval = self.config.next_interval(interval)
        finally:
            with self._lock:
                self._cancel_events.pop(job.job_id, None)
                self._threads.pop(job.job_id, None)

    def _check(self, job: BuildJob) -> bool:
        """Poll once. Returns True when the job reached a terminal state."""
        try:
            response = self._transport.job_status(job.job_id)
        except BuildStatusError as e:
            logger.warning(f"Status check for job {job.job_id} failed, will retry: {e}")
            return False
        except PhotobookError as e:
            logger.error(f"Status check for job {job.job_id} failed: {e}")
            self._finish(job, lambda: job.mark_failed(FailureReason.SERVER, e))
            return True
        except Exception as e:
            logger.exception(f"Unexpected error checking job {job.job_id}")
            self._finish(job, lambda: job.mark_failed(FailureReason.SERVER, e))
            return True

        status = response.get("status") if isinstance(response, dict) else None
        if status == "succeeded":
            urls = _result_urls(response) or job.provisional_urls
            logger.info(f"Build job {job.job_id} succeeded")
            self._finish(job, lambda: job.mark_succeeded(urls))
            return True
        if status == "failed":
            error = BuildSubmissionError(str(response.get("error") or "Server reported failure"))
            logger.error(f"Build job {job.job_id} failed: {error}")
            self._finish(job, lambda: job.mark_failed(FailureReason.SERVER, error))
            return True
        if status in IN_PROGRESS_STATUSES:
            logger.debug(f"Build job {job.job_id} still {status}")
            return False

        error = BuildSubmissionError(f"Unrecognised status reply: {response!r}")
        logger.error(f"Build job {job.job_id}: {error}")
        self._finish(job, lambda: job.mark_failed(FailureReason.PARSING, error))
        return True

    @staticmethod
    def _finish(job: BuildJob, transition) -> bool:
        """Apply a terminal transition unless another thread got there first."""
        try:
            transition()
        except InvalidTransitionError:
            logger.debug(f"Job {job.job_id} already {job.state.value}")
            return False
        return True


def _job_from_response(response: object) -> BuildJob:
    if not isinstance(response, dict):
        raise BuildSubmissionError(f"Unexpected build reply: {response!r}")
    cover_url = response.get("coverUrl")
    inside_url = response.get("insideUrl")
    job_id = response.get("jobId") or response.get("id")
    if not isinstance(cover_url, str) or not isinstance(inside_url, str):
        raise BuildSubmissionError("Build reply is missing coverUrl or insideUrl")
    if job_id is None or job_id == "":
        raise BuildSubmissionError("Build reply is missing a job id")
    return BuildJob(str(job_id), (cover_url, inside_url))


def _result_urls(response: dict) -> Optional[tuple[str, ...]]:
    cover_url = response.get("coverUrl")
    inside_url = response.get("insideUrl")
    if isinstance(cover_url, str) and isinstance(inside_url, str):
        return (cover_url, inside_url)
    return None
