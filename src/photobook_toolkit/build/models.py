"""
Module: build.models

Purpose:
    BuildJob state machine shared between the coordinator's polling thread
    and callers waiting on the result.

Key Classes:
    - BuildState: SUBMITTED -> AWAITING_COMPLETION -> SUCCEEDED | FAILED
    - FailureReason: Why a job FAILED
    - BuildJob: Thread-safe job record with guarded transitions
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional, Sequence

from ..core.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class BuildState(str, Enum):
    SUBMITTED = "submitted"
    AWAITING_COMPLETION = "awaiting_completion"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(str, Enum):
    TIMEOUT = "timeout"
    SERVER = "server"
    PARSING = "parsing"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({BuildState.SUCCEEDED, BuildState.FAILED})

_ALLOWED = {
    BuildState.SUBMITTED: frozenset({BuildState.AWAITING_COMPLETION, BuildState.FAILED}),
    BuildState.AWAITING_COMPLETION: frozenset({BuildState.SUCCEEDED, BuildState.FAILED}),
}


class BuildJob:
    """
    One submitted PDF build.

    The server acknowledging a submission does not mean the PDF exists;
    only a polled ``succeeded`` status moves the job to SUCCEEDED. Terminal
    states are final: any further transition raises InvalidTransitionError.

    Attributes:
        job_id: Server job identifier
        provisional_urls: Locations returned at submission (cover, inside)
    """

    def __init__(self, job_id: str, provisional_urls: Sequence[str]):
        self.job_id = job_id
        self.provisional_urls = tuple(provisional_urls)
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._state = BuildState.SUBMITTED
        self._urls: Optional[tuple[str, ...]] = None
        self._failure: Optional[FailureReason] = None
        self._error: Optional[BaseException] = None

    def __repr__(self) -> str:
        return f"BuildJob(job_id={self.job_id!r}, state={self.state.value})"

    @property
    def state(self) -> BuildState:
        with self._lock:
            return self._state

    @property
    def urls(self) -> Optional[tuple[str, ...]]:
        """Final PDF locations, set only when SUCCEEDED."""
        with self._lock:
            return self._urls

    @property
    def failure(self) -> Optional[FailureReason]:
        with self._lock:
            return self._failure

    @property
    def error(self) -> Optional[BaseException]:
        with self._lock:
            return self._error

    @property
    def is_terminal(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the job is terminal. Returns False on timeout."""
        return self._done.wait(timeout)

    # ─────────────────────────────────────────────────────────────────────────
    # Transitions
    # ─────────────────────────────────────────────────────────────────────────

    def mark_awaiting(self) -> None:
        self._transition(BuildState.AWAITING_COMPLETION)

    def mark_succeeded(self, urls: Sequence[str]) -> None:
        self._transition(BuildState.SUCCEEDED, urls=tuple(urls))

    def mark_failed(self, reason: FailureReason, error: Optional[BaseException] = None) -> None:
        self._transition(BuildState.FAILED, failure=reason, error=error)

    def _transition(
        self,
        target: BuildState,
        *,
        urls: Optional[tuple[str, ...]] = None,
        failure: Optional[FailureReason] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        with self._lock:
            if target not in _ALLOWED.get(self._state, frozenset()):
                raise InvalidTransitionError(
                    f"Job {self.job_id}: cannot move from {self._state.value} to {target.value}"
                )
            self._state = target
            self._urls = urls
            self._failure = failure
            self._error = error
            if target in TERMINAL_STATES:
                self._done.set()
        logger.debug(f"Job {self.job_id} -> {target.value}")
