"""
Module: upload.models

Purpose:
    Upload task records, upload metadata and the events reported to
    callers while uploads progress.

Key Classes:
    - UploadState: Lifecycle of one asset upload
    - UploadTask: Per-identifier record (persisted in the ledger)
    - UploadMetadata: Derived metadata sent alongside the bytes
    - UploadEvent / UploadEventKind: Progress notifications

Used By:
    - upload.orchestrator
    - api.client (UploadMetadata)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

_CONTENT_TYPES = {"jpg": "image/jpeg", "png": "image/png", "gif": "image/gif"}


class UploadState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED_TRANSIENT = "failed_transient"
    FAILED_PERMANENT = "failed_permanent"


@dataclass
class UploadTask:
    """
    Upload record for one asset identifier.

    Attributes:
        identifier: Asset identifier
        state: Current lifecycle state
        attempts: Uploads tried since the last manual retry
        remote_reference: Server reference once SUCCEEDED
        error: Last failure message
    """

    identifier: str
    state: UploadState = UploadState.PENDING
    attempts: int = 0
    remote_reference: Optional[str] = None
    error: Optional[str] = None

    def copy(self) -> UploadTask:
        return UploadTask(
            identifier=self.identifier,
            state=self.state,
            attempts=self.attempts,
            remote_reference=self.remote_reference,
            error=self.error,
        )

    def to_dict(self) -> dict:
        d = {"identifier": self.identifier, "state": self.state.value, "attempts": self.attempts}
        if self.remote_reference is not None:
            d["remote_reference"] = self.remote_reference
        if self.error is not None:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, data: dict) -> UploadTask:
        return cls(
            identifier=data["identifier"],
            state=UploadState(data["state"]),
            attempts=data.get("attempts", 0),
            remote_reference=data.get("remote_reference"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class UploadMetadata:
    """Metadata derived from an asset and sent with its bytes."""

    identifier: str
    width: int
    height: int
    extension: str

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES.get(self.extension, "application/octet-stream")

    @property
    def filename(self) -> str:
        return f"{self.identifier}.{self.extension}"


class UploadEventKind(str, Enum):
    COMPLETED = "completed"        # one asset uploaded
    FAILED = "failed"              # transient failure, retry scheduled or exhausted
    SHOULD_RETRY = "should_retry"  # retries exhausted, caller should retry_failed()
    FATAL = "fatal"                # permanent failure, order cannot proceed


@dataclass(frozen=True)
class UploadEvent:
    """Progress notification put on the orchestrator's event queue."""

    kind: UploadEventKind
    identifier: str
    pending_count: int
    error: Optional[BaseException] = None
