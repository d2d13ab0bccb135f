"""
Module: upload.config

Purpose:
    Configuration for the upload orchestrator: pool size and retry policy.

Key Classes:
    - UploadConfig: Immutable upload configuration

Used By:
    - upload.orchestrator.UploadOrchestrator
    - config.PhotobookConfig
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_WORKERS = 3
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_SECONDS = 1.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0


@dataclass(frozen=True)
class UploadConfig:
    """
    Upload configuration (immutable).

    Attributes:
        max_workers: Concurrent uploads (K)
        max_retries: Automatic retries per asset after a transient failure
        backoff_seconds: Delay before the first automatic retry
        backoff_multiplier: Growth of the delay for each further retry
        ledger_key: Blob key of the persisted task ledger

    Example:
        >>> UploadConfig(max_workers=3).retry_delay(2)
        4.0
    """

    max_workers: int = DEFAULT_MAX_WORKERS
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    ledger_key: str = "uploads"

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.max_workers <= 0:
            raise ValueError(f"max_workers must be positive: {self.max_workers}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative: {self.max_retries}")
        if self.backoff_seconds < 0:
            raise ValueError(f"backoff_seconds must be non-negative: {self.backoff_seconds}")
        if self.backoff_multiplier < 1:
            raise ValueError(f"backoff_multiplier must be >= 1: {self.backoff_multiplier}")

    def retry_delay(self, attempt: int) -> float:
        """Delay in seconds before retrying after failed attempt number ``attempt`` (1-based)."""
        return self.backoff_seconds * (self.backoff_multiplier ** (attempt - 1))

    def to_dict(self) -> dict:
        return {
            "max_workers": self.max_workers,
            "max_retries": self.max_retries,
            "backoff_seconds": self.backoff_seconds,
            "backoff_multiplier": self.backoff_multiplier,
            "ledger_key": self.ledger_key,
        }
