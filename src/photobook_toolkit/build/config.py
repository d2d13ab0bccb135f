"""
Module: build.config

Purpose:
    Polling policy for PDF build jobs.

Key Classes:
    - BuildConfig: Immutable polling configuration
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BuildConfig:
    """
    Build polling configuration (immutable).

    Attributes:
        poll_interval: Seconds before the first status check
        poll_multiplier: Growth of the interval after each check
        max_poll_interval: Upper bound for the interval
        max_wait: Seconds after submission before the job times out
    """

    poll_interval: float = 2.0
    poll_multiplier: float = 2.0
    max_poll_interval: float = 30.0
    max_wait: float = 600.0

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive: {self.poll_interval}")
        if self.poll_multiplier < 1:
            raise ValueError(f"poll_multiplier must be >= 1: {self.poll_multiplier}")
        if self.max_poll_interval < self.poll_interval:
            raise ValueError(
                f"max_poll_interval ({self.max_poll_interval}) must be >= "
                f"poll_interval ({self.poll_interval})"
            )
        if self.max_wait <= 0:
            raise ValueError(f"max_wait must be positive: {self.max_wait}")

    def next_interval(self, interval: float) -> float:
        return min(interval * self.poll_multiplier, self.max_poll_interval)

    def to_dict(self) -> dict:
        return {
            "poll_interval": self.poll_interval,
            "poll_multiplier": self.poll_multiplier,
            "max_poll_interval": self.max_poll_interval,
            "max_wait": self.max_wait,
        }
