"""
Build Package

Submits compositions for PDF building and tracks the resulting jobs.
"""

from .config import BuildConfig
from .coordinator import BuildCoordinator, BuildTransport
from .models import BuildJob, BuildState, FailureReason
from .parameters import pdf_parameters

__all__ = [
    "BuildConfig",
    "BuildCoordinator",
    "BuildTransport",
    "BuildJob",
    "BuildState",
    "FailureReason",
    "pdf_parameters",
]
