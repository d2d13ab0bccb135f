"""
Upload Package

Uploads the assets of an order before a build can be submitted.
"""

from .config import UploadConfig
from .models import UploadEvent, UploadEventKind, UploadMetadata, UploadState, UploadTask
from .orchestrator import UploadOrchestrator, UploadTransport

__all__ = [
    "UploadConfig",
    "UploadEvent",
    "UploadEventKind",
    "UploadMetadata",
    "UploadState",
    "UploadTask",
    "UploadOrchestrator",
    "UploadTransport",
]
