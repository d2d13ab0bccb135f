"""
Module: core.errors

Purpose:
    Single error taxonomy shared by every component. Callers can catch
    PhotobookError for "anything from this library", or the narrow
    classes to distinguish retryable from fatal conditions.

Key Classes:
    - InvalidPageIndexError, MissingLayoutsError: composition mutations
    - PersistenceError: blob write/read/decode failures
    - UploadTransientError, UploadPermanentError: upload outcome classes
    - BuildSubmissionError, MissingTemplateInfoError, BuildTimeoutError
    - ValidationError: payload failed structural validation

Used By:
    - every package in photobook_toolkit
"""

from __future__ import annotations


class PhotobookError(Exception):
    """Base class for all photobook_toolkit errors."""


class InvalidPageIndexError(PhotobookError, IndexError):
    """Page index outside the composition's page list."""

    def __init__(self, index: int, page_count: int):
        super().__init__(f"Page index {index} out of range (0..{page_count - 1})")
        self.index = index
        self.page_count = page_count


class MissingLayoutsError(PhotobookError):
    """No usable layout pool for the selected product."""


class CatalogError(PhotobookError):
    """Catalog payload could not be parsed into products and layouts."""


class AssetDataError(PhotobookError):
    """Asset bytes are missing, corrupt or in an unsupported format."""


class AssetFetchError(PhotobookError):
    """Asset bytes could not be fetched right now (remote source unreachable)."""


class ValidationError(PhotobookError):
    """Raised when data fails structural validation."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


class PersistenceError(PhotobookError):
    """Composition could not be written, read or decoded."""


class UploadError(PhotobookError):
    """Base class for upload failures."""


class UploadTransientError(UploadError):
    """Network or server failure; the upload may be retried."""


class UploadPermanentError(UploadError):
    """Corrupt/unsupported asset or unparseable response; never retried."""


class BuildSubmissionError(PhotobookError):
    """PDF build request could not be submitted or its reply not understood."""


class MissingTemplateInfoError(BuildSubmissionError):
    """Per-product build parameters cannot be derived from the composition."""


class BuildStatusError(PhotobookError):
    """Job status could not be fetched; polling continues."""


class BuildTimeoutError(PhotobookError):
    """Build job did not reach a terminal status within the allowed time."""


class InvalidTransitionError(PhotobookError):
    """State machine asked to leave a terminal state or skip a step."""


class OrderError(PhotobookError):
    """A stage of the order pipeline failed."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage
