"""
API Package

HTTP access to the photobook backend.
"""

from .client import PhotobookAPIClient

__all__ = ["PhotobookAPIClient"]
