"""
Schemas Package

JSON Schema validation of persisted payloads.
"""

from ..errors import ValidationError
from .validator import validate_composition, COMPOSITION_SCHEMA_VERSION

__all__ = [
    "validate_composition",
    "ValidationError",
    "COMPOSITION_SCHEMA_VERSION",
]
