"""
Utils Package

Serialization of the composition model.
"""

from .serialization import (
    serialize_composition,
    deserialize_composition,
    composition_to_json,
    composition_from_json,
)

__all__ = [
    "serialize_composition",
    "deserialize_composition",
    "composition_to_json",
    "composition_from_json",
]
