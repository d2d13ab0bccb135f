"""
Schema Validation Utilities

Validates serialized composition payloads before deserialization.

The structure is described by ``composition.schema.json`` and checked with
jsonschema. Two rules the schema cannot state are checked here: every
number must be finite, and every page must refer to a layout stored in
the payload's layout arena.
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Iterable, Iterator

import jsonschema
from jsonschema.exceptions import best_match

from ..errors import ValidationError

# Schema version constants
COMPOSITION_SCHEMA_VERSION = 2  # v2 stores the layout arena instead of per-page layout copies

# Load schemas lazily
_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


def validate_composition(data: Any) -> None:
    """
    Validate a serialized Composition.

    Args:
        data: Dictionary produced by serialize_composition()

    Raises:
        ValidationError: If data is invalid
    """
    validator = jsonschema.Draft202012Validator(_load_schema("composition"))
    errors = list(validator.iter_errors(data))
    if errors:
        error = best_match(errors)
        raise ValidationError(
            f"Schema validation failed: {error.message}",
            path=format_path(error.absolute_path),
            errors=[message for e in errors for message in _describe(e)],
        )

    for path, value in _numbers(data, []):
        if not math.isfinite(value):
            raise ValidationError(
                f"Number must be finite: {value!r}",
                path=format_path(path),
            )

    layout_ids = {layout["id"] for layout in data["layouts"]}
    for key in ("cover_layout_ids", "content_layout_ids"):
        for layout_id in data.get(key, []):
            if layout_id not in layout_ids:
                raise ValidationError(f"Unknown layout id: {layout_id}", path=key)
    for i, page in enumerate(data["pages"]):
        if page["layout_id"] not in layout_ids:
            raise ValidationError(
                f"Page refers to unknown layout: {page['layout_id']!r}",
                path=f"pages[{i}].layout_id",
            )


def format_path(parts: Iterable[Any]) -> str:
    """
    Render a JSON location as a dotted path.

    Example:
        >>> format_path(["pages", 1, "placement", "tx"])
        'pages[1].placement.tx'
    """
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def _describe(error: jsonschema.ValidationError) -> list[str]:
    if error.validator == "required":
        return [f"Missing field: {f}" for f in error.validator_value if f not in error.instance]
    location = format_path(error.absolute_path)
    return [f"{location}: {error.message}" if location else error.message]


def _numbers(data: Any, path: list) -> Iterator[tuple[list, float]]:
    """Yield (path, value) for every float in a JSON document."""
    if isinstance(data, float):
        yield path, data
    elif isinstance(data, dict):
        for key, value in data.items():
            yield from _numbers(value, path + [key])
    elif isinstance(data, list):
        for i, value in enumerate(data):
            yield from _numbers(value, path + [i])
