"""JSON Schemas shipped as package data, with a validation helper."""

from __future__ import annotations

import copy
import json
from functools import lru_cache
from importlib.resources import files
from typing import Any

from jsonschema.validators import Draft202012Validator


@lru_cache(maxsize=None)
def _cached_schema(name: str) -> dict[str, Any]:
    resource = files("shipgate.schemas").joinpath(f"{name}.schema.json")
    return json.loads(resource.read_text(encoding="utf-8"))


def _schema_name(name: str) -> str:
    return name.removesuffix(".schema.json")


def load_schema(name: str) -> dict[str, Any]:
    """Load ``<name>.schema.json`` from this package.

    Returns a private copy; callers may mutate it freely.
    """
    return copy.deepcopy(_cached_schema(_schema_name(name)))


def validate_data(data: Any, schema_name: str) -> list[str]:
    """Validate data against a bundled schema.

    Returns:
        Error messages, empty when valid
    """
    validator = Draft202012Validator(_cached_schema(_schema_name(schema_name)))
    return [
        f"{'.'.join(str(p) for p in e.path)}: {e.message}" if e.path else e.message
        for e in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    ]
