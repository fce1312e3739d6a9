"""Canonical JSON for room snapshots, observations, and logged events."""

from __future__ import annotations

import dataclasses
import hashlib
import json
from enum import Enum
from typing import Any, Mapping

_PRIMITIVES = (str, int, float, bool, type(None))


def to_serializable(value: Any) -> Any:
    """Reduce enums, dataclasses, and containers to plain JSON values.

    Objects exposing ``to_dict`` are trusted to pick their own shape. Sets come
    out sorted so that equal states always encode identically.
    """
    if isinstance(value, Enum):
        return to_serializable(value.value)
    if isinstance(value, _PRIMITIVES):
        return value
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_serializable(to_dict())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {item.name: to_serializable(getattr(value, item.name)) for item in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(key): to_serializable(item) for key, item in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted(to_serializable(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [to_serializable(item) for item in value]
    raise TypeError(f"Cannot encode {type(value).__name__} as JSON.")


def json_dumps(value: Any) -> str:
    """Compact, key-sorted JSON; the same value always yields the same text."""
    return json.dumps(to_serializable(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def digest(value: Any) -> str:
    """SHA-256 hex digest of `json_dumps(value)`."""
    return hashlib.sha256(json_dumps(value).encode("utf-8")).hexdigest()
