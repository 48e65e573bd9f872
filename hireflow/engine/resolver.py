"""
Field resolution — dot-path lookup into nested event payloads.

    resolve({"candidate": {"skills": ["Go"]}}, "candidate.skills")  ->  ["Go"]
    resolve({"candidate": {}}, "candidate.skills")                  ->  MISSING

MISSING is distinct from None: an explicit null in the payload resolves to
None, an absent key resolves to MISSING, and operators treat them
differently. Lists are returned whole; there is no index syntax.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class _Missing:
    """Sentinel type for an absent field."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def resolve(payload: Any, path: str) -> Any:
    """Walk payload along a dot-separated path. Pure; never raises."""
    value = payload
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return MISSING
        value = value[part]
    return value


def resolve_first(payload: Any, paths: list[str]) -> Any:
    """Resolve the first path that is present, else MISSING."""
    for path in paths:
        value = resolve(payload, path)
        if value is not MISSING:
            return value
    return MISSING
