"""Field access helpers for decoded JSON responses."""

from typing import Any

from transit_bridge.domain.errors import MalformedResponseError


def require(data: Any, key: str) -> Any:
    """Return ``data[key]`` or fail with the offending fragment."""
    if not isinstance(data, dict):
        raise MalformedResponseError(f"Expected an object holding '{key}'", data)
    if key not in data or data[key] is None:
        raise MalformedResponseError(f"Missing '{key}'", data)
    return data[key]


def require_index(items: Any, index: Any, what: str) -> Any:
    """Return ``items[index]`` for a reference index carried in a response."""
    if not isinstance(items, list) or not isinstance(index, int) or not 0 <= index < len(items):
        raise MalformedResponseError(f"Invalid {what} reference", index)
    return items[index]


def empty_to_none(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None
