"""Recursive structural diff for nested index mappings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def _as_keyed(value: Any) -> Mapping[Any, Any] | None:
    """Expose dicts as-is and lists by position so both compare key by key."""
    if isinstance(value, Mapping):
        return value
    if isinstance(value, (list, tuple)):
        return dict(enumerate(value))
    return None


def diff_assoc_recursive(left: Mapping[str, Any], right: Mapping[str, Any]) -> dict[Any, Any]:
    """
    Return every entry of ``left`` that is missing from or different in ``right``.

    Nested containers are compared recursively and only the differing part of
    a nested entry is reported. Scalars compare by value.
    """
    difference: dict[Any, Any] = {}
    for key, value in left.items():
        if key not in right:
            difference[key] = value
            continue

        other = right[key]
        nested_left = _as_keyed(value)
        nested_right = _as_keyed(other)
        if nested_left is not None and nested_right is not None:
            nested = diff_assoc_recursive(nested_left, nested_right)
            if nested:
                difference[key] = nested
        elif nested_left is not None or nested_right is not None or value != other:
            difference[key] = value
    return difference


def mapping_diff(expected: Mapping[str, Any], current: Mapping[str, Any]) -> dict[str, dict[Any, Any]]:
    """Return both directions of the diff between two mappings."""
    return {
        "added_or_changed": diff_assoc_recursive(expected, current),
        "removed_or_changed": diff_assoc_recursive(current, expected),
    }


def mappings_differ(expected: Mapping[str, Any], current: Mapping[str, Any]) -> bool:
    """Return True unless both diff directions are empty."""
    return any(mapping_diff(expected, current).values())
