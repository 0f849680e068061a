"""Module for working with generated element values."""

from collections.abc import Iterable, Mapping
import copy
from typing import Any

from .exceptions import MergeError

__all__ = [
    "deep_merge",
    "contains_element",
]


def deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge two elements, values in override win.

    Nested mappings are merged key by key, any other value (including lists)
    replaces the existing value with a copy. A value of None never replaces an
    existing value. The result shares no nested values with override.
    """
    result = dict(base)
    for key, override_value in override.items():
        base_value = result.get(key)
        if override_value is None and key in result:
            continue
        base_is_map = isinstance(base_value, Mapping)
        override_is_map = isinstance(override_value, Mapping)
        if base_is_map and override_is_map:
            result[key] = deep_merge(dict(base_value), override_value)
        elif base_value is not None and base_is_map != override_is_map:
            raise MergeError(
                f"Unable to merge key {key!r}: cannot merge "
                f"{type(override_value).__name__} into {type(base_value).__name__}"
            )
        elif override_is_map:
            result[key] = deep_merge({}, override_value)
        else:
            result[key] = copy.deepcopy(override_value)
    return result


def contains_element(
    element: dict[str, Any], existing: Iterable[dict[str, Any]]
) -> bool:
    """Return True if a structurally equal element is already present."""
    return any(element == other for other in existing)
