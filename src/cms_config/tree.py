"""Copying operations over nested configuration mappings.

Configuration documents are plain dicts that are never mutated once
published. The helpers here always return new structures and leave their
arguments untouched.
"""

import copy
from typing import Any, Mapping, Sequence


def deep_merge(left: Mapping[str, Any], right: Mapping[str, Any]) -> dict:
    """Recursively merge ``right`` over ``left``.

    Conflict policy:
        - both values are mappings: merged recursively
        - otherwise the right-hand value wins; sequences replace rather
          than concatenate

    Example:
        >>> deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4})
        {'a': 1, 'b': 3, 'c': 4}
    """
    merged = copy.deepcopy(dict(left or {}))
    for key, value in (right or {}).items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def get_in(tree: Mapping[str, Any], path: Sequence[str], default: Any = None) -> Any:
    """Read a nested value, returning ``default`` when any step is missing."""
    node: Any = tree
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return default
        node = node[key]
    return node


def set_in(tree: Mapping[str, Any], path: Sequence[str], value: Any) -> dict:
    """Return a copy of ``tree`` with ``value`` stored at ``path``.

    Missing or non-mapping intermediate nodes are replaced by empty dicts.
    """
    if not path:
        raise ValueError("path must not be empty")

    result = dict(tree or {})
    head, rest = path[0], path[1:]
    if rest:
        child = result.get(head)
        result[head] = set_in(child if isinstance(child, Mapping) else {}, rest, value)
    else:
        result[head] = value
    return result
