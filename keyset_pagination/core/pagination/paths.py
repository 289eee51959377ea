"""Dot-path access into nested plain data.

Sort keys, filters and order declarations all address fields with
dot-separated paths such as ``"parent1.parent2.id"``. These helpers read
and write such paths inside nested mappings.

Example:
    data = {"name": "Joe", "parent1": {"age": 48}}
    get_path(data, "parent1.age")      # 48
    get_path(data, "parent2.name")     # None

    where = set_path({}, "parent1.age", {"$lt": 48})
    # {"parent1": {"age": {"$lt": 48}}}
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any, TypeVar

PATH_SEPARATOR = "."

M = TypeVar("M", bound=MutableMapping[str, Any])


def split_path(path: str) -> list[str]:
    """Split a dot-path into its segments."""
    return path.split(PATH_SEPARATOR)


def join_path(*segments: str) -> str:
    """Join segments into a dot-path."""
    return PATH_SEPARATOR.join(segments)


def get_path(root: Any, path: str) -> Any:
    """Read the value stored at ``path``.

    Walks mappings by key and other objects by attribute. Returns None as
    soon as a segment is missing, so absent and null values are the same
    thing to callers.

    Args:
        root: Nested structure to read from
        path: Dot-separated field path

    Returns:
        The value at the path, or None
    """
    current = root
    for segment in split_path(path):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(segment)
        else:
            current = getattr(current, segment, None)
    return current


def set_path(root: M, path: str, value: Any) -> M:
    """Write ``value`` at ``path``, creating intermediate dicts as needed.

    Missing (or None) intermediate containers are replaced by empty dicts.
    The root is mutated in place and returned for chaining.

    Args:
        root: Mapping to write into
        path: Dot-separated field path
        value: Value stored at the final segment

    Returns:
        The same ``root`` object
    """
    *parents, leaf = split_path(path)
    current: MutableMapping[str, Any] = root
    for segment in parents:
        child = current.get(segment)
        if not isinstance(child, MutableMapping):
            child = {}
            current[segment] = child
        current = child
    current[leaf] = value
    return root


__all__ = ["PATH_SEPARATOR", "get_path", "join_path", "set_path", "split_path"]
