"""Deterministic ordering of hooks and metadata extractors.

Objects declare their position through an integer ``priority`` class attribute.
Higher priorities run first; ties are broken on the fully-qualified class name so
the order is reproducible from one run to the next.
"""

from __future__ import annotations

import functools
from typing import Iterable, List, TypeVar

DEFAULT_PRIORITY = 0

T = TypeVar("T")


def get_priority(obj: object) -> int:
    return int(getattr(type(obj), "priority", DEFAULT_PRIORITY))


def qualified_name(obj: object) -> str:
    cls = type(obj)
    return f"{cls.__module__}.{cls.__qualname__}"


def compare_by_priority(left: object, right: object) -> int:
    left_priority = get_priority(left)
    right_priority = get_priority(right)
    if left_priority < right_priority:
        return 1
    if left_priority > right_priority:
        return -1
    left_name = qualified_name(left)
    right_name = qualified_name(right)
    if left_name < right_name:
        return -1
    if left_name > right_name:
        return 1
    return 0


def sort_by_priority(items: Iterable[T]) -> List[T]:
    return sorted(items, key=functools.cmp_to_key(compare_by_priority))
