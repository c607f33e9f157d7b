"""
List utilities for Forge scripts (the `list` namespace).

Functions never modify their list arguments; they return new lists.
Callbacks are called as fn(item, index) (reduce: fn(acc, item, index)).
Forge functions ignore surplus arguments, so fn(x) -> ... works too.
"""

import functools
import math
import random
from typing import Any, Callable, Dict, List

from ..runtime.values import is_truthy, is_number, values_equal, stringify


_MISSING = object()


def list_range(start, end=None, step=1) -> List[Any]:
    """range(n), range(start, end) or range(start, end, step); end exclusive."""
    if end is None:
        start, end = 0, start
    result = []
    i = start
    if step > 0:
        while i < end:
            result.append(i)
            i += step
    elif step < 0:
        while i > end:
            result.append(i)
            i += step
    return result


def repeat(value, count) -> List[Any]:
    return [value] * int(count)


def map_items(items: List[Any], fn: Callable) -> List[Any]:
    return [fn(item, index) for index, item in enumerate(items)]


def filter_items(items: List[Any], fn: Callable) -> List[Any]:
    return [item for index, item in enumerate(items) if is_truthy(fn(item, index))]


def reduce_items(items: List[Any], fn: Callable, initial=_MISSING) -> Any:
    """Fold left; without an initial value the first item seeds the fold."""
    indexed = list(enumerate(items))
    if initial is _MISSING:
        if not indexed:
            return None
        acc = indexed[0][1]
        indexed = indexed[1:]
    else:
        acc = initial
    for index, item in indexed:
        acc = fn(acc, item, index)
    return acc


def flatten(items: List[Any]) -> List[Any]:
    """Flatten one level of nesting."""
    result = []
    for item in items:
        if isinstance(item, list):
            result.extend(item)
        else:
            result.append(item)
    return result


def flat_map(items: List[Any], fn: Callable) -> List[Any]:
    return flatten(map_items(items, fn))


def find(items: List[Any], fn: Callable) -> Any:
    for index, item in enumerate(items):
        if is_truthy(fn(item, index)):
            return item
    return None


def find_index(items: List[Any], fn: Callable) -> int:
    for index, item in enumerate(items):
        if is_truthy(fn(item, index)):
            return index
    return -1


def index_of(items: List[Any], target) -> int:
    for index, item in enumerate(items):
        if values_equal(item, target):
            return index
    return -1


def includes(items: List[Any], target) -> bool:
    return index_of(items, target) >= 0


def every(items: List[Any], fn: Callable) -> bool:
    return all(is_truthy(fn(item, index)) for index, item in enumerate(items))


def some(items: List[Any], fn: Callable) -> bool:
    return any(is_truthy(fn(item, index)) for index, item in enumerate(items))


def concat(*lists) -> List[Any]:
    return flatten(list(lists))


def _index(value) -> int:
    return None if value is None else int(value)


def slice_items(items: List[Any], start=None, end=None) -> List[Any]:
    return items[_index(start):_index(end)]


def splice(items: List[Any], start, delete_count, *inserted) -> List[Any]:
    """Copy of the list with delete_count items at start replaced by inserted."""
    copy = list(items)
    start = int(start)
    if start < 0:
        start = max(len(copy) + start, 0)
    else:
        start = min(start, len(copy))
    copy[start:start + max(int(delete_count), 0)] = list(inserted)
    return copy


def reverse(items: List[Any]) -> List[Any]:
    return list(reversed(items))


def natural_key(value):
    """Sort key: numbers numerically, ahead of everything else by display text."""
    if is_number(value):
        return (0, value, "")
    return (1, 0, stringify(value))


def sort_items(items: List[Any], compare: Callable = None) -> List[Any]:
    """Sorted copy; compare(a, b) returns a negative, zero or positive number."""
    if compare is None:
        return sorted(items, key=natural_key)
    return sorted(items, key=functools.cmp_to_key(lambda a, b: compare(a, b)))


def unique(items: List[Any]) -> List[Any]:
    result = []
    for item in items:
        if not includes(result, item):
            result.append(item)
    return result


def union(a: List[Any], b: List[Any]) -> List[Any]:
    return unique(list(a) + list(b))


def intersection(a: List[Any], b: List[Any]) -> List[Any]:
    return [item for item in a if includes(b, item)]


def difference(a: List[Any], b: List[Any]) -> List[Any]:
    return [item for item in a if not includes(b, item)]


def total(items: List[Any]):
    return sum(items, 0)


def product(items: List[Any]):
    return math.prod(items)


def average(items: List[Any]):
    if not items:
        return 0
    return sum(items, 0) / len(items)


def smallest(items: List[Any]):
    return min(items) if items else math.inf


def largest(items: List[Any]):
    return max(items) if items else -math.inf


def first(items: List[Any]):
    return items[0] if items else None


def last(items: List[Any]):
    return items[-1] if items else None


def at(items: List[Any], index):
    """Item at index; negative indexes count from the end."""
    index = int(index)
    if -len(items) <= index < len(items):
        return items[index]
    return None


def create_list_namespace(rng: random.Random) -> Dict[str, Any]:
    """Build the `list` namespace map; shuffle draws from rng."""

    def shuffle(items: List[Any]) -> List[Any]:
        result = list(items)
        rng.shuffle(result)
        return result

    return {
        # Creation
        "range": list_range,
        "repeat": repeat,

        # Transformation
        "map": map_items,
        "filter": filter_items,
        "reduce": reduce_items,
        "flatMap": flat_map,
        "flatten": flatten,

        # Search
        "find": find,
        "findIndex": find_index,
        "indexOf": index_of,
        "includes": includes,
        "every": every,
        "some": some,

        # Manipulation
        "concat": concat,
        "slice": slice_items,
        "splice": splice,
        "reverse": reverse,
        "sort": sort_items,
        "shuffle": shuffle,

        # Aggregation
        "sum": total,
        "product": product,
        "min": smallest,
        "max": largest,
        "average": average,

        # Set operations
        "unique": unique,
        "union": union,
        "intersection": intersection,
        "difference": difference,

        # Access
        "first": first,
        "last": last,
        "at": at,

        # Info
        "length": len,
        "isEmpty": lambda items: len(items) == 0,
    }
