"""
Global built-in functions available in every Forge environment.

The standard library namespaces (vec, math, list, string, random) are
merged in after the plain builtins, so `random` names the namespace
rather than a bare function; `random.random()` gives a float in [0, 1).
"""

import math
from typing import Any, Callable, Dict, TextIO

from .values import InstanceValue, stringify, type_name
from ..stdlib import create_stdlib_bindings, listlib, stringlib
from ..stdlib.mathlib import round_half_up, minimum, maximum


def builtin_len(value: Any) -> int:
    """Length of a list, string, map or instance; 0 for anything else."""
    if isinstance(value, InstanceValue):
        return len(value.data)
    if isinstance(value, (list, str, dict)):
        return len(value)
    return 0


def builtin_keys(value: Any) -> list:
    if isinstance(value, InstanceValue):
        return list(value.data.keys())
    if isinstance(value, dict):
        return list(value.keys())
    return []


def builtin_values(value: Any) -> list:
    if isinstance(value, InstanceValue):
        return list(value.data.values())
    if isinstance(value, dict):
        return list(value.values())
    return []


def make_print(output: Callable[[], TextIO]) -> Callable[..., None]:
    """Create the `print` builtin writing to the stream returned by output()."""

    def builtin_print(*args) -> None:
        print(" ".join(stringify(arg) for arg in args), file=output())
        return None

    builtin_print.__name__ = "print"
    return builtin_print


def create_global_bindings(output: Callable[[], TextIO], rng) -> Dict[str, Any]:
    """
    Build the bindings of a fresh global environment.

    Args:
        output: Returns the stream `print` writes to (looked up per call)
        rng: random.Random shared by the list and random namespaces
    """
    bindings: Dict[str, Any] = {
        "print": make_print(output),
        "len": builtin_len,
        "type": type_name,
        "keys": builtin_keys,
        "values": builtin_values,

        # Math
        "abs": abs,
        "floor": math.floor,
        "ceil": math.ceil,
        "round": round_half_up,
        "min": minimum,
        "max": maximum,
        "sqrt": math.sqrt,
        "sin": math.sin,
        "cos": math.cos,
        "tan": math.tan,
        "PI": math.pi,
    }

    # Standard library namespaces; `random` is the namespace, not a function
    bindings.update(create_stdlib_bindings(rng))
    return bindings


# =============================================================================
# Members of list and string values (items.push(x), name.toUpperCase(), ...)
# =============================================================================

def list_member(items: list, name: str) -> Any:
    """Resolve `items.name`; unknown members are null."""
    if name == "length":
        return len(items)

    def push(item) -> int:
        items.append(item)
        return len(items)

    def pop():
        return items.pop() if items else None

    def shift():
        return items.pop(0) if items else None

    def unshift(item) -> int:
        items.insert(0, item)
        return len(items)

    def join(separator=",") -> str:
        return separator.join(stringify(item) for item in items)

    def concat(other) -> list:
        if isinstance(other, list):
            return items + other
        return items + [other]

    members = {
        "push": push,
        "pop": pop,
        "shift": shift,
        "unshift": unshift,
        "slice": lambda start=None, end=None: listlib.slice_items(items, start, end),
        "concat": concat,
        "indexOf": lambda item: listlib.index_of(items, item),
        "includes": lambda item: listlib.includes(items, item),
        "join": join,
        "reverse": lambda: listlib.reverse(items),
        "sort": lambda compare=None: listlib.sort_items(items, compare),
    }
    return members.get(name)


def string_member(text: str, name: str) -> Any:
    """Resolve `text.name`; unknown members are null."""
    if name == "length":
        return len(text)

    members = {
        "toUpperCase": lambda: text.upper(),
        "toLowerCase": lambda: text.lower(),
        "trim": lambda: text.strip(),
        "split": lambda separator=None: stringlib.split(text, separator),
        "includes": lambda search: search in text,
        "startsWith": lambda search: text.startswith(search),
        "endsWith": lambda search: text.endswith(search),
        "slice": lambda start=None, end=None: stringlib.slice_string(text, start, end),
        "replace": lambda search, replacement: text.replace(search, replacement, 1),
    }
    return members.get(name)
