"""
Runtime values for the Forge interpreter.

Forge values are plain Python objects drawn from a closed set:

    null      None
    boolean   bool
    number    int / float
    string    str
    list      list
    map       dict (str keys)
    native    any Python callable supplied by builtins or host code
    function  FunctionValue
    schema    SchemaValue
    instance  InstanceValue

`kind_of` classifies a value into that set; anything else is rejected.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union

from ..ast import Block, Expression, Parameter, SchemaField
from ..errors import runtime_error


class ValueKind(Enum):
    """The closed set of Forge value kinds."""
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    MAP = "map"
    NATIVE = "native"
    FUNCTION = "function"
    SCHEMA = "schema"
    INSTANCE = "instance"


@dataclass(eq=False)
class FunctionValue:
    """
    A Forge function: declared with `fn name(...)`, a lambda, or a schema method.

    The closure is the defining environment itself, shared rather than
    copied, so later bindings in that scope stay visible to the function.
    """
    params: List[Parameter]
    body: Union[Block, Expression]
    closure: Any = field(repr=False)   # Environment
    name: Optional[str] = None


@dataclass(eq=False)
class SchemaValue:
    """A registered schema: field declarations plus methods."""
    name: str
    extends: Optional[str]
    fields: List[SchemaField] = field(default_factory=list)
    methods: Dict[str, FunctionValue] = field(default_factory=dict)


@dataclass(eq=False)
class InstanceValue:
    """
    A schema instance.

    `mutated_fields` records every field assigned with `set` after
    construction; hot-reload restores exactly those fields.
    """
    schema: str
    data: Dict[str, Any] = field(default_factory=dict)
    mutated_fields: Set[str] = field(default_factory=set)


def is_number(value: Any) -> bool:
    """True for int/float but never for bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def kind_of(value: Any) -> ValueKind:
    """Classify a Python object as a Forge value kind."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.LIST
    if isinstance(value, dict):
        return ValueKind.MAP
    if isinstance(value, FunctionValue):
        return ValueKind.FUNCTION
    if isinstance(value, SchemaValue):
        return ValueKind.SCHEMA
    if isinstance(value, InstanceValue):
        return ValueKind.INSTANCE
    if callable(value):
        return ValueKind.NATIVE
    raise runtime_error(f"Unsupported value of Python type {type(value).__name__}")


def is_callable(value: Any) -> bool:
    """True for language functions and native callables."""
    kind = kind_of(value)
    return kind in (ValueKind.FUNCTION, ValueKind.NATIVE)


def is_truthy(value: Any) -> bool:
    """
    Forge truthiness: null, false, 0, "" and [] are false.

    Everything else is true, including {}, "0" and [0].
    """
    if value is None or value is False:
        return False
    if is_number(value):
        return value != 0
    if isinstance(value, (str, list)):
        return len(value) > 0
    return True


def values_equal(a: Any, b: Any) -> bool:
    """Deep structural equality. Booleans never equal numbers."""
    if a is b:
        return True
    if a is None or b is None:
        return False

    kind_a, kind_b = kind_of(a), kind_of(b)
    if kind_a != kind_b:
        return False

    if kind_a in (ValueKind.BOOLEAN, ValueKind.NUMBER, ValueKind.STRING):
        return a == b
    if kind_a == ValueKind.LIST:
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if kind_a == ValueKind.MAP:
        if len(a) != len(b):
            return False
        return all(key in b and values_equal(a[key], b[key]) for key in a)

    # Functions, schemas and instances compare by identity
    return False


def type_name(value: Any) -> str:
    """Name reported by the `type` builtin."""
    kind = kind_of(value)
    if kind == ValueKind.NATIVE:
        return "function"
    return kind.value


def format_number(value: Union[int, float]) -> str:
    """Format a number the way Forge prints it (3.0 prints as 3)."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def stringify(value: Any) -> str:
    """Convert a value to its display string."""
    kind = kind_of(value)

    if kind == ValueKind.NULL:
        return "null"
    if kind == ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind == ValueKind.NUMBER:
        return format_number(value)
    if kind == ValueKind.STRING:
        return value
    if kind == ValueKind.LIST:
        return "[" + ", ".join(stringify(v) for v in value) + "]"
    if kind == ValueKind.MAP:
        if not value:
            return "{}"
        entries = ", ".join(f"{k}: {stringify(v)}" for k, v in value.items())
        return "{ " + entries + " }"
    if kind == ValueKind.FUNCTION:
        return f"<function {value.name or 'anonymous'}>"
    if kind == ValueKind.NATIVE:
        name = getattr(value, "__name__", None)
        if not name or name == "<lambda>":
            name = "anonymous"
        return f"<function {name}>"
    if kind == ValueKind.SCHEMA:
        return f"<schema {value.name}>"
    return f"<{value.schema} instance>"
