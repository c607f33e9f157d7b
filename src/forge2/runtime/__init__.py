"""
Forge runtime - tree-walking interpreter for Forge programs.

This module provides:
- Interpreter: Executes programs, drives the event queue, hot-reloads files
- Values: The closed set of runtime values (functions, schemas, instances)
- Environment: Lexically scoped variable bindings
- Events: Handler records and external listener registry
- Builtins: Global functions and standard library namespaces
"""

from .values import (
    ValueKind,
    FunctionValue,
    SchemaValue,
    InstanceValue,
    kind_of,
    is_number,
    is_callable,
    is_truthy,
    values_equal,
    type_name,
    format_number,
    stringify,
)

from .context import (
    Environment,
    Completion,
    CompletionKind,
)

from .events import (
    EventHandler,
    QueuedEvent,
    ListenerRegistry,
    WILDCARD,
    TICK_EVENT,
    RELOAD_EVENT,
)

from .builtins import (
    create_global_bindings,
)

from .interpreter import (
    Interpreter,
)

__all__ = [
    # Values
    "ValueKind",
    "FunctionValue",
    "SchemaValue",
    "InstanceValue",
    "kind_of",
    "is_number",
    "is_callable",
    "is_truthy",
    "values_equal",
    "type_name",
    "format_number",
    "stringify",
    # Context
    "Environment",
    "Completion",
    "CompletionKind",
    # Events
    "EventHandler",
    "QueuedEvent",
    "ListenerRegistry",
    "WILDCARD",
    "TICK_EVENT",
    "RELOAD_EVENT",
    # Builtins
    "create_global_bindings",
    # Interpreter
    "Interpreter",
]
