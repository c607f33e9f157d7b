"""
Environments and statement completions for the Forge interpreter.

Environments form a parent chain for lexical scoping. They are shared by
reference: a closure keeps the environment object it was created in, so a
binding made later in that scope is visible to the closure.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import error_undefined_variable
from ..tokens import SourceSpan


@dataclass(eq=False)
class Environment:
    """
    A single scope containing variable bindings.

    Scopes form a chain via the `parent` field for lexical scoping.
    """
    bindings: Dict[str, Any] = field(default_factory=dict)
    parent: Optional["Environment"] = field(default=None, repr=False)
    name: str = "anonymous"  # For debugging

    def lookup(self, name: str, span: Optional[SourceSpan] = None) -> Any:
        """Look up a variable in this scope or parent scopes."""
        env = self
        while env is not None:
            if name in env.bindings:
                return env.bindings[name]
            env = env.parent
        raise error_undefined_variable(name, span)

    def has(self, name: str) -> bool:
        """Check if a variable exists in this scope or parents."""
        env = self
        while env is not None:
            if name in env.bindings:
                return True
            env = env.parent
        return False

    def define(self, name: str, value: Any) -> None:
        """Bind a variable in this scope (shadowing parent if exists)."""
        self.bindings[name] = value

    def assign(self, name: str, value: Any) -> None:
        """
        Update the nearest scope that already binds `name`.

        If no scope binds it, the name is bound in this scope.
        """
        env = self
        while env is not None:
            if name in env.bindings:
                env.bindings[name] = value
                return
            env = env.parent
        self.bindings[name] = value

    def child(self, name: str = "block") -> "Environment":
        """Create a nested scope."""
        return Environment(parent=self, name=name)


class CompletionKind(Enum):
    """How a statement finished."""
    NORMAL = "normal"
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"


@dataclass(frozen=True)
class Completion:
    """
    Result of executing a statement.

    RETURN carries the returned value and is absorbed at function-call and
    event-handler boundaries. BREAK and CONTINUE are absorbed by the
    innermost loop.
    """
    kind: CompletionKind
    value: Any = None

    @property
    def is_normal(self) -> bool:
        return self.kind == CompletionKind.NORMAL

    @classmethod
    def returning(cls, value: Any) -> "Completion":
        return cls(CompletionKind.RETURN, value)


NORMAL = Completion(CompletionKind.NORMAL)
BREAK = Completion(CompletionKind.BREAK)
CONTINUE = Completion(CompletionKind.CONTINUE)
