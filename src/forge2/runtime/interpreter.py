"""
Tree-walking interpreter for Forge 2.

Executes parsed programs against a persistent global environment, keeps
the schema, handler and listener registries, drives the FIFO event queue
and implements the hot-reload protocol.
"""

import logging
import math
import random
import sys
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

from .values import (
    FunctionValue, SchemaValue, InstanceValue,
    is_number, is_truthy, values_equal, type_name, stringify, format_number,
)
from .context import (
    Environment, Completion, CompletionKind, NORMAL, BREAK, CONTINUE,
)
from .events import (
    EventHandler, QueuedEvent, ListenerRegistry, Listener,
    TICK_EVENT, RELOAD_EVENT,
)
from .builtins import create_global_bindings, list_member, string_member

from ..ast import (
    Program, Statement, Block,
    LetStatement, SetStatement, FunctionDeclaration, IfStatement,
    ForStatement, WhileStatement, MatchStatement, ReturnStatement,
    BreakStatement, ContinueStatement, OnStatement, EmitStatement,
    ImportStatement, SchemaDeclaration, InstanceDeclaration, ExpressionStatement,
    Expression, NumberLiteral, StringLiteral, BooleanLiteral, NullLiteral,
    ColorLiteral, Identifier, VectorLiteral, ListLiteral, MapLiteral,
    MemberExpression, CallExpression, BinaryExpression, UnaryExpression,
    ConditionalExpression, LambdaExpression, ReactiveRef,
    Pattern, WildcardPattern, IdentifierPattern, LiteralPattern,
    ListPattern, MapPattern,
)
from ..config import RuntimeConfig
from ..errors import (
    runtime_error,
    error_not_callable,
    error_null_access,
    error_unknown_schema,
    error_missing_field,
    error_loop_limit,
    error_division_by_zero,
    error_call_depth,
)
from ..tokens import SourceSpan

logger = logging.getLogger(__name__)


def _integral(value: Any) -> Optional[int]:
    """Return value as an int if it is a whole number, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _key_string(key: Any) -> str:
    """Map and instance keys are strings; numeric keys use their printed form."""
    if isinstance(key, str):
        return key
    return format_number(key)


def _callee_name(callee: Expression) -> str:
    """Printable name of a call target for error messages."""
    if isinstance(callee, Identifier):
        return callee.name
    if isinstance(callee, MemberExpression) and not callee.computed:
        return f"{_callee_name(callee.object)}.{callee.property}"
    return type(callee).__name__


def _modulo(left, right):
    """Remainder with the sign of the dividend (-7 % 3 == -1)."""
    result = math.fmod(left, right)
    if isinstance(left, int) and isinstance(right, int):
        return int(result)
    return result


class Interpreter:
    """
    Tree-walking interpreter for Forge programs.

    Every registry lives on the instance, so independent interpreters never
    share state.

    Usage:
        interp = Interpreter()
        interp.execute(program, "door.forge")
        interp.emit("interact", {"target": "galley_exit"})
        interp.get("galley_exit")
    """

    def __init__(self, config: Optional[RuntimeConfig] = None, output=None):
        """
        Initialize the interpreter.

        Args:
            config: Runtime settings (loop ceiling, random seed)
            output: Stream used by `print`; defaults to sys.stdout
        """
        self.config = config or RuntimeConfig()
        self.output = output
        self.rng = random.Random(self.config.random_seed)

        self.global_env = Environment(
            create_global_bindings(self._output_stream, self.rng), name="global"
        )
        self.schema_registry: Dict[str, SchemaValue] = {}
        self.handlers: Dict[str, List[EventHandler]] = {}
        self.handlers_by_file: Dict[str, List[EventHandler]] = {}
        self.instances_by_file: Dict[str, List[str]] = {}
        self.imports_by_file: Dict[str, List[ImportStatement]] = {}
        self.listeners = ListenerRegistry()
        self.queue: Deque[QueuedEvent] = deque()
        self.processing = False
        self.current_file: Optional[str] = None
        self.call_depth = 0

        # Each nested Forge call costs a handful of Python frames
        wanted = self.config.max_call_depth * 20 + 1000
        if sys.getrecursionlimit() < wanted:
            sys.setrecursionlimit(wanted)

    def _output_stream(self):
        return self.output if self.output is not None else sys.stdout

    # =========================================================================
    # Public API
    # =========================================================================

    def execute(self, program: Program, filename: Optional[str] = None) -> None:
        """
        Execute a program's body against the global environment.

        Imports are recorded but not resolved. A top-level `return` stops
        the rest of the program.
        """
        previous_file = self.current_file
        self.current_file = filename
        try:
            if filename and program.imports:
                self.imports_by_file[filename] = list(program.imports)
            for imp in program.imports:
                logger.debug("import of %r in %s recorded, not executed", imp.source, filename)

            for stmt in program.body:
                completion = self._execute_statement(stmt, self.global_env)
                if completion.kind == CompletionKind.RETURN:
                    break
        finally:
            self.current_file = previous_file
        logger.debug("executed %s (%d statements)", filename or "<program>", len(program.body))

    def reload(self, program: Program, filename: str) -> None:
        """
        Hot-reload a file.

        The file's handlers and instances are replaced by the new program's,
        but instance fields mutated at runtime keep their current values.
        """
        # 1. Drop this file's event handlers and recorded imports
        old_handlers = self.handlers_by_file.pop(filename, [])
        for handler in old_handlers:
            registered = self.handlers.get(handler.event, [])
            self.handlers[handler.event] = [h for h in registered if h is not handler]
        self.imports_by_file.pop(filename, None)

        # 2. Snapshot runtime-mutated state of this file's instances
        preserved: Dict[str, tuple] = {}
        for name in self.instances_by_file.pop(filename, []):
            instance = self.global_env.bindings.get(name)
            if isinstance(instance, InstanceValue):
                values = {
                    key: instance.data[key]
                    for key in instance.mutated_fields
                    if key in instance.data
                }
                preserved[name] = (values, set(instance.mutated_fields))
            # 3. Remove the old instance binding; it is recreated below
            self.global_env.bindings.pop(name, None)

        # 4. Re-execute the new source
        self.execute(program, filename)

        # 5. Restore mutated fields onto same-named new instances
        restored = 0
        for name, (values, mutated) in preserved.items():
            instance = self.global_env.bindings.get(name)
            if not isinstance(instance, InstanceValue):
                continue
            for key, value in values.items():
                current = instance.data.get(key)
                if isinstance(current, FunctionValue) or callable(current):
                    continue
                instance.data[key] = value
                restored += 1
            instance.mutated_fields = set(mutated)

        logger.debug(
            "reloaded %s: dropped %d handler(s), restored %d field(s) on %d instance(s)",
            filename, len(old_handlers), restored, len(preserved),
        )

        # 6. Let scripts and the host react
        self.emit(RELOAD_EVENT, {"filename": filename})

    def emit(self, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        """
        Queue an event; if no event is being processed, drain the queue now.

        Events emitted while the queue is draining run after the current
        entry, in emission order.
        """
        if not isinstance(event, str):
            raise runtime_error("Event name must be a string")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise runtime_error(f"Event data must be a map, got {type_name(data)}")

        self.queue.append(QueuedEvent(event, data))
        if not self.processing:
            self._process_queue()

    def on_event(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register an external listener; returns an unsubscribe function."""
        return self.listeners.add(event, listener)

    def get(self, name: str) -> Any:
        """Get a global value (raises if undefined)."""
        return self.global_env.lookup(name)

    def set(self, name: str, value: Any) -> None:
        """Bind a global value (host-injected namespaces, state, ...)."""
        self.global_env.define(name, value)

    def tick(self, dt: float) -> None:
        """Advance one frame: emits `tick` with {dt}."""
        self.emit(TICK_EVENT, {"dt": dt})

    def schemas(self) -> Dict[str, SchemaValue]:
        """Copy of the registered schemas."""
        return dict(self.schema_registry)

    def globals(self) -> Dict[str, Any]:
        """Copy of the global bindings."""
        return dict(self.global_env.bindings)

    def call(self, function: Any, *args: Any) -> Any:
        """Call a Forge function (or native callable) from host code."""
        if isinstance(function, FunctionValue):
            return self.call_function(function, list(args))
        if callable(function):
            return self._call_native(function, list(args), getattr(function, "__name__", "native"))
        raise error_not_callable(type_name(function))

    # =========================================================================
    # Event Processing
    # =========================================================================

    def _process_queue(self) -> None:
        self.processing = True
        try:
            while self.queue:
                self._dispatch(self.queue.popleft())
        except Exception:
            # A failed dispatch abandons whatever was still pending
            self.queue.clear()
            raise
        finally:
            self.processing = False

    def _dispatch(self, entry: QueuedEvent) -> None:
        """Deliver one event: external listeners first, then script handlers."""
        handlers = list(self.handlers.get(entry.name, ()))
        logger.debug("dispatching %r to %d handler(s)", entry.name, len(handlers))

        self.listeners.notify(entry.name, entry.data)

        for handler in handlers:
            if handler.condition is not None:
                guard_env = handler.environment.child("event-guard")
                guard_env.define("event", entry.data)
                if not is_truthy(self._evaluate(handler.condition, guard_env)):
                    continue

            handler_env = handler.environment.child("handler")
            handler_env.define("event", entry.data)
            # A RETURN completion just ends the handler
            self._execute_block(handler.body, handler_env)

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_block(self, block: Block, env: Environment) -> Completion:
        """Execute statements until one completes abruptly."""
        for stmt in block.statements:
            completion = self._execute_statement(stmt, env)
            if not completion.is_normal:
                return completion
        return NORMAL

    def _execute_statement(self, stmt: Statement, env: Environment) -> Completion:
        """Execute a statement."""
        if isinstance(stmt, LetStatement):
            env.define(stmt.name, self._evaluate(stmt.value, env))
        elif isinstance(stmt, SetStatement):
            self._execute_set(stmt, env)
        elif isinstance(stmt, FunctionDeclaration):
            env.define(stmt.name, FunctionValue(stmt.params, stmt.body, env, stmt.name))
        elif isinstance(stmt, IfStatement):
            return self._execute_if(stmt, env)
        elif isinstance(stmt, ForStatement):
            return self._execute_for(stmt, env)
        elif isinstance(stmt, WhileStatement):
            return self._execute_while(stmt, env)
        elif isinstance(stmt, MatchStatement):
            return self._execute_match(stmt, env)
        elif isinstance(stmt, ReturnStatement):
            value = None if stmt.argument is None else self._evaluate(stmt.argument, env)
            return Completion.returning(value)
        elif isinstance(stmt, BreakStatement):
            return BREAK
        elif isinstance(stmt, ContinueStatement):
            return CONTINUE
        elif isinstance(stmt, OnStatement):
            self._execute_on(stmt, env)
        elif isinstance(stmt, EmitStatement):
            self._execute_emit(stmt, env)
        elif isinstance(stmt, SchemaDeclaration):
            self._execute_schema(stmt, env)
        elif isinstance(stmt, InstanceDeclaration):
            self._execute_instance(stmt, env)
        elif isinstance(stmt, ExpressionStatement):
            self._evaluate(stmt.expression, env)
        elif isinstance(stmt, ImportStatement):
            logger.debug("import of %r recorded, not executed", stmt.source)
        elif isinstance(stmt, Block):
            return self._execute_block(stmt, env.child())
        else:
            raise RuntimeError(f"Unknown statement type: {type(stmt).__name__}")
        return NORMAL

    def _execute_set(self, stmt: SetStatement, env: Environment) -> None:
        """Execute `set target: value`."""
        value = self._evaluate(stmt.value, env)
        target = stmt.target

        if isinstance(target, Identifier):
            env.assign(target.name, value)
        elif isinstance(target, MemberExpression):
            self._assign_member(target, value, env)
        elif isinstance(target, ReactiveRef):
            self._assign_reactive(target, value)
        else:
            raise runtime_error(f"Invalid set target: {type(target).__name__}", stmt.span)

    def _execute_if(self, stmt: IfStatement, env: Environment) -> Completion:
        if is_truthy(self._evaluate(stmt.test, env)):
            return self._execute_block(stmt.consequent, env.child("if"))
        if isinstance(stmt.alternate, IfStatement):
            return self._execute_if(stmt.alternate, env)
        if stmt.alternate is not None:
            return self._execute_block(stmt.alternate, env.child("else"))
        return NORMAL

    def _check_loop_limit(self, iterations: int, span: SourceSpan) -> None:
        limit = self.config.max_loop_iterations
        if limit is not None and iterations > limit:
            raise error_loop_limit(limit, span)

    def _execute_for(self, stmt: ForStatement, env: Environment) -> Completion:
        """Execute a for loop over a snapshot of the list."""
        iterable = self._evaluate(stmt.iterable, env)
        if not isinstance(iterable, list):
            raise runtime_error("For loop requires an iterable (list)", stmt.iterable.span)

        for iterations, item in enumerate(list(iterable), start=1):
            self._check_loop_limit(iterations, stmt.span)
            loop_env = env.child("for")
            loop_env.define(stmt.variable, item)
            completion = self._execute_block(stmt.body, loop_env)
            if completion.kind == CompletionKind.BREAK:
                break
            if completion.kind == CompletionKind.RETURN:
                return completion
        return NORMAL

    def _execute_while(self, stmt: WhileStatement, env: Environment) -> Completion:
        iterations = 0
        while is_truthy(self._evaluate(stmt.test, env)):
            iterations += 1
            self._check_loop_limit(iterations, stmt.span)
            completion = self._execute_block(stmt.body, env.child("while"))
            if completion.kind == CompletionKind.BREAK:
                break
            if completion.kind == CompletionKind.RETURN:
                return completion
        return NORMAL

    def _execute_match(self, stmt: MatchStatement, env: Environment) -> Completion:
        """Run the first case whose pattern matches and whose guard holds."""
        value = self._evaluate(stmt.discriminant, env)

        for case in stmt.cases:
            case_env = env.child("match")
            if not self._match_pattern(case.pattern, value, case_env):
                continue
            if case.guard is not None and not is_truthy(self._evaluate(case.guard, case_env)):
                continue
            return self._execute_block(case.body, case_env)

        return NORMAL

    def _execute_on(self, stmt: OnStatement, env: Environment) -> None:
        """Register an event handler, tracked by the file being executed."""
        event = self._evaluate(stmt.event, env)
        if not isinstance(event, str):
            raise runtime_error("Event name must be a string", stmt.event.span)

        handler = EventHandler(event, stmt.condition, stmt.body, env, self.current_file)
        self.handlers.setdefault(event, []).append(handler)
        if self.current_file:
            self.handlers_by_file.setdefault(self.current_file, []).append(handler)

    def _execute_emit(self, stmt: EmitStatement, env: Environment) -> None:
        event = self._evaluate(stmt.event, env)
        if not isinstance(event, str):
            raise runtime_error("Event name must be a string", stmt.event.span)
        data = {} if stmt.data is None else self._evaluate(stmt.data, env)
        self.emit(event, data)

    def _execute_schema(self, stmt: SchemaDeclaration, env: Environment) -> None:
        """Register a schema; its methods close over the defining environment."""
        methods = {
            method.name: FunctionValue(method.params, method.body, env, method.name)
            for method in stmt.methods
        }
        schema = SchemaValue(stmt.name, stmt.extends, list(stmt.fields), methods)
        self.schema_registry[stmt.name] = schema
        env.define(stmt.name, schema)

    def _execute_instance(self, stmt: InstanceDeclaration, env: Environment) -> None:
        """Construct a schema instance: defaults, explicit fields, validation, methods."""
        schema = self.schema_registry.get(stmt.schema)
        if schema is None:
            raise error_unknown_schema(stmt.schema, stmt.span)

        data: Dict[str, Any] = {}
        for schema_field in schema.fields:
            if schema_field.default is not None:
                data[schema_field.name] = self._evaluate(schema_field.default, env)

        for key, value_expr in stmt.fields.items():
            data[key] = self._evaluate(value_expr, env)

        for schema_field in schema.fields:
            if schema_field.required and schema_field.name not in data:
                raise error_missing_field(schema_field.name, stmt.schema, stmt.name, stmt.span)

        instance = InstanceValue(stmt.schema, data)
        for method_name, method in schema.methods.items():
            data[method_name] = self._bind_method(method, instance)

        env.define(stmt.name, instance)
        if self.current_file:
            self.instances_by_file.setdefault(self.current_file, []).append(stmt.name)

    def _bind_method(self, method: FunctionValue, instance: InstanceValue) -> FunctionValue:
        """Layer a {self: instance} scope over the method's closure."""
        closure = Environment({"self": instance}, parent=method.closure, name="method")
        return FunctionValue(method.params, method.body, closure, method.name)

    # =========================================================================
    # Assignment
    # =========================================================================

    def _member_key(self, expr: MemberExpression, env: Environment) -> Any:
        if not expr.computed:
            return expr.property
        key = self._evaluate(expr.property, env)
        if not isinstance(key, str) and not is_number(key):
            raise runtime_error("Property key must be a string or number", expr.property.span)
        return key

    def _assign_member(self, target: MemberExpression, value: Any, env: Environment) -> None:
        """Execute `set obj.key: value` / `set obj[key]: value`."""
        obj = self._evaluate(target.object, env)
        if obj is None:
            raise error_null_access(target.span, assign=True)
        key = self._member_key(target, env)

        if isinstance(obj, list):
            self._assign_list_index(obj, key, value, target.span)
        elif isinstance(obj, InstanceValue):
            name = _key_string(key)
            obj.data[name] = value
            obj.mutated_fields.add(name)
        elif isinstance(obj, dict):
            obj[_key_string(key)] = value
        else:
            raise runtime_error(
                f'Cannot assign property "{_key_string(key)}" on {type_name(obj)}', target.span
            )

    def _assign_list_index(self, items: list, key: Any, value: Any, span: SourceSpan) -> None:
        """Replace an existing element, or append when the index equals the length."""
        index = _integral(key)
        if index is None:
            raise runtime_error(f"List index must be an integer, got {stringify(key)}", span)
        if 0 <= index < len(items):
            items[index] = value
        elif index == len(items):
            items.append(value)
        else:
            raise runtime_error(f"List index {index} out of range", span)

    def _assign_reactive(self, ref: ReactiveRef, value: Any) -> None:
        """Execute `set $a.b.c: value`, navigating from the globals."""
        path = ref.path
        if len(path) == 1:
            self.global_env.define(path[0], value)
            return

        current = self.global_env.bindings.get(path[0])
        for depth, key in enumerate(path[1:-1], start=2):
            if current is None or not isinstance(current, (InstanceValue, list, dict)):
                raise runtime_error(f"Cannot navigate to {'.'.join(path[:depth])}", ref.span)
            current = self._navigate(current, key)

        last = path[-1]
        if isinstance(current, InstanceValue):
            current.data[last] = value
            current.mutated_fields.add(last)
        elif isinstance(current, list) and last.isdigit():
            self._assign_list_index(current, int(last), value, ref.span)
        elif isinstance(current, dict):
            current[last] = value
        else:
            raise runtime_error(f"Cannot set {'.'.join(path)}", ref.span)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, env: Environment) -> Any:
        """Evaluate an expression."""
        if isinstance(expr, (NumberLiteral, StringLiteral, BooleanLiteral, ColorLiteral)):
            return expr.value
        elif isinstance(expr, NullLiteral):
            return None
        elif isinstance(expr, Identifier):
            return env.lookup(expr.name, expr.span)
        elif isinstance(expr, (VectorLiteral, ListLiteral)):
            return [self._evaluate(element, env) for element in expr.elements]
        elif isinstance(expr, MapLiteral):
            return self._evaluate_map(expr, env)
        elif isinstance(expr, MemberExpression):
            return self._evaluate_member(expr, env)
        elif isinstance(expr, CallExpression):
            return self._evaluate_call(expr, env)
        elif isinstance(expr, BinaryExpression):
            return self._evaluate_binary(expr, env)
        elif isinstance(expr, UnaryExpression):
            return self._evaluate_unary(expr, env)
        elif isinstance(expr, ConditionalExpression):
            if is_truthy(self._evaluate(expr.test, env)):
                return self._evaluate(expr.consequent, env)
            return self._evaluate(expr.alternate, env)
        elif isinstance(expr, LambdaExpression):
            return FunctionValue(expr.params, expr.body, env)
        elif isinstance(expr, ReactiveRef):
            return self._evaluate_reactive(expr)
        else:
            raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    def _evaluate_map(self, expr: MapLiteral, env: Environment) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for entry in expr.entries:
            key = entry.key if isinstance(entry.key, str) else self._evaluate(entry.key, env)
            if not isinstance(key, str):
                raise runtime_error("Map keys must be strings", entry.span)
            result[key] = self._evaluate(entry.value, env)
        return result

    def _evaluate_member(self, expr: MemberExpression, env: Environment) -> Any:
        """Evaluate `obj.name` or `obj[key]`."""
        obj = self._evaluate(expr.object, env)
        if obj is None:
            raise error_null_access(expr.span)
        key = self._member_key(expr, env)

        if isinstance(obj, list):
            if is_number(key):
                return self._index(obj, key)
            return list_member(obj, key)
        if isinstance(obj, InstanceValue):
            return obj.data.get(_key_string(key))
        if isinstance(obj, dict):
            return obj.get(_key_string(key))
        if isinstance(obj, str):
            if is_number(key):
                return self._index(obj, key)
            return string_member(obj, key)

        raise runtime_error(
            f'Cannot access property "{_key_string(key)}" on {type_name(obj)}', expr.span
        )

    @staticmethod
    def _index(sequence, key) -> Any:
        """Element at a whole-number index, or null when out of range."""
        index = _integral(key)
        if index is None or not 0 <= index < len(sequence):
            return None
        return sequence[index]

    def _evaluate_call(self, expr: CallExpression, env: Environment) -> Any:
        callee = self._evaluate(expr.callee, env)
        args = [self._evaluate(arg, env) for arg in expr.arguments]

        if isinstance(callee, FunctionValue):
            return self.call_function(callee, args, expr.span)
        if callable(callee):
            return self._call_native(callee, [self._to_native(arg) for arg in args],
                                     _callee_name(expr.callee), expr.span)

        raise error_not_callable(type(expr.callee).__name__, expr.span)

    def _call_native(self, native: Callable, args: List[Any], name: str,
                     span: Optional[SourceSpan] = None) -> Any:
        """Call a Python callable, reporting its failures as Forge runtime errors."""
        try:
            return native(*args)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise runtime_error(f"Error in {name}(): {e}", span) from e

    def _to_native(self, value: Any) -> Any:
        """Wrap Forge functions so native code can call them like Python callables."""
        if not isinstance(value, FunctionValue):
            return value

        def forge_callback(*args):
            return self.call_function(value, list(args))

        forge_callback.__name__ = value.name or "anonymous"
        return forge_callback

    def call_function(self, fn: FunctionValue, args: List[Any],
                      span: Optional[SourceSpan] = None) -> Any:
        """
        Call a Forge function.

        Missing arguments take their default (evaluated in the closure) or
        null; surplus arguments are ignored. Nesting deeper than
        max_call_depth raises E408.
        """
        limit = self.config.max_call_depth
        if self.call_depth >= limit:
            raise error_call_depth(limit, span)

        self.call_depth += 1
        try:
            return self._invoke(fn, args)
        finally:
            self.call_depth -= 1

    def _invoke(self, fn: FunctionValue, args: List[Any]) -> Any:
        call_env = fn.closure.child(fn.name or "lambda")
        for index, param in enumerate(fn.params):
            if index < len(args):
                value = args[index]
            elif param.default is not None:
                value = self._evaluate(param.default, fn.closure)
            else:
                value = None
            call_env.define(param.name, value)

        if isinstance(fn.body, Block):
            completion = self._execute_block(fn.body, call_env)
            if completion.kind == CompletionKind.RETURN:
                return completion.value
            return None
        return self._evaluate(fn.body, call_env)

    def _evaluate_binary(self, expr: BinaryExpression, env: Environment) -> Any:
        """Evaluate a binary operation."""
        op = expr.operator

        # Logical operators short-circuit and always yield booleans
        if op == "and":
            return is_truthy(self._evaluate(expr.left, env)) and is_truthy(self._evaluate(expr.right, env))
        if op == "or":
            return is_truthy(self._evaluate(expr.left, env)) or is_truthy(self._evaluate(expr.right, env))

        left = self._evaluate(expr.left, env)
        right = self._evaluate(expr.right, env)

        if op == "==":
            return values_equal(left, right)
        if op == "!=":
            return not values_equal(left, right)

        if op == "+":
            if isinstance(left, str) or isinstance(right, str):
                return stringify(left) + stringify(right)
            if isinstance(left, list) and isinstance(right, list):
                return left + right

        if op in ("<", ">", "<=", ">="):
            both_numbers = is_number(left) and is_number(right)
            both_strings = isinstance(left, str) and isinstance(right, str)
            if not (both_numbers or both_strings):
                raise runtime_error(
                    f"Cannot compare {type_name(left)} and {type_name(right)}", expr.span
                )
            if op == "<":
                return left < right
            if op == ">":
                return left > right
            if op == "<=":
                return left <= right
            return left >= right

        if not (is_number(left) and is_number(right)):
            raise runtime_error(
                f"Unsupported operand types for {op}: {type_name(left)} and {type_name(right)}",
                expr.span,
            )

        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if op == "/":
            if right == 0:
                raise error_division_by_zero(expr.span)
            return left / right
        if op == "%":
            if right == 0:
                raise error_division_by_zero(expr.span)
            return _modulo(left, right)

        raise RuntimeError(f"Unknown operator: {op}")

    def _evaluate_unary(self, expr: UnaryExpression, env: Environment) -> Any:
        value = self._evaluate(expr.operand, env)
        if expr.operator == "not":
            return not is_truthy(value)
        if expr.operator == "-":
            if not is_number(value):
                raise runtime_error(f"Cannot negate {type_name(value)}", expr.span)
            return -value
        raise RuntimeError(f"Unknown unary operator: {expr.operator}")

    def _navigate(self, value: Any, key: str) -> Any:
        """One step of a reactive path; null when the step does not resolve."""
        if isinstance(value, InstanceValue):
            return value.data.get(key)
        if isinstance(value, list):
            return self._index(value, int(key)) if key.isdigit() else None
        if isinstance(value, dict):
            return value.get(key)
        return None

    def _evaluate_reactive(self, ref: ReactiveRef) -> Any:
        """Read `$a.b.c` from the globals; missing segments give null."""
        value = self.global_env.bindings.get(ref.path[0])
        for key in ref.path[1:]:
            if value is None:
                return None
            value = self._navigate(value, key)
        return value

    # =========================================================================
    # Pattern Matching
    # =========================================================================

    def _match_pattern(self, pattern: Pattern, value: Any, env: Environment) -> bool:
        """Test a pattern, binding captured names into env."""
        if isinstance(pattern, WildcardPattern):
            return True
        if isinstance(pattern, IdentifierPattern):
            env.define(pattern.name, value)
            return True
        if isinstance(pattern, LiteralPattern):
            return values_equal(self._evaluate(pattern.value, env), value)
        if isinstance(pattern, ListPattern):
            if not isinstance(value, list) or len(value) != len(pattern.elements):
                return False
            return all(
                self._match_pattern(element, item, env)
                for element, item in zip(pattern.elements, value)
            )
        if isinstance(pattern, MapPattern):
            if not isinstance(value, dict):
                return False
            return all(
                key in value and self._match_pattern(sub_pattern, value[key], env)
                for key, sub_pattern in pattern.entries
            )
        raise RuntimeError(f"Unknown pattern type: {type(pattern).__name__}")
