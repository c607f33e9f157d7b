"""
Tests for the Forge runtime (interpreter, values, environments).
"""

import io
import math
import textwrap

import pytest
from forge2 import (
    Interpreter, RuntimeConfig, ForgeRuntimeError, InstanceValue, FunctionValue,
    compile_program, run, is_truthy, values_equal, stringify,
)
from forge2.runtime import Environment, Completion, CompletionKind, type_name


def execute(source: str, **kwargs) -> Interpreter:
    """Execute dedented source in a fresh interpreter."""
    interp = Interpreter(**kwargs)
    interp.execute(compile_program(textwrap.dedent(source), "test.forge"), "test.forge")
    return interp


def evaluate(expression: str):
    """Value of a single expression."""
    return execute(f"let result = {expression}").get("result")


# --- Value Tests ---

class TestValues:
    """Test value helpers."""

    @pytest.mark.parametrize("value", [None, False, 0, 0.0, "", []])
    def test_falsy_values(self, value):
        """null, false, 0, "" and [] are false."""
        assert is_truthy(value) is False

    @pytest.mark.parametrize("value", ["0", [0], {}, True, 1, -0.5, "false"])
    def test_truthy_values(self, value):
        """Everything else is true, including {} and "0"."""
        assert is_truthy(value) is True

    def test_values_equal_deep(self):
        """Lists and maps compare structurally."""
        assert values_equal([1, [2, {"a": 3}]], [1, [2, {"a": 3}]])
        assert not values_equal([1, 2], [1, 2, 3])
        assert not values_equal({"a": 1}, {"b": 1})

    def test_values_equal_bool_is_not_number(self):
        """true never equals 1."""
        assert not values_equal(True, 1)
        assert not values_equal(0, False)
        assert values_equal(1, 1.0)

    def test_instances_compare_by_identity(self):
        """Two instances with equal data are different values."""
        a = InstanceValue("door", {"x": 1})
        b = InstanceValue("door", {"x": 1})
        assert values_equal(a, a)
        assert not values_equal(a, b)

    def test_stringify(self):
        """Display strings."""
        assert stringify(None) == "null"
        assert stringify(True) == "true"
        assert stringify(2.0) == "2"
        assert stringify(2.5) == "2.5"
        assert stringify(float("nan")) == "NaN"
        assert stringify(-math.inf) == "-Infinity"
        assert stringify([1, "a", None]) == "[1, a, null]"
        assert stringify({}) == "{}"
        assert stringify({"a": 1, "b": [2]}) == "{ a: 1, b: [2] }"

    def test_type_names(self):
        """type() names every value kind."""
        assert type_name(None) == "null"
        assert type_name(1.5) == "number"
        assert type_name(False) == "boolean"
        assert type_name({}) == "map"
        assert type_name(print) == "function"

    def test_unsupported_python_value(self):
        """Values outside the closed set are rejected."""
        with pytest.raises(ForgeRuntimeError):
            type_name(object())


# --- Environment Tests ---

class TestEnvironment:
    """Test scope chains."""

    def test_lookup_walks_parents(self):
        """Lookup finds bindings in enclosing scopes."""
        parent = Environment(name="global")
        parent.define("x", 1)
        child = parent.child()
        assert child.lookup("x") == 1
        assert child.has("x")

    def test_define_shadows(self):
        """define always binds in the current scope."""
        parent = Environment()
        parent.define("x", 1)
        child = parent.child()
        child.define("x", 2)
        assert child.lookup("x") == 2
        assert parent.lookup("x") == 1

    def test_assign_updates_nearest(self):
        """assign mutates the scope that already binds the name."""
        parent = Environment()
        parent.define("x", 1)
        child = parent.child()
        child.assign("x", 5)
        assert parent.lookup("x") == 5
        assert "x" not in child.bindings

    def test_assign_falls_back_to_current(self):
        """assign to an unknown name creates it in the current scope."""
        parent = Environment()
        child = parent.child()
        child.assign("y", 3)
        assert child.bindings["y"] == 3
        assert not parent.has("y")

    def test_undefined_lookup(self):
        """Undefined names raise E401."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            Environment().lookup("nope")
        assert exc_info.value.code == "E401"

    def test_completion(self):
        """Completion records carry the returned value."""
        completion = Completion.returning(42)
        assert completion.kind == CompletionKind.RETURN
        assert completion.value == 42
        assert not completion.is_normal


# --- Expression Tests ---

class TestExpressions:
    """Test expression evaluation."""

    def test_arithmetic(self):
        """Operator precedence in evaluation."""
        assert evaluate("2 + 3 * 4") == 14
        assert evaluate("(2 + 3) * 4") == 20
        assert evaluate("10 - 3 - 2") == 5
        assert evaluate("7 / 2") == 3.5

    def test_modulo_sign_follows_dividend(self):
        """% keeps the sign of the left operand."""
        assert evaluate("7 % 3") == 1
        assert evaluate("-7 % 3") == -1
        assert evaluate("5.5 % 2") == 1.5

    @pytest.mark.parametrize("expression", ["1 / 0", "1 % 0"])
    def test_division_by_zero(self, expression):
        """Division and modulo by zero are runtime errors."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            evaluate(expression)
        assert exc_info.value.code == "E407"

    def test_string_concatenation(self):
        """+ with a string operand concatenates display strings."""
        assert evaluate('"score: " + 10') == "score: 10"
        assert evaluate('1.0 + "x"') == "1x"
        assert evaluate('"a" + null') == "anull"

    def test_list_concatenation(self):
        """list + list builds a new list."""
        assert evaluate("[1, 2] + [3]") == [1, 2, 3]

    def test_bad_operands(self):
        """Arithmetic on non-numbers is an error."""
        with pytest.raises(ForgeRuntimeError):
            evaluate("[1] * 2")
        with pytest.raises(ForgeRuntimeError):
            evaluate("-\"a\"")

    def test_comparison(self):
        """Comparisons on numbers and on strings."""
        interp = execute("""
            let a = 5 > 3
            let b = 5 == 5
            let c = 5 != 3
            let d = "abc" < "abd"
            let e = 2 <= 2
        """)
        assert [interp.get(n) for n in "abcde"] == [True] * 5

    def test_mixed_comparison_is_error(self):
        """Comparing a number with a string is an error."""
        with pytest.raises(ForgeRuntimeError):
            evaluate('1 < "a"')

    def test_deep_equality(self):
        """== compares lists and maps structurally."""
        assert evaluate("[1, [2, 3]] == [1, [2, 3]]") is True
        assert evaluate("{ a: 1, b: [2] } == { b: [2], a: 1 }") is True
        assert evaluate("[1] == [1, 2]") is False
        assert evaluate("true == 1") is False
        assert evaluate("null == null") is True

    def test_logical_operators(self):
        """and/or/not return booleans."""
        interp = execute("""
            let a = true and true
            let b = true or false
            let c = not false
            let d = 1 and "x"
            let e = 0 or ""
        """)
        assert interp.get("a") is True
        assert interp.get("b") is True
        assert interp.get("c") is True
        assert interp.get("d") is True
        assert interp.get("e") is False

    def test_short_circuit(self):
        """The right operand is not evaluated when the left decides."""
        assert evaluate("false and undefined_fn()") is False
        assert evaluate("true or undefined_fn()") is True

    @pytest.mark.parametrize("literal, expected", [
        ("null", False), ("false", False), ("0", False), ('""', False), ("[]", False),
        ('"0"', True), ("[0]", True), ("{}", True),
    ])
    def test_truthiness_in_conditions(self, literal, expected):
        """Conditions follow the truthiness table."""
        assert evaluate(f"if {literal} then true else false") is expected

    def test_conditional_expression(self):
        """if/then/else as an expression."""
        interp = execute("""
            let x = 10
            let result = if x > 5 then "big" else "small"
        """)
        assert interp.get("result") == "big"

    def test_vector_literal(self):
        """Vectors are lists."""
        interp = execute("""
            let pos = (1, 2, 3)
            let x = pos[0]
        """)
        assert interp.get("pos") == [1, 2, 3]
        assert interp.get("x") == 1

    def test_color_literal(self):
        """Colors evaluate to their string."""
        assert evaluate("#ff8800") == "#ff8800"


class TestMemberAccess:
    """Test member access dispatch."""

    def test_map_access(self):
        """Dotted and computed map lookup; missing keys are null."""
        interp = execute("""
            let person = { name: "Alice", age: 30 }
            let name = person.name
            let age = person["age"]
            let missing = person.email
        """)
        assert interp.get("name") == "Alice"
        assert interp.get("age") == 30
        assert interp.get("missing") is None

    def test_nested_access_and_set(self):
        """Nested property read and write."""
        interp = execute("""
            let obj = { inner: { value: 0 } }
            set obj.inner.value: 42
            let result = obj.inner.value
        """)
        assert interp.get("result") == 42
        assert interp.get("obj") == {"inner": {"value": 42}}

    def test_list_index(self):
        """Integer index; out of range gives null."""
        interp = execute("""
            let arr = [1, 2, 3]
            let first = arr[0]
            let out = arr[5]
            let negative = arr[-1]
            let length = len(arr)
        """)
        assert interp.get("first") == 1
        assert interp.get("out") is None
        assert interp.get("negative") is None
        assert interp.get("length") == 3

    def test_list_members(self):
        """Array members operate on the list."""
        interp = execute("""
            let arr = [3, 1, 2]
            arr.push(4)
            let n = arr.length
            let popped = arr.pop()
            let sorted = arr.sort()
            let joined = arr.join("-")
            let has = arr.includes(1)
            let where = arr.indexOf(2)
            let unknown = arr.nothing
        """)
        assert interp.get("n") == 4
        assert interp.get("popped") == 4
        assert interp.get("arr") == [3, 1, 2]
        assert interp.get("sorted") == [1, 2, 3]
        assert interp.get("joined") == "3-1-2"
        assert interp.get("has") is True
        assert interp.get("where") == 2
        assert interp.get("unknown") is None

    def test_list_index_assignment(self):
        """set on a list index replaces, or appends at len."""
        interp = execute("""
            let arr = [1, 2]
            set arr[0]: 10
            set arr[2]: 30
        """)
        assert interp.get("arr") == [10, 2, 30]

    def test_list_index_assignment_out_of_range(self):
        """Setting past the end is an error."""
        with pytest.raises(ForgeRuntimeError):
            execute("""
                let arr = [1]
                set arr[5]: 1
            """)

    def test_string_members(self):
        """String members and indexing."""
        interp = execute("""
            let s = "  Hello  "
            let t = s.trim()
            let upper = t.toUpperCase()
            let n = t.length
            let ch = t[1]
            let parts = "a,b,c".split(",")
            let starts = t.startsWith("He")
        """)
        assert interp.get("t") == "Hello"
        assert interp.get("upper") == "HELLO"
        assert interp.get("n") == 5
        assert interp.get("ch") == "e"
        assert interp.get("parts") == ["a", "b", "c"]
        assert interp.get("starts") is True

    def test_null_access(self):
        """Member access on null is an error."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute("""
                let n = null
                let y = n.foo
            """)
        assert exc_info.value.code == "E403"
        assert "Cannot access property of null" in str(exc_info.value)

    def test_null_assignment(self):
        """Assigning a property of null is an error."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute("""
                let n = null
                set n.foo: 1
            """)
        assert "Cannot assign to property of null" in str(exc_info.value)

    def test_number_access_is_error(self):
        """Numbers have no members."""
        with pytest.raises(ForgeRuntimeError):
            evaluate("(5).foo")


class TestReactiveRefs:
    """Test $path references."""

    def test_read(self):
        """$a.b.c reads from the globals; missing segments give null."""
        interp = execute("""
            let player = { position: { x: 4 } }
            let x = $player.position.x
            let missing = $player.velocity.x
            let nothing = $ghost.x
        """)
        assert interp.get("x") == 4
        assert interp.get("missing") is None
        assert interp.get("nothing") is None

    def test_write(self):
        """set $a.b writes through the globals; one segment binds a global."""
        interp = execute("""
            let player = { position: { x: 4 } }
            fn move():
              set $player.position.x: 9
              set $score: 100
            move()
        """)
        assert interp.get("player")["position"]["x"] == 9
        assert interp.get("score") == 100


# --- Statement Tests ---

class TestStatements:
    """Test statement execution."""

    def test_let_and_set(self):
        """let creates, set updates."""
        interp = execute("""
            let x = 0
            set x: 42
        """)
        assert interp.get("x") == 42

    def test_if_else(self):
        """if/elif/else branches."""
        interp = execute("""
            let x = 0
            let result = ""
            if x > 0:
              set result: "positive"
            elif x < 0:
              set result: "negative"
            else:
              set result: "zero"
        """)
        assert interp.get("result") == "zero"

    def test_block_scope(self):
        """let inside a block does not leak."""
        interp = execute("""
            let x = 1
            if true:
              let x = 2
              let inner = 3
        """)
        assert interp.get("x") == 1
        with pytest.raises(ForgeRuntimeError):
            interp.get("inner")

    def test_for_loop(self):
        """for over a list."""
        interp = execute("""
            let sum = 0
            for i in [1, 2, 3, 4, 5]:
              set sum: sum + i
        """)
        assert interp.get("sum") == 15

    def test_for_break_continue(self):
        """break and continue."""
        interp = execute("""
            let seen = []
            for i in [1, 2, 3, 4, 5]:
              if i == 2:
                continue
              if i == 4:
                break
              seen.push(i)
        """)
        assert interp.get("seen") == [1, 3]

    def test_for_iterates_snapshot(self):
        """Appending during iteration does not extend the loop."""
        interp = execute("""
            let items = [1, 2]
            let count = 0
            for i in items:
              items.push(i)
              set count: count + 1
        """)
        assert interp.get("count") == 2
        assert interp.get("items") == [1, 2, 1, 2]

    def test_for_requires_list(self):
        """Iterating a non-list is an error."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute("""
                for c in "abc":
                  print(c)
            """)
        assert "For loop requires an iterable (list)" in str(exc_info.value)

    def test_while_loop(self):
        """while with a counter."""
        interp = execute("""
            let count = 0
            while count < 5:
              set count: count + 1
        """)
        assert interp.get("count") == 5

    def test_while_break(self):
        """break leaves an infinite loop."""
        interp = execute("""
            let n = 0
            while true:
              set n: n + 1
              if n >= 3:
                break
        """)
        assert interp.get("n") == 3

    def test_loop_limit(self):
        """A configured ceiling stops runaway loops."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute("""
                let n = 0
                while true:
                  set n: n + 1
            """, config=RuntimeConfig(max_loop_iterations=100))
        assert exc_info.value.code == "E406"

    def test_loop_limit_not_hit(self):
        """Loops under the ceiling run normally."""
        interp = execute("""
            let n = 0
            for i in list.range(0, 50):
              set n: n + 1
        """, config=RuntimeConfig(max_loop_iterations=50))
        assert interp.get("n") == 50

    def test_top_level_return(self):
        """return at top level stops the rest of the file."""
        interp = execute("""
            let a = 1
            return
            let b = 2
        """)
        assert interp.get("a") == 1
        assert "b" not in interp.globals()


class TestMatch:
    """Test match statements."""

    def classify(self, value: str):
        interp = execute(f"""
            let result = null
            match {value}:
              0:
                set result: "zero"
              [a, b]:
                set result: "pair " + a + b
              {{kind: "door", id}}:
                set result: "door " + id
              n when type(n) == "number" and n > 10:
                set result: "big"
              _:
                set result: "other"
        """)
        return interp.get("result")

    def test_literal(self):
        """Literal patterns compare by equality."""
        assert self.classify("0") == "zero"

    def test_list_binding(self):
        """List patterns match by length and bind elements."""
        assert self.classify("[1, 2]") == "pair 12"
        assert self.classify("[1, 2, 3]") == "other"

    def test_map_pattern(self):
        """Map patterns check keys and bind values."""
        assert self.classify('{ kind: "door", id: "d1" }') == "door d1"
        assert self.classify('{ kind: "wall", id: "w1" }') == "other"

    def test_guard(self):
        """Guards see bindings and can reject a case."""
        assert self.classify("42") == "big"
        assert self.classify("5") == "other"

    def test_no_match_is_noop(self):
        """No matching case leaves state unchanged."""
        interp = execute("""
            let result = "unchanged"
            match 3:
              1:
                set result: "one"
        """)
        assert interp.get("result") == "unchanged"


# --- Function Tests ---

class TestFunctions:
    """Test functions and closures."""

    def test_function(self):
        """Declared function with return."""
        interp = execute("""
            fn add(a, b):
              return a + b
            let result = add(3, 4)
        """)
        assert interp.get("result") == 7

    def test_arrow_function(self):
        """Expression-bodied lambda."""
        interp = execute("""
            let double = fn(x) -> x * 2
            let result = double(21)
        """)
        assert interp.get("result") == 42

    def test_missing_arguments(self):
        """Missing arguments use defaults or null; extras are ignored."""
        interp = execute("""
            fn f(a, b = 10, c):
              return [a, b, c]
            let r1 = f(1)
            let r2 = f(1, 2, 3, 4)
            let r3 = f(1, null)
        """)
        assert interp.get("r1") == [1, 10, None]
        assert interp.get("r2") == [1, 2, 3]
        assert interp.get("r3") == [1, None, None]

    def test_no_return_gives_null(self):
        """A block body without return yields null."""
        interp = execute("""
            fn nothing():
              let x = 1
            let result = nothing()
        """)
        assert interp.get("result") is None

    def test_return_from_loop(self):
        """return inside a loop leaves the function."""
        interp = execute("""
            fn find_first_even(items):
              for i in items:
                if i % 2 == 0:
                  return i
              return null
            let result = find_first_even([1, 3, 4, 6])
        """)
        assert interp.get("result") == 4

    def test_closure(self):
        """Closures capture their defining environment."""
        interp = execute("""
            fn make_adder(n):
              return fn(x) -> x + n
            let add5 = make_adder(5)
            let result = add5(10)
        """)
        assert interp.get("result") == 15

    def test_closure_shares_environment(self):
        """Closures share, not copy, captured scopes."""
        interp = execute("""
            fn make_counter():
              let count = 0
              return fn():
                set count: count + 1
                return count
            let counter = make_counter()
            counter()
            counter()
            let result = counter()
        """)
        assert interp.get("result") == 3

    def test_late_binding(self):
        """A function sees globals defined after it."""
        interp = execute("""
            fn get_later():
              return later
            let later = 5
            let result = get_later()
        """)
        assert interp.get("result") == 5

    def test_defaults_evaluated_in_closure(self):
        """Default expressions see the defining scope, not the caller's."""
        interp = execute("""
            let base = 1
            fn f(x = base):
              return x
            fn caller():
              let base = 99
              return f()
            let result = caller()
        """)
        assert interp.get("result") == 1

    def test_recursion(self):
        """Recursive calls."""
        interp = execute("""
            fn fib(n):
              if n < 2:
                return n
              return fib(n - 1) + fib(n - 2)
            let result = fib(10)
        """)
        assert interp.get("result") == 55

    def test_deep_recursion(self):
        """Recursion well past Python's default frame limit completes."""
        interp = execute("""
            fn depth(n):
              if n == 0:
                return 0
              return 1 + depth(n - 1)
            let result = depth(500)
        """)
        assert interp.get("result") == 500
        assert interp.call_depth == 0

    def test_runaway_recursion(self):
        """Unbounded recursion stops at max_call_depth with E408."""
        source = """
            fn forever(n):
              return forever(n + 1)
            let x = forever(0)
        """
        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute(source, config=RuntimeConfig(max_call_depth=50))
        assert exc_info.value.code == "E408"
        assert "Maximum call depth 50 exceeded" in str(exc_info.value)
        assert exc_info.value.diagnostic.span.start.line == 3

    def test_call_depth_counts_callbacks(self):
        """Forge functions called back from natives count toward the depth."""
        source = """
            fn nest(n):
              if n == 0:
                return 0
              return list.map([n], fn(x) -> nest(x - 1))[0] + 1
            let result = nest(10)
        """
        assert execute(source, config=RuntimeConfig(max_call_depth=100)).get("result") == 10
        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute(source, config=RuntimeConfig(max_call_depth=10))
        assert exc_info.value.code == "E408"

    def test_depth_resets_after_error(self):
        """A failed call chain leaves the interpreter usable."""
        interp = execute("""
            fn forever():
              return forever()
        """, config=RuntimeConfig(max_call_depth=20))
        with pytest.raises(ForgeRuntimeError):
            interp.call(interp.get("forever"))
        assert interp.call_depth == 0
        assert interp.call(interp.global_env.lookup("len"), [1, 2]) == 2

    def test_not_callable(self):
        """Calling a non-function names the callee expression."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute("""
                let x = 5
                x()
            """)
        assert exc_info.value.code == "E402"
        assert "Identifier is not callable" in str(exc_info.value)

    def test_undefined_variable(self):
        """Undefined names are fatal."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute("let y = nope + 1")
        assert exc_info.value.code == "E401"
        assert "Undefined variable: nope" in str(exc_info.value)

    def test_native_receives_callable(self):
        """Host functions can call Forge functions passed to them."""
        interp = Interpreter()
        interp.set("apply_twice", lambda f, x: f(f(x)))
        interp.execute(compile_program("let result = apply_twice(fn(v) -> v * 3, 2)"))
        assert interp.get("result") == 18

    def test_host_call(self):
        """Interpreter.call invokes a Forge function from Python."""
        interp = execute("""
            fn greet(name, greeting = "Hello"):
              return greeting + ", " + name
        """)
        greet = interp.get("greet")
        assert isinstance(greet, FunctionValue)
        assert interp.call(greet, "Ada") == "Hello, Ada"
        assert interp.call(greet, "Ada", "Hi") == "Hi, Ada"


# --- Schema Tests ---

class TestSchemas:
    """Test schemas and instances."""

    def test_schema_registered(self):
        """Schemas are registered and bound by name."""
        interp = execute("""
            schema door:
              required:
                state: string
        """)
        assert "door" in interp.schemas()
        assert interp.get("door").name == "door"

    def test_instance(self):
        """Instances carry their schema name and field data."""
        interp = execute("""
            schema door:
              required:
                state: string

            door main_door:
              state: "closed"
        """)
        instance = interp.get("main_door")
        assert isinstance(instance, InstanceValue)
        assert instance.schema == "door"
        assert instance.data["state"] == "closed"
        assert instance.mutated_fields == set()

    def test_required_and_default(self):
        """Missing required fields fail; defaults fill optional ones."""
        source = textwrap.dedent("""
            schema S:
              required:
                a: number
              optional:
                b: number = 0
        """)
        interp = execute(source + "S ok:\n  a: 1\n")
        assert interp.get("ok").data == {"a": 1, "b": 0}

        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute(source + "S bad:\n  b: 2\n")
        assert exc_info.value.code == "E405"
        assert 'Missing required field "a" in S instance "bad"' in str(exc_info.value)

    def test_explicit_values_override_defaults(self):
        """Instance fields override defaults; extra fields are kept."""
        interp = execute("""
            schema light:
              on_color: string = "#ffffff"
              brightness: number = 1

            light lamp:
              brightness: 0.5
              label: "galley"
        """)
        assert interp.get("lamp").data == {
            "on_color": "#ffffff", "brightness": 0.5, "label": "galley",
        }

    def test_unknown_schema(self):
        """Instances of unregistered schemas fail."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute("""
                ghost g:
                  x: 1
            """)
        assert exc_info.value.code == "E404"
        assert "Unknown schema: ghost" in str(exc_info.value)

    def test_methods_bind_self(self):
        """Methods see self and mark fields they set as mutated."""
        interp = execute("""
            schema counter:
              required:
                value: number

              increment: fn():
                set self.value: self.value + 1

            counter c:
              value: 0

            c.increment()
        """)
        instance = interp.get("c")
        assert instance.data["value"] == 1
        assert instance.mutated_fields == {"value"}

    def test_methods_per_instance(self):
        """Each instance's methods see that instance."""
        interp = execute("""
            schema named:
              required:
                name: string
              fn describe():
                return "I am " + self.name

            named a:
              name: "a"
            named b:
              name: "b"

            let both = [a.describe(), b.describe()]
        """)
        assert interp.get("both") == ["I am a", "I am b"]

    def test_extends_recorded_not_merged(self):
        """extends records the parent without inheriting its fields."""
        interp = execute("""
            schema base:
              required:
                id: string

            schema child extends base:
              optional:
                extra: number = 1

            child c:
              extra: 2
        """)
        assert interp.schemas()["child"].extends == "base"
        assert interp.get("c").data == {"extra": 2}

    def test_set_instance_field(self):
        """set on an instance field marks it mutated."""
        interp = execute("""
            schema door:
              optional:
                state: string = "closed"
            door d:
              state: "closed"
            set d.state: "open"
        """)
        assert interp.get("d").data["state"] == "open"
        assert interp.get("d").mutated_fields == {"state"}


# --- Builtins and Host API ---

class TestBuiltins:
    """Test global builtins."""

    def test_print(self):
        """print writes space-joined display strings."""
        out = io.StringIO()
        execute('print("a", 1, 2.5, true, null, [1, 2], { a: 1 })', output=out)
        assert out.getvalue() == "a 1 2.5 true null [1, 2] { a: 1 }\n"

    def test_type(self):
        """type() names values."""
        interp = execute("""
            let types = [type(1), type("s"), type(true), type(null), type([]), type({}), type(print), type(fn() -> 1)]
        """)
        assert interp.get("types") == [
            "number", "string", "boolean", "null", "list", "map", "function", "function",
        ]

    def test_len_keys_values(self):
        """len/keys/values."""
        interp = execute("""
            let m = { a: 1, b: 2 }
            let n = len(m)
            let k = keys(m)
            let v = values(m)
            let s = len("abc")
        """)
        assert interp.get("n") == 2
        assert interp.get("k") == ["a", "b"]
        assert interp.get("v") == [1, 2]
        assert interp.get("s") == 3

    def test_math_builtins(self):
        """Common math globals."""
        interp = execute("""
            let a = abs(-3)
            let b = floor(2.7)
            let c = ceil(2.1)
            let d = round(2.5)
            let e = round(-2.5)
            let f = min(3, 1, 2)
            let g = max(3, 1, 2)
            let h = sqrt(16)
        """)
        assert [interp.get(n) for n in "abcdefgh"] == [3, 2, 3, 3, -2, 1, 3, 4]
        assert evaluate("PI") == pytest.approx(math.pi)

    @pytest.mark.parametrize("expression, name", [
        ("sqrt(-1)", "sqrt"),
        ("math.log(0)", "math.log"),
        ("math.map(1, 2, 2, 0, 1)", "math.map"),
        ("floor(null)", "floor"),
    ])
    def test_native_failure_is_runtime_error(self, expression, name):
        """Python errors raised by natives surface as E400 at the call site."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            evaluate(expression)
        assert exc_info.value.code == "E400"
        assert f"Error in {name}()" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, (TypeError, ValueError, ArithmeticError))
        assert exc_info.value.span is not None

    def test_native_failure_in_callback(self):
        """A native failing inside a Forge callback keeps its own location."""
        with pytest.raises(ForgeRuntimeError) as exc_info:
            execute("""
                let roots = list.map([4, -1], fn(x) -> sqrt(x))
            """)
        assert "Error in sqrt()" in str(exc_info.value)

    def test_host_call_native_failure(self):
        """Interpreter.call wraps native failures the same way."""
        interp = Interpreter()
        with pytest.raises(ForgeRuntimeError) as exc_info:
            interp.call(math.sqrt, -1)
        assert "Error in sqrt()" in str(exc_info.value)

    def test_get_set(self):
        """Host get/set of globals."""
        interp = Interpreter()
        interp.set("health", 30)
        interp.execute(compile_program("let doubled = health * 2"))
        assert interp.get("doubled") == 60
        assert interp.globals()["health"] == 30

    def test_run_helper(self):
        """run() compiles and executes in a fresh interpreter."""
        interp = run("let x = 42")
        assert interp.get("x") == 42

    def test_interpreters_are_isolated(self):
        """Registries belong to one interpreter."""
        a = execute("""
            schema s:
              x: number = 1
        """)
        b = Interpreter()
        assert "s" in a.schemas()
        assert "s" not in b.schemas()
