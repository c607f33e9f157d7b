"""
Abstract Syntax Tree (AST) node definitions for Forge 2.

The AST represents the structure of a parsed Forge program. Nodes are
produced by the parser, never mutated afterwards, and walked directly by
the interpreter.
"""

import sys
from dataclasses import dataclass, field
from typing import Optional, List, Union, Any, Tuple
from abc import ABC
from .tokens import SourceSpan


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Type Annotations
# =============================================================================

@dataclass
class TypeNode(AstNode):
    """Base class for schema field type annotations."""
    pass


@dataclass
class SimpleType(TypeNode):
    """A simple type like 'number', 'string', 'bool'."""
    name: str


@dataclass
class ListType(TypeNode):
    """list<T>"""
    element: TypeNode


@dataclass
class MapType(TypeNode):
    """map<K, V>"""
    key: TypeNode
    value: TypeNode


@dataclass
class EnumType(TypeNode):
    """enum("open", "closed")"""
    values: List[str]


@dataclass
class VecType(TypeNode):
    """vec, vec2, vec3, ... (size is None for a bare 'vec')."""
    size: Optional[int] = None


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class NumberLiteral(Expression):
    value: Union[int, float]


@dataclass
class StringLiteral(Expression):
    value: str


@dataclass
class BooleanLiteral(Expression):
    value: bool


@dataclass
class NullLiteral(Expression):
    pass


@dataclass
class ColorLiteral(Expression):
    """A color such as #ff8800; evaluates to its string form."""
    value: str


@dataclass
class Identifier(Expression):
    """A variable or function name reference."""
    name: str


@dataclass
class VectorLiteral(Expression):
    """A parenthesized tuple (x, y, z); evaluates to a list."""
    elements: List[Expression]


@dataclass
class ListLiteral(Expression):
    """A list literal (e.g., [1, 2, 3])."""
    elements: List[Expression]


@dataclass
class MapEntry(AstNode):
    """One key/value pair in a map literal.

    A str key is a literal key (identifier or string); an Expression key
    was written as [expr] and is evaluated at runtime.
    """
    key: Union[str, Expression]
    value: Expression


@dataclass
class MapLiteral(Expression):
    """A map literal (e.g., {state: "open", "count": 2, [k]: v})."""
    entries: List[MapEntry] = field(default_factory=list)


@dataclass
class MemberExpression(Expression):
    """obj.name (computed=False, property is a str) or obj[expr] (computed=True)."""
    object: Expression
    property: Union[str, Expression]
    computed: bool = False


@dataclass
class CallExpression(Expression):
    """A function call (e.g., vec.add(a, b))."""
    callee: Expression
    arguments: List[Expression]


@dataclass
class BinaryExpression(Expression):
    """A binary operation (e.g., a + b, x and y)."""
    operator: str
    left: Expression
    right: Expression


@dataclass
class UnaryExpression(Expression):
    """A unary operation: 'not x' or '-n'."""
    operator: str
    operand: Expression


@dataclass
class ConditionalExpression(Expression):
    """if test then consequent else alternate"""
    test: Expression
    consequent: Expression
    alternate: Expression


@dataclass
class Parameter(AstNode):
    """A function parameter with optional default."""
    name: str
    default: Optional[Expression] = None


@dataclass
class LambdaExpression(Expression):
    """fn(x) -> x * 2, or fn(x): with an indented block."""
    params: List[Parameter]
    body: Union[Expression, "Block"]


@dataclass
class ReactiveRef(Expression):
    """$door.state: a path resolved against the global environment."""
    path: List[str]


# =============================================================================
# Patterns
# =============================================================================

@dataclass
class Pattern(AstNode):
    """Base class for match patterns."""
    pass


@dataclass
class WildcardPattern(Pattern):
    """_ matches anything without binding."""
    pass


@dataclass
class IdentifierPattern(Pattern):
    """Binds the matched value to a name."""
    name: str


@dataclass
class LiteralPattern(Pattern):
    """Matches a value equal to the evaluated expression."""
    value: Expression


@dataclass
class ListPattern(Pattern):
    """[a, _, 3] matches lists of exactly this length."""
    elements: List[Pattern]


@dataclass
class MapPattern(Pattern):
    """{kind: "door", state} matches maps having these keys."""
    entries: List[Tuple[str, Pattern]]


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class Block(AstNode):
    """A block of statements (indented block)."""
    statements: List[Statement]


@dataclass
class LetStatement(Statement):
    """let name = value"""
    name: str
    value: Expression


@dataclass
class SetStatement(Statement):
    """set target: value (target is Identifier, MemberExpression or ReactiveRef)."""
    target: Expression
    value: Expression


@dataclass
class FunctionDeclaration(Statement):
    """fn name(params): body"""
    name: str
    params: List[Parameter]
    body: Block


@dataclass
class IfStatement(Statement):
    """An if statement; elif chains nest in the alternate slot.

    Syntax:
        if condition:
            ...
        elif condition:
            ...
        else:
            ...
    """
    test: Expression
    consequent: Block
    alternate: Optional[Union[Block, "IfStatement"]] = None


@dataclass
class ForStatement(Statement):
    """for item in items:"""
    variable: str
    iterable: Expression
    body: Block


@dataclass
class WhileStatement(Statement):
    """while condition:"""
    test: Expression
    body: Block


@dataclass
class MatchCase(AstNode):
    """One 'pattern [when guard]:' arm of a match statement."""
    pattern: Pattern
    guard: Optional[Expression]
    body: Block


@dataclass
class MatchStatement(Statement):
    discriminant: Expression
    cases: List[MatchCase]


@dataclass
class ReturnStatement(Statement):
    argument: Optional[Expression] = None


@dataclass
class BreakStatement(Statement):
    pass


@dataclass
class ContinueStatement(Statement):
    pass


@dataclass
class OnStatement(Statement):
    """on "event" [when condition]: body"""
    event: Expression
    condition: Optional[Expression]
    body: Block


@dataclass
class EmitStatement(Statement):
    """emit "event" [{data}]"""
    event: Expression
    data: Optional[MapLiteral] = None


@dataclass
class ImportSpecifier(AstNode):
    """A name pulled in by 'from "path" import {name as local}'."""
    imported: str
    local: str


@dataclass
class ImportStatement(Statement):
    """import "path" [as ns] / from "path" import {...}"""
    source: str
    specifiers: Optional[List[ImportSpecifier]] = None
    namespace: Optional[str] = None


@dataclass
class SchemaField(AstNode):
    """A declared schema field: name: type [= default]."""
    name: str
    type: TypeNode
    required: bool
    default: Optional[Expression] = None


@dataclass
class SchemaDeclaration(Statement):
    """schema Door [extends Entity]: ..."""
    name: str
    extends: Optional[str]
    fields: List[SchemaField] = field(default_factory=list)
    methods: List[FunctionDeclaration] = field(default_factory=list)


@dataclass
class InstanceDeclaration(Statement):
    """Door galley_exit: followed by indented 'field: value' lines."""
    schema: str
    name: str
    fields: dict[str, Expression] = field(default_factory=dict)


@dataclass
class ExpressionStatement(Statement):
    """An expression used as a statement."""
    expression: Expression


@dataclass
class Program(AstNode):
    """A parsed source file.

    Imports are kept apart from the executable body.
    """
    imports: List[ImportStatement] = field(default_factory=list)
    body: List[Statement] = field(default_factory=list)


# =============================================================================
# Visitor Helpers
# =============================================================================

class PrintVisitor(AstVisitor):
    """Debug visitor that prints the AST structure."""

    def __init__(self, indent: int = 0, file=None):
        self.indent = indent
        self.file = file if file is not None else sys.stdout

    def _print(self, text: str) -> None:
        print("  " * self.indent + text, file=self.file)

    def _nested(self) -> "PrintVisitor":
        return PrintVisitor(self.indent + 2, self.file)

    def generic_visit(self, node: AstNode) -> None:
        self._print(f"{node.__class__.__name__}")
        for name, value in node.__dict__.items():
            if name == "span":
                continue
            if isinstance(value, AstNode):
                self._print(f"  {name}:")
                self._nested().generic_visit(value)
            elif isinstance(value, dict):
                self._print(f"  {name}: {{")
                for key, item in value.items():
                    self._print(f"    {key}:")
                    if isinstance(item, AstNode):
                        PrintVisitor(self.indent + 3, self.file).generic_visit(item)
                self._print("  }")
            elif isinstance(value, list):
                self._print(f"  {name}: [")
                for item in value:
                    if isinstance(item, AstNode):
                        self._nested().generic_visit(item)
                    elif isinstance(item, tuple):
                        self._print(f"    {item[0]!r}:")
                        PrintVisitor(self.indent + 3, self.file).generic_visit(item[1])
                    else:
                        self._print(f"    {item!r}")
                self._print("  ]")
            else:
                self._print(f"  {name}: {value!r}")


def print_ast(node: AstNode, file=None) -> None:
    """Print an AST node for debugging."""
    PrintVisitor(file=file).generic_visit(node)
