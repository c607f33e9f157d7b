"""
Token types for the Forge 2 lexer.

Forge 2 is an indentation-based scripting language with a small keyword set.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the Forge lexer."""

    # --- Literals ---
    NUMBER = auto()             # 42, 3.14, -5
    STRING = auto()             # "hello", 'world', #ff0000 (colors)
    BOOLEAN = auto()            # true, false
    NULL = auto()               # null

    # --- Identifiers ---
    IDENTIFIER = auto()         # user-defined names

    # --- Keywords: bindings ---
    LET = auto()                # let
    SET = auto()                # set
    FN = auto()                 # fn

    # --- Keywords: control flow ---
    IF = auto()                 # if
    ELIF = auto()               # elif
    ELSE = auto()               # else
    FOR = auto()                # for
    WHILE = auto()              # while
    MATCH = auto()              # match
    RETURN = auto()             # return
    BREAK = auto()              # break
    CONTINUE = auto()           # continue

    # --- Keywords: events ---
    ON = auto()                 # on
    EMIT = auto()               # emit

    # --- Keywords: modules ---
    IMPORT = auto()             # import
    FROM = auto()               # from

    # --- Keywords: schemas ---
    SCHEMA = auto()             # schema
    EXTENDS = auto()            # extends

    # --- Keywords: operators ---
    IN = auto()                 # in
    WHEN = auto()               # when
    AND = auto()                # and
    OR = auto()                 # or
    NOT = auto()                # not
    THEN = auto()               # then

    # --- Delimiters ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    COLON = auto()              # :
    COMMA = auto()              # ,
    DOT = auto()                # .
    ARROW = auto()              # ->
    ASSIGN = auto()             # =

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # ==
    NE = auto()                 # !=

    # --- Reserved punctuation ---
    AT = auto()                 # @
    HASH = auto()               # # (only reachable if not a comment or color)
    DOLLAR = auto()             # $ (reactive reference)

    # --- Indentation tokens ---
    INDENT = auto()             # Increase in indentation level
    DEDENT = auto()             # Decrease in indentation level
    NEWLINE = auto()            # Significant newline (end of statement)

    # --- Special ---
    EOF = auto()                # end of file


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # Decoded value (string contents, keyword text, ...)
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.STRING, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    # Bindings
    "let": TokenType.LET,
    "set": TokenType.SET,
    "fn": TokenType.FN,

    # Control flow
    "if": TokenType.IF,
    "elif": TokenType.ELIF,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "while": TokenType.WHILE,
    "match": TokenType.MATCH,
    "return": TokenType.RETURN,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,

    # Events
    "on": TokenType.ON,
    "emit": TokenType.EMIT,

    # Modules
    "import": TokenType.IMPORT,
    "from": TokenType.FROM,

    # Schemas
    "schema": TokenType.SCHEMA,
    "extends": TokenType.EXTENDS,

    # Operators
    "in": TokenType.IN,
    "when": TokenType.WHEN,
    "and": TokenType.AND,
    "or": TokenType.OR,
    "not": TokenType.NOT,
    "then": TokenType.THEN,

    # Literals
    "true": TokenType.BOOLEAN,
    "false": TokenType.BOOLEAN,
    "null": TokenType.NULL,
}


# Keywords that may still be used as property names after '.', e.g. voxel.set
PROPERTY_KEYWORDS: frozenset[TokenType] = frozenset(KEYWORDS.values())


# Tokens after which a '-' is a binary operator rather than a number sign
OPERAND_END_TOKENS: frozenset[TokenType] = frozenset({
    TokenType.NUMBER,
    TokenType.STRING,
    TokenType.BOOLEAN,
    TokenType.NULL,
    TokenType.IDENTIFIER,
    TokenType.RPAREN,
    TokenType.RBRACKET,
    TokenType.RBRACE,
})
