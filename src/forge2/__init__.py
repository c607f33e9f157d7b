"""
Forge 2 - an embeddable, indentation-structured scripting language.

This package provides:
- Lexer: Tokenizes Forge source, emitting INDENT/DEDENT for block structure
- Parser: Builds an AST by recursive descent
- Interpreter: Tree-walking evaluation with closures, schemas, instances,
  an event queue and hot-reload
- Standard library: vec, math, list, string and random namespaces
- ForgeVM: Host-facing facade that keeps loaded sources

Usage:
    from forge2 import ForgeVM

    vm = ForgeVM()
    vm.load('''
schema Door:
  required:
    id: string
  optional:
    open: bool = false

Door galley_exit:
  id: "galley_exit"

on "interact" when event.target == galley_exit.id:
  set galley_exit.open: not galley_exit.open
''', "doors.forge")
    vm.emit("interact", {"target": "galley_exit"})
    vm.get("galley_exit").data["open"]   # True
"""

import logging

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .errors import (
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
    ForgeError,
    LexerError,
    ParserError,
    ForgeRuntimeError,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    AstVisitor,
    PrintVisitor,
    print_ast,
    Program,
    Block,
    Statement,
    Expression,
)

from .runtime import (
    Interpreter,
    Environment,
    FunctionValue,
    SchemaValue,
    InstanceValue,
    ListenerRegistry,
    TICK_EVENT,
    RELOAD_EVENT,
    is_truthy,
    values_equal,
    stringify,
)

from .config import (
    RuntimeConfig,
    ConfigError,
    load_config,
)

from .vm import (
    ForgeVM,
    compile_program,
    run,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "2.0.0"

__all__ = [
    # Tokens
    "Token",
    "TokenType",
    "SourceLocation",
    "SourceSpan",
    "KEYWORDS",
    # Errors
    "Diagnostic",
    "DiagnosticCollector",
    "ErrorSeverity",
    "ForgeError",
    "LexerError",
    "ParserError",
    "ForgeRuntimeError",
    # Lexer / Parser
    "Lexer",
    "tokenize",
    "Parser",
    "parse",
    # AST
    "AstNode",
    "AstVisitor",
    "PrintVisitor",
    "print_ast",
    "Program",
    "Block",
    "Statement",
    "Expression",
    # Runtime
    "Interpreter",
    "Environment",
    "FunctionValue",
    "SchemaValue",
    "InstanceValue",
    "ListenerRegistry",
    "TICK_EVENT",
    "RELOAD_EVENT",
    "is_truthy",
    "values_equal",
    "stringify",
    # Config
    "RuntimeConfig",
    "ConfigError",
    "load_config",
    # VM
    "ForgeVM",
    "compile_program",
    "run",
]
