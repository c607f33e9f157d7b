"""
Recursive descent parser for Forge 2.

Converts a token stream into an Abstract Syntax Tree (AST).
Blocks are delimited by INDENT/DEDENT tokens produced by the lexer.
"""

from typing import List, Optional, Union
from .tokens import Token, TokenType, SourceSpan, PROPERTY_KEYWORDS
from .ast import (
    # Types
    TypeNode, SimpleType, ListType, MapType, EnumType, VecType,
    # Expressions
    Expression, NumberLiteral, StringLiteral, BooleanLiteral, NullLiteral,
    ColorLiteral, Identifier, VectorLiteral, ListLiteral, MapLiteral, MapEntry,
    MemberExpression, CallExpression, BinaryExpression, UnaryExpression,
    ConditionalExpression, LambdaExpression, ReactiveRef, Parameter,
    # Patterns
    Pattern, WildcardPattern, IdentifierPattern, LiteralPattern,
    ListPattern, MapPattern,
    # Statements
    Statement, Block, LetStatement, SetStatement, FunctionDeclaration,
    IfStatement, ForStatement, WhileStatement, MatchStatement, MatchCase,
    ReturnStatement, BreakStatement, ContinueStatement, OnStatement,
    EmitStatement, ImportStatement, ImportSpecifier, SchemaDeclaration,
    SchemaField, InstanceDeclaration, ExpressionStatement, Program,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_assignment_target,
    error_outside_loop,
)


# Tokens that may legally follow a statement on the same line. The closing
# brackets cover block-bodied lambdas passed as call arguments.
STATEMENT_FOLLOWERS = (
    TokenType.COMMA,
    TokenType.RPAREN,
    TokenType.RBRACKET,
    TokenType.RBRACE,
)


class Parser:
    """
    Recursive descent parser for Forge 2 with Python-style indentation.

    Usage:
        parser = Parser(tokens)
        program = parser.parse()

    Expression precedence, lowest to highest:
        if ... then ... else ...
        or
        and
        == !=
        < > <= >=
        + -
        * / %
        unary (not -)
        postfix (.name [index] (call))
    """

    EQUALITY_OPS = (TokenType.EQ, TokenType.NE)
    COMPARISON_OPS = (TokenType.LT, TokenType.GT, TokenType.LE, TokenType.GE)
    ADDITIVE_OPS = (TokenType.PLUS, TokenType.MINUS)
    MULTIPLICATIVE_OPS = (TokenType.STAR, TokenType.SLASH, TokenType.PERCENT)

    def __init__(self, tokens: List[Token], filename: Optional[str] = None,
                 source: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.source = source  # Original source, used for error excerpts
        self.pos = 0
        self.loop_depth = 0  # Nesting of for/while bodies in the current function

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._current().type in token_types

    def _check_ahead(self, token_type: TokenType, offset: int = 1) -> bool:
        """Check if token at current position + offset is of given type."""
        return self._peek(offset).type == token_type

    def _check_word(self, word: str) -> bool:
        """Check for an identifier with specific text (contextual keywords)."""
        return self._check(TokenType.IDENTIFIER) and self._current().value == word

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _skip_newlines(self) -> None:
        """Skip any NEWLINE tokens."""
        while self._check(TokenType.NEWLINE):
            self._advance()

    def _skip_layout(self) -> None:
        """Skip NEWLINE/INDENT/DEDENT inside bracketed multi-line literals."""
        while self._check_any(TokenType.NEWLINE, TokenType.INDENT, TokenType.DEDENT):
            self._advance()

    def _expect_newline_or_eof(self) -> None:
        """Expect the end of a statement, then skip any blank NEWLINEs."""
        if not self._check_any(TokenType.NEWLINE, TokenType.DEDENT, TokenType.EOF):
            # A statement inside a block lambda may be closed by the caller's bracket
            if not self._check_any(*STATEMENT_FOLLOWERS):
                self._error("newline or end of file")
        self._skip_newlines()

    def _source_line(self, token: Token) -> Optional[str]:
        if self.source is None:
            return None
        lines = self.source.splitlines()
        line = token.span.start.line
        if 1 <= line <= len(lines):
            return lines[line - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(
            expected, token.type.name, token.span, self._source_line(token)
        )

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to current position."""
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Program
    # =========================================================================

    def parse(self) -> Program:
        """Parse the entire token stream into a Program."""
        start = self._current()
        imports: List[ImportStatement] = []
        body: List[Statement] = []

        while not self._is_at_end():
            self._skip_newlines()
            if self._is_at_end():
                break

            stmt = self._parse_statement()
            if isinstance(stmt, ImportStatement):
                imports.append(stmt)
            else:
                body.append(stmt)

        return Program(span=self._span_from(start), imports=imports, body=body)

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a single statement."""
        self._skip_newlines()

        if self._check(TokenType.LET):
            return self._parse_let()
        if self._check(TokenType.SET):
            return self._parse_set()
        if self._check(TokenType.FN):
            return self._parse_function_declaration()
        if self._check(TokenType.IF):
            return self._parse_if()
        if self._check(TokenType.FOR):
            return self._parse_for()
        if self._check(TokenType.WHILE):
            return self._parse_while()
        if self._check(TokenType.MATCH):
            return self._parse_match()
        if self._check(TokenType.RETURN):
            return self._parse_return()
        if self._check_any(TokenType.BREAK, TokenType.CONTINUE):
            return self._parse_loop_control()
        if self._check(TokenType.ON):
            return self._parse_on()
        if self._check(TokenType.EMIT):
            return self._parse_emit()
        if self._check(TokenType.IMPORT):
            return self._parse_import()
        if self._check(TokenType.FROM):
            return self._parse_from_import()
        if self._check(TokenType.SCHEMA):
            return self._parse_schema()

        # Instance declaration: SchemaName instance_name:
        if (self._check(TokenType.IDENTIFIER)
                and self._check_ahead(TokenType.IDENTIFIER, 1)
                and self._check_ahead(TokenType.COLON, 2)):
            return self._parse_instance()

        start = self._current()
        expr = self._parse_expression()
        self._expect_newline_or_eof()
        return ExpressionStatement(span=self._span_from(start), expression=expr)

    def _parse_let(self) -> LetStatement:
        """Parse: let name = expr"""
        start = self._consume(TokenType.LET, "'let'")
        name = self._consume(TokenType.IDENTIFIER, "variable name").value
        self._consume(TokenType.ASSIGN, "'=' after variable name")
        value = self._parse_expression()
        self._expect_newline_or_eof()
        return LetStatement(span=self._span_from(start), name=name, value=value)

    def _parse_set(self) -> SetStatement:
        """Parse: set target: expr"""
        start = self._consume(TokenType.SET, "'set'")
        target_token = self._current()
        target = self._parse_expression()
        if not isinstance(target, (Identifier, MemberExpression, ReactiveRef)):
            raise error_invalid_assignment_target(
                self._span_from(target_token), self._source_line(target_token)
            )
        self._consume(TokenType.COLON, "':' after set target")
        value = self._parse_expression()
        self._expect_newline_or_eof()
        return SetStatement(span=self._span_from(start), target=target, value=value)

    def _parse_function_declaration(self) -> FunctionDeclaration:
        """Parse: fn name(params): block"""
        start = self._consume(TokenType.FN, "'fn'")
        name = self._consume(TokenType.IDENTIFIER, "function name").value
        return self._parse_function_rest(start, name)

    def _parse_function_rest(self, start: Token, name: str) -> FunctionDeclaration:
        params = self._parse_parameters()
        self._consume(TokenType.COLON, "':' after function parameters")
        body = self._parse_function_body()
        return FunctionDeclaration(
            span=self._span_from(start), name=name, params=params, body=body
        )

    def _parse_if(self) -> IfStatement:
        """Parse an if (or elif) statement; elif recurses into the alternate."""
        start = self._advance()  # 'if' or 'elif'

        test = self._parse_expression()
        self._consume(TokenType.COLON, "':' after condition")
        consequent = self._parse_block()

        alternate: Optional[Union[Block, IfStatement]] = None
        self._skip_newlines()
        if self._check(TokenType.ELIF):
            alternate = self._parse_if()
        elif self._match(TokenType.ELSE):
            self._consume(TokenType.COLON, "':' after else")
            alternate = self._parse_block()

        return IfStatement(
            span=self._span_from(start),
            test=test,
            consequent=consequent,
            alternate=alternate,
        )

    def _parse_for(self) -> ForStatement:
        """Parse: for name in expr: block"""
        start = self._consume(TokenType.FOR, "'for'")
        variable = self._consume(TokenType.IDENTIFIER, "loop variable").value
        self._consume(TokenType.IN, "'in' after loop variable")
        iterable = self._parse_expression()
        self._consume(TokenType.COLON, "':' after iterable")
        body = self._parse_loop_body()
        return ForStatement(
            span=self._span_from(start), variable=variable, iterable=iterable, body=body
        )

    def _parse_while(self) -> WhileStatement:
        """Parse: while expr: block"""
        start = self._consume(TokenType.WHILE, "'while'")
        test = self._parse_expression()
        self._consume(TokenType.COLON, "':' after while condition")
        body = self._parse_loop_body()
        return WhileStatement(span=self._span_from(start), test=test, body=body)

    def _parse_loop_control(self) -> Statement:
        """Parse: break | continue"""
        token = self._advance()
        if self.loop_depth == 0:
            raise error_outside_loop(token.lexeme, token.span, self._source_line(token))
        self._expect_newline_or_eof()
        if token.type == TokenType.BREAK:
            return BreakStatement(span=token.span)
        return ContinueStatement(span=token.span)

    def _parse_match(self) -> MatchStatement:
        """Parse a match statement with its indented cases."""
        start = self._consume(TokenType.MATCH, "'match'")
        discriminant = self._parse_expression()
        self._consume(TokenType.COLON, "':' after match expression")
        self._expect_newline_or_eof()
        self._consume(TokenType.INDENT, "indented block")

        cases: List[MatchCase] = []
        while not self._check(TokenType.DEDENT) and not self._is_at_end():
            self._skip_newlines()
            if self._check(TokenType.DEDENT):
                break
            cases.append(self._parse_match_case())

        self._match(TokenType.DEDENT)
        return MatchStatement(
            span=self._span_from(start), discriminant=discriminant, cases=cases
        )

    def _parse_match_case(self) -> MatchCase:
        start = self._current()
        pattern = self._parse_pattern()
        guard = None
        if self._match(TokenType.WHEN):
            guard = self._parse_expression()
        self._consume(TokenType.COLON, "':' after pattern")
        body = self._parse_block()
        return MatchCase(span=self._span_from(start), pattern=pattern, guard=guard, body=body)

    def _parse_pattern(self) -> Pattern:
        """Parse a match pattern."""
        start = self._current()

        if self._check_word("_"):
            self._advance()
            return WildcardPattern(span=start.span)

        if self._check(TokenType.IDENTIFIER):
            name = self._advance().value
            return IdentifierPattern(span=start.span, name=name)

        if self._match(TokenType.LBRACKET):
            elements: List[Pattern] = []
            while not self._check(TokenType.RBRACKET):
                elements.append(self._parse_pattern())
                if not self._check(TokenType.RBRACKET):
                    self._consume(TokenType.COMMA, "',' between patterns")
            self._consume(TokenType.RBRACKET, "']'")
            return ListPattern(span=self._span_from(start), elements=elements)

        if self._match(TokenType.LBRACE):
            return self._parse_map_pattern(start)

        value = self._parse_primary()
        return LiteralPattern(span=self._span_from(start), value=value)

    def _parse_map_pattern(self, start: Token) -> MapPattern:
        """Parse {key: pattern, key} after the opening brace."""
        entries = []
        self._skip_layout()
        while not self._check(TokenType.RBRACE):
            key_token = self._current()
            if self._check_any(TokenType.IDENTIFIER, TokenType.STRING):
                key = self._advance().value
            else:
                self._error("key in map pattern")

            if self._match(TokenType.COLON):
                entries.append((key, self._parse_pattern()))
            else:
                entries.append((key, IdentifierPattern(span=key_token.span, name=key)))

            self._skip_layout()
            if self._match(TokenType.COMMA):
                self._skip_layout()

        self._consume(TokenType.RBRACE, "'}'")
        return MapPattern(span=self._span_from(start), entries=entries)

    def _parse_return(self) -> ReturnStatement:
        """Parse: return [expr]"""
        start = self._consume(TokenType.RETURN, "'return'")
        argument = None
        if not self._check_any(TokenType.NEWLINE, TokenType.DEDENT, TokenType.EOF):
            argument = self._parse_expression()
        self._expect_newline_or_eof()
        return ReturnStatement(span=self._span_from(start), argument=argument)

    def _parse_on(self) -> OnStatement:
        """Parse: on event [when condition]: block"""
        start = self._consume(TokenType.ON, "'on'")
        event = self._parse_expression()
        condition = None
        if self._match(TokenType.WHEN):
            condition = self._parse_expression()
        self._consume(TokenType.COLON, "':' after event")
        body = self._parse_function_body()
        return OnStatement(
            span=self._span_from(start), event=event, condition=condition, body=body
        )

    def _parse_emit(self) -> EmitStatement:
        """Parse: emit event [{data}]"""
        start = self._consume(TokenType.EMIT, "'emit'")
        event = self._parse_expression()
        data = None
        if self._check(TokenType.LBRACE):
            data = self._parse_map_literal()
        self._expect_newline_or_eof()
        return EmitStatement(span=self._span_from(start), event=event, data=data)

    def _parse_import(self) -> ImportStatement:
        """Parse: import "path" [as name]"""
        start = self._consume(TokenType.IMPORT, "'import'")
        source = self._consume(TokenType.STRING, "module path").value

        namespace = None
        if self._check_word("as"):
            self._advance()
            namespace = self._consume(TokenType.IDENTIFIER, "namespace name").value

        self._expect_newline_or_eof()
        return ImportStatement(span=self._span_from(start), source=source, namespace=namespace)

    def _parse_from_import(self) -> ImportStatement:
        """Parse: from "path" import {a [as b], ...} | from "path" import name"""
        start = self._consume(TokenType.FROM, "'from'")
        source = self._consume(TokenType.STRING, "module path").value
        self._consume(TokenType.IMPORT, "'import'")

        specifiers: List[ImportSpecifier] = []
        if self._match(TokenType.LBRACE):
            while not self._check(TokenType.RBRACE):
                specifiers.append(self._parse_import_specifier())
                if not self._check(TokenType.RBRACE):
                    self._consume(TokenType.COMMA, "',' between imports")
            self._consume(TokenType.RBRACE, "'}'")
        else:
            token = self._consume(TokenType.IDENTIFIER, "import name")
            specifiers.append(ImportSpecifier(span=token.span, imported=token.value, local=token.value))

        self._expect_newline_or_eof()
        return ImportStatement(span=self._span_from(start), source=source, specifiers=specifiers)

    def _parse_import_specifier(self) -> ImportSpecifier:
        start = self._current()
        imported = self._consume(TokenType.IDENTIFIER, "import name").value
        local = imported
        if self._check_word("as"):
            self._advance()
            local = self._consume(TokenType.IDENTIFIER, "local name").value
        return ImportSpecifier(span=self._span_from(start), imported=imported, local=local)

    # =========================================================================
    # Schemas and Instances
    # =========================================================================

    def _parse_schema(self) -> SchemaDeclaration:
        """Parse a schema declaration.

        Syntax:
            schema Door extends Entity:
                required:
                    id: string
                optional:
                    state: enum("open", "closed") = "closed"
                locked: bool = false
                fn toggle():
                    ...
                describe: fn():
                    ...
        """
        start = self._consume(TokenType.SCHEMA, "'schema'")
        name = self._consume(TokenType.IDENTIFIER, "schema name").value

        extends = None
        if self._match(TokenType.EXTENDS):
            extends = self._consume(TokenType.IDENTIFIER, "parent schema name").value

        self._consume(TokenType.COLON, "':' after schema name")
        self._expect_newline_or_eof()
        self._consume(TokenType.INDENT, "indented block")

        fields: List[SchemaField] = []
        methods: List[FunctionDeclaration] = []

        while not self._check(TokenType.DEDENT) and not self._is_at_end():
            self._skip_newlines()
            if self._check(TokenType.DEDENT):
                break

            if self._check_word("required") or self._check_word("optional"):
                required = self._advance().value == "required"
                self._consume(TokenType.COLON, "':' after section name")
                self._expect_newline_or_eof()
                self._consume(TokenType.INDENT, "indented block")
                while not self._check(TokenType.DEDENT) and not self._is_at_end():
                    self._skip_newlines()
                    if self._check(TokenType.DEDENT):
                        break
                    fields.append(self._parse_schema_field(required))
                self._match(TokenType.DEDENT)
                continue

            if self._check(TokenType.FN):
                methods.append(self._parse_function_declaration())
            elif self._check(TokenType.IDENTIFIER) and self._check_ahead(TokenType.COLON):
                if self._check_ahead(TokenType.FN, 2):
                    # Method written as: name: fn(params):
                    method_start = self._advance()
                    self._advance()  # ':'
                    self._advance()  # 'fn'
                    methods.append(self._parse_function_rest(method_start, method_start.value))
                else:
                    # Fields outside a section are optional
                    fields.append(self._parse_schema_field(False))
            else:
                # Unknown content inside a schema body is ignored
                self._advance()

        self._match(TokenType.DEDENT)
        return SchemaDeclaration(
            span=self._span_from(start),
            name=name,
            extends=extends,
            fields=fields,
            methods=methods,
        )

    def _parse_schema_field(self, required: bool) -> SchemaField:
        """Parse: name: type [= default]"""
        start = self._consume(TokenType.IDENTIFIER, "field name")
        self._consume(TokenType.COLON, "':' after field name")
        type_node = self._parse_type()

        default = None
        if self._match(TokenType.ASSIGN):
            default = self._parse_expression()

        self._expect_newline_or_eof()
        return SchemaField(
            span=self._span_from(start),
            name=start.value,
            type=type_node,
            required=required,
            default=default,
        )

    def _parse_type(self) -> TypeNode:
        """Parse a type annotation: list<T>, map<K, V>, enum(...), vecN or a name."""
        start = self._consume(TokenType.IDENTIFIER, "type name")
        name = start.value

        if name == "list" and self._match(TokenType.LT):
            element = self._parse_type()
            self._consume(TokenType.GT, "'>'")
            return ListType(span=self._span_from(start), element=element)

        if name == "map" and self._match(TokenType.LT):
            key = self._parse_type()
            self._consume(TokenType.COMMA, "','")
            value = self._parse_type()
            self._consume(TokenType.GT, "'>'")
            return MapType(span=self._span_from(start), key=key, value=value)

        if name == "enum" and self._match(TokenType.LPAREN):
            values: List[str] = []
            while not self._check(TokenType.RPAREN):
                values.append(self._consume(TokenType.STRING, "enum value").value)
                if not self._check(TokenType.RPAREN):
                    self._consume(TokenType.COMMA, "','")
            self._consume(TokenType.RPAREN, "')'")
            return EnumType(span=self._span_from(start), values=values)

        if name.startswith("vec"):
            suffix = name[3:]
            size = int(suffix) if suffix.isdigit() and int(suffix) > 0 else None
            return VecType(span=start.span, size=size)

        return SimpleType(span=start.span, name=name)

    def _parse_instance(self) -> InstanceDeclaration:
        """Parse: SchemaName instance_name: followed by indented field lines."""
        start = self._consume(TokenType.IDENTIFIER, "schema name")
        name = self._consume(TokenType.IDENTIFIER, "instance name").value
        self._consume(TokenType.COLON, "':'")
        self._expect_newline_or_eof()
        self._consume(TokenType.INDENT, "indented block")

        fields = {}
        while not self._check(TokenType.DEDENT) and not self._is_at_end():
            self._skip_newlines()
            if self._check(TokenType.DEDENT):
                break
            field_name = self._consume_property_name()
            self._consume(TokenType.COLON, "':' after field name")
            fields[field_name] = self._parse_expression()
            self._expect_newline_or_eof()

        self._match(TokenType.DEDENT)
        return InstanceDeclaration(
            span=self._span_from(start), schema=start.value, name=name, fields=fields
        )

    # =========================================================================
    # Blocks and Parameters
    # =========================================================================

    def _parse_block(self) -> Block:
        """Parse an indented block following a ':'."""
        start = self._current()
        self._expect_newline_or_eof()
        self._consume(TokenType.INDENT, "indented block")

        statements: List[Statement] = []
        while not self._check(TokenType.DEDENT) and not self._is_at_end():
            self._skip_newlines()
            if self._check(TokenType.DEDENT):
                break
            statements.append(self._parse_statement())

        self._match(TokenType.DEDENT)
        return Block(span=self._span_from(start), statements=statements)

    def _parse_loop_body(self) -> Block:
        self.loop_depth += 1
        try:
            return self._parse_block()
        finally:
            self.loop_depth -= 1

    def _parse_function_body(self) -> Block:
        """Function, lambda and handler bodies do not see enclosing loops."""
        saved = self.loop_depth
        self.loop_depth = 0
        try:
            return self._parse_block()
        finally:
            self.loop_depth = saved

    def _parse_parameters(self) -> List[Parameter]:
        """Parse: (name [= default], ...)"""
        self._consume(TokenType.LPAREN, "'('")
        params: List[Parameter] = []

        while not self._check(TokenType.RPAREN):
            start = self._consume(TokenType.IDENTIFIER, "parameter name")
            default = None
            if self._match(TokenType.ASSIGN):
                default = self._parse_expression()
            params.append(Parameter(span=self._span_from(start), name=start.value, default=default))
            if not self._check(TokenType.RPAREN):
                self._consume(TokenType.COMMA, "','")

        self._consume(TokenType.RPAREN, "')'")
        return params

    # =========================================================================
    # Expressions
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_conditional()

    def _parse_conditional(self) -> Expression:
        """Parse: if test then consequent else alternate"""
        if self._check(TokenType.IF):
            start = self._advance()
            test = self._parse_or()
            self._consume(TokenType.THEN, "'then'")
            consequent = self._parse_or()
            self._consume(TokenType.ELSE, "'else'")
            alternate = self._parse_conditional()
            return ConditionalExpression(
                span=self._span_from(start),
                test=test,
                consequent=consequent,
                alternate=alternate,
            )
        return self._parse_or()

    def _parse_binary(self, operand, operators) -> Expression:
        """Parse a left-associative chain of one precedence level."""
        start = self._current()
        left = operand()
        while self._check_any(*operators):
            operator = self._advance().lexeme
            right = operand()
            left = BinaryExpression(
                span=self._span_from(start), operator=operator, left=left, right=right
            )
        return left

    def _parse_or(self) -> Expression:
        return self._parse_binary(self._parse_and, (TokenType.OR,))

    def _parse_and(self) -> Expression:
        return self._parse_binary(self._parse_equality, (TokenType.AND,))

    def _parse_equality(self) -> Expression:
        return self._parse_binary(self._parse_comparison, self.EQUALITY_OPS)

    def _parse_comparison(self) -> Expression:
        return self._parse_binary(self._parse_additive, self.COMPARISON_OPS)

    def _parse_additive(self) -> Expression:
        return self._parse_binary(self._parse_multiplicative, self.ADDITIVE_OPS)

    def _parse_multiplicative(self) -> Expression:
        return self._parse_binary(self._parse_unary, self.MULTIPLICATIVE_OPS)

    def _parse_unary(self) -> Expression:
        """Parse: not expr | -expr"""
        if self._check_any(TokenType.NOT, TokenType.MINUS):
            start = self._advance()
            operand = self._parse_unary()
            return UnaryExpression(
                span=self._span_from(start), operator=start.lexeme, operand=operand
            )
        return self._parse_postfix()

    def _parse_postfix(self) -> Expression:
        """Parse member access, indexing and calls."""
        start = self._current()
        expr = self._parse_primary()

        while True:
            if self._match(TokenType.DOT):
                name = self._consume_property_name()
                expr = MemberExpression(
                    span=self._span_from(start), object=expr, property=name, computed=False
                )
            elif self._match(TokenType.LBRACKET):
                index = self._parse_expression()
                self._consume(TokenType.RBRACKET, "']'")
                expr = MemberExpression(
                    span=self._span_from(start), object=expr, property=index, computed=True
                )
            elif self._check(TokenType.LPAREN):
                args = self._parse_arguments()
                expr = CallExpression(span=self._span_from(start), callee=expr, arguments=args)
            else:
                break

        return expr

    def _consume_property_name(self) -> str:
        """Property names may be identifiers or keywords (voxel.set, x.on)."""
        token = self._current()
        if token.type == TokenType.IDENTIFIER or token.type in PROPERTY_KEYWORDS:
            self._advance()
            return token.lexeme
        self._error("property name")

    def _parse_arguments(self) -> List[Expression]:
        self._consume(TokenType.LPAREN, "'('")
        args: List[Expression] = []
        while not self._check(TokenType.RPAREN):
            args.append(self._parse_expression())
            if not self._check(TokenType.RPAREN):
                self._consume(TokenType.COMMA, "','")
        self._consume(TokenType.RPAREN, "')'")
        return args

    def _parse_primary(self) -> Expression:
        """Parse a primary expression."""
        token = self._current()

        if self._check(TokenType.DOLLAR):
            return self._parse_reactive_ref()

        if self._check(TokenType.FN):
            return self._parse_lambda()

        if self._match(TokenType.NUMBER):
            return NumberLiteral(span=token.span, value=token.value)

        if self._match(TokenType.STRING):
            if token.lexeme.startswith("#"):
                return ColorLiteral(span=token.span, value=token.value)
            return StringLiteral(span=token.span, value=token.value)

        if self._match(TokenType.BOOLEAN):
            return BooleanLiteral(span=token.span, value=token.value)

        if self._match(TokenType.NULL):
            return NullLiteral(span=token.span)

        if self._match(TokenType.IDENTIFIER):
            return Identifier(span=token.span, name=token.value)

        if self._check(TokenType.LPAREN):
            return self._parse_paren_or_vector()

        if self._check(TokenType.LBRACKET):
            return self._parse_list_literal()

        if self._check(TokenType.LBRACE):
            return self._parse_map_literal()

        self._error("expression")

    def _parse_reactive_ref(self) -> ReactiveRef:
        """Parse: $name.path.to.field"""
        start = self._consume(TokenType.DOLLAR, "'$'")
        path = [self._consume(TokenType.IDENTIFIER, "identifier after '$'").value]
        while self._match(TokenType.DOT):
            path.append(self._consume(TokenType.IDENTIFIER, "property name").value)
        return ReactiveRef(span=self._span_from(start), path=path)

    def _parse_lambda(self) -> LambdaExpression:
        """Parse: fn(params) -> expr | fn(params): block"""
        start = self._consume(TokenType.FN, "'fn'")
        params = self._parse_parameters()

        if self._match(TokenType.ARROW):
            body = self._parse_expression()
        elif self._match(TokenType.COLON):
            body = self._parse_function_body()
        else:
            self._error("'->' or ':' after lambda parameters")

        return LambdaExpression(span=self._span_from(start), params=params, body=body)

    def _parse_paren_or_vector(self) -> Expression:
        """Parse (expr) grouping, or a vector (a, b, ...) / ()."""
        start = self._consume(TokenType.LPAREN, "'('")

        if self._match(TokenType.RPAREN):
            return VectorLiteral(span=self._span_from(start), elements=[])

        first = self._parse_expression()

        if self._check(TokenType.COMMA):
            elements = [first]
            while self._match(TokenType.COMMA):
                elements.append(self._parse_expression())
            self._consume(TokenType.RPAREN, "')'")
            return VectorLiteral(span=self._span_from(start), elements=elements)

        self._consume(TokenType.RPAREN, "')'")
        return first

    def _parse_list_literal(self) -> ListLiteral:
        """Parse: [a, b, c]"""
        start = self._consume(TokenType.LBRACKET, "'['")
        elements: List[Expression] = []
        while not self._check(TokenType.RBRACKET):
            elements.append(self._parse_expression())
            if not self._check(TokenType.RBRACKET):
                self._consume(TokenType.COMMA, "','")
        self._consume(TokenType.RBRACKET, "']'")
        return ListLiteral(span=self._span_from(start), elements=elements)

    def _parse_map_literal(self) -> MapLiteral:
        """Parse a map literal; may span several lines, commas are optional.

        Keys:
            {name: v}      identifier key
            {name}         shorthand for {name: name}
            {"a b": v}     string key
            {[expr]: v}    computed key
        """
        start = self._consume(TokenType.LBRACE, "'{'")
        entries: List[MapEntry] = []
        self._skip_layout()

        while not self._check(TokenType.RBRACE):
            key_token = self._current()
            if self._match(TokenType.IDENTIFIER):
                key = key_token.value
                if self._match(TokenType.COLON):
                    value = self._parse_expression()
                else:
                    value = Identifier(span=key_token.span, name=key)
            elif self._match(TokenType.STRING):
                key = key_token.value
                self._consume(TokenType.COLON, "':'")
                value = self._parse_expression()
            elif self._match(TokenType.LBRACKET):
                key = self._parse_expression()
                self._consume(TokenType.RBRACKET, "']'")
                self._consume(TokenType.COLON, "':'")
                value = self._parse_expression()
            else:
                self._error("key in map literal")

            entries.append(MapEntry(span=self._span_from(key_token), key=key, value=value))

            self._skip_layout()
            if self._match(TokenType.COMMA):
                self._skip_layout()

        self._consume(TokenType.RBRACE, "'}'")
        return MapLiteral(span=self._span_from(start), entries=entries)


def parse(tokens: List[Token], filename: Optional[str] = None,
          source: Optional[str] = None) -> Program:
    """
    Convenience function to parse tokens into a Program.

    Args:
        tokens: List of tokens from lexer
        filename: Optional filename for error messages
        source: Optional source text for error excerpts

    Returns:
        Parsed Program AST

    Raises:
        ParserError: On the first syntax error
    """
    parser = Parser(tokens, filename, source)
    return parser.parse()
