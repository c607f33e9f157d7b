"""
Lexer for the Forge 2 scripting language.

Converts source text into a flat stream of tokens for the parser.
Supports:
- Python-style indentation (INDENT/DEDENT tokens, tab = 2 spaces)
- Significant newlines (NEWLINE tokens, never doubled)
- Line comments (#) and color literals (#ff8800)
- String literals with escape sequences
- Number literals with an optional sign
- All keywords and operators
"""

from typing import List, Optional
from .tokens import (
    Token, TokenType, SourceLocation, SourceSpan, KEYWORDS, OPERAND_END_TOKENS,
)
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
)


DIGITS = "0123456789"
HEX_DIGITS = "0123456789abcdefABCDEF"
TAB_WIDTH = 2

ESCAPE_CHARS = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '\\': '\\',
    '"': '"',
    "'": "'",
}

TWO_CHAR_TOKENS = {
    '->': TokenType.ARROW,
    '<=': TokenType.LE,
    '>=': TokenType.GE,
    '==': TokenType.EQ,
    '!=': TokenType.NE,
}

SINGLE_CHAR_TOKENS = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    ':': TokenType.COLON,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    '=': TokenType.ASSIGN,
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
    '%': TokenType.PERCENT,
    '<': TokenType.LT,
    '>': TokenType.GT,
    '@': TokenType.AT,
    '#': TokenType.HASH,
    '$': TokenType.DOLLAR,
}


def _is_identifier_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == '_')


def _is_identifier_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == '_')


class Lexer:
    """
    Tokenizer for Forge source with Python-style indentation.

    INDENT and DEDENT tokens are synthesized from changes in leading
    whitespace. Blank lines and comment-only lines never affect the
    indentation stack. Over a full tokenization the number of INDENT
    tokens always equals the number of DEDENT tokens.

    Usage:
        lexer = Lexer(source_code, "door.forge")
        tokens = lexer.tokenize()
    """

    def __init__(self, source: str, filename: Optional[str] = "<input>"):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list

        self.tokens: List[Token] = []

        # Indentation tracking
        self.indent_stack = [0]  # Stack of indentation widths (starts at 0)
        self.at_line_start = True

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        """Check if we've reached end of source."""
        return self.pos >= len(self.source)

    def _last_type(self) -> Optional[TokenType]:
        """Type of the most recently produced token, if any."""
        if self.tokens:
            return self.tokens[-1].type
        return None

    def _add_token(self, token_type: TokenType, value, start: SourceLocation,
                   lexeme: Optional[str] = None) -> Token:
        """Create a token spanning from start to the current position."""
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        token = Token(token_type, value, lexeme, self._span(start))
        self.tokens.append(token)
        return token

    def _starts_color(self) -> bool:
        """'#' immediately followed by a hex digit is a color, not a comment."""
        return self._peek() == '#' and self._peek(1) in HEX_DIGITS and self._peek(1) != '\0'

    def _skip_comment(self) -> None:
        """Skip a single-line comment (# to end of line)."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_whitespace_within_line(self) -> None:
        """Skip horizontal whitespace (spaces, tabs, carriage returns)."""
        while not self._is_at_end() and self._peek() in ' \t\r':
            self._advance()

    def _handle_indentation(self) -> None:
        """
        Measure leading whitespace of a logical line and queue INDENT or
        DEDENT tokens. Blank and comment-only lines are left alone.
        """
        indent = 0
        while not self._is_at_end() and self._peek() in ' \t':
            indent += TAB_WIDTH if self._peek() == '\t' else 1
            self._advance()

        # Skip blank lines and comment-only lines
        if self._is_at_end() or self._peek() in '\r\n':
            return
        if self._peek() == '#' and not self._starts_color():
            return

        start = self._location()
        current_indent = self.indent_stack[-1]

        if indent > current_indent:
            self.indent_stack.append(indent)
            self._add_token(TokenType.INDENT, None, start, "")
        elif indent < current_indent:
            # Mismatched dedent targets are accepted as-is
            while len(self.indent_stack) > 1 and self.indent_stack[-1] > indent:
                self.indent_stack.pop()
                self._add_token(TokenType.DEDENT, None, start, "")

    def _scan_newline(self) -> None:
        """Consume a line break, emitting at most one NEWLINE in a row."""
        start = self._location()
        self._advance()
        last = self._last_type()
        if last is not None and last not in (TokenType.NEWLINE, TokenType.INDENT, TokenType.DEDENT):
            self._add_token(TokenType.NEWLINE, None, start, "\\n")
        self.at_line_start = True

    def _scan_string(self, quote: str) -> None:
        """Scan a string literal."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != quote:
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()  # consume backslash
                if self._is_at_end():
                    break
                escaped = self._advance()
                chars.append(ESCAPE_CHARS.get(escaped, escaped))
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        self._add_token(TokenType.STRING, ''.join(chars), start)

    def _scan_color(self) -> None:
        """Scan a color literal like #ff8800 (kept as a string with its '#')."""
        start = self._location()
        self._advance()  # consume '#'
        while self._peek() in HEX_DIGITS and not self._is_at_end():
            self._advance()
        lexeme = self.source[start.offset:self.pos]
        self._add_token(TokenType.STRING, lexeme, start, lexeme)

    def _scan_number(self) -> None:
        """Scan a numeric literal with optional sign and fraction."""
        start = self._location()

        if self._peek() == '-':
            self._advance()

        while self._peek() in DIGITS and not self._is_at_end():
            self._advance()

        is_float = False
        if self._peek() == '.' and self._peek(1) in DIGITS and self._peek(1) != '\0':
            is_float = True
            self._advance()  # consume '.'
            while self._peek() in DIGITS and not self._is_at_end():
                self._advance()

        lexeme = self.source[start.offset:self.pos]
        value = float(lexeme) if is_float else int(lexeme)
        self._add_token(TokenType.NUMBER, value, start, lexeme)

    def _scan_identifier_or_keyword(self) -> None:
        """Scan an identifier or keyword."""
        start = self._location()

        while not self._is_at_end() and _is_identifier_char(self._peek()):
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        token_type = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)

        if token_type == TokenType.BOOLEAN:
            value = lexeme == "true"
        elif token_type == TokenType.NULL:
            value = None
        else:
            value = lexeme
        self._add_token(token_type, value, start, lexeme)

    def _scan_operator(self) -> None:
        """Scan punctuation, matching two-character operators first."""
        start = self._location()
        two_chars = self._peek() + self._peek(1)
        if two_chars in TWO_CHAR_TOKENS:
            self._advance()
            self._advance()
            self._add_token(TWO_CHAR_TOKENS[two_chars], two_chars, start)
            return

        ch = self._advance()
        if ch in SINGLE_CHAR_TOKENS:
            self._add_token(SINGLE_CHAR_TOKENS[ch], ch, start)
            return

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def _starts_number(self) -> bool:
        ch = self._peek()
        if ch in DIGITS:
            return True
        # A '-' right after an operand is subtraction, not a sign
        return (
            ch == '-'
            and self._peek(1) in DIGITS
            and self._peek(1) != '\0'
            and self._last_type() not in OPERAND_END_TOKENS
        )

    def _scan_token(self) -> None:
        """Scan the next token (or skip whitespace/comments)."""
        if self.at_line_start:
            self.at_line_start = False
            self._handle_indentation()

        self._skip_whitespace_within_line()
        if self._is_at_end():
            return

        ch = self._peek()

        # Color literals are checked before comments since both start with #
        if self._starts_color():
            self._scan_color()
        elif ch == '#':
            self._skip_comment()
        elif ch == '\n':
            self._scan_newline()
        elif self._starts_number():
            self._scan_number()
        elif ch in '"\'':
            self._scan_string(ch)
        elif _is_identifier_start(ch):
            self._scan_identifier_or_keyword()
        else:
            self._scan_operator()

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        while not self._is_at_end():
            self._scan_token()

        # At EOF, close every open indentation level
        start = self._location()
        while len(self.indent_stack) > 1:
            self.indent_stack.pop()
            self._add_token(TokenType.DEDENT, None, start, "")

        self._add_token(TokenType.EOF, None, self._location(), "")
        return self.tokens


def tokenize(source: str, filename: Optional[str] = "<input>") -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Filename used in locations and error messages

    Returns:
        List of tokens ending with EOF

    Raises:
        LexerError: On an unterminated string or unrecognized character
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
