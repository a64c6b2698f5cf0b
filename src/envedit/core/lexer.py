"""
Character-level lexer for .env files.

Produces a stream of structural tokens (export markers, keys, comments,
newlines). Values are not tokenized generically: their syntax depends on
having just seen ``KEY=``, so the parser calls ``Lexer.read_value()`` right
after consuming a KEY token.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List


HORIZONTAL_WHITESPACE = " \t\r\f\v"
EXPORT_KEYWORD = "export"

# Escapes decoded inside double quotes; any other "\x" yields "x".
ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


def _is_identifier_start(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def _is_identifier_char(ch: str) -> bool:
    return _is_identifier_start(ch) or ("0" <= ch <= "9")


class TokenType(Enum):
    """Token types for .env file lexing."""
    EXPORT = "export"
    KEY = "key"
    VALUE = "value"
    COMMENT = "comment"
    NEWLINE = "newline"
    EOF = "eof"


@dataclass
class Token:
    """A single token in the .env file."""
    type: TokenType
    value: str = ""
    line: int = 1
    col: int = 1
    raw: str = ""  # Source text including leading whitespace

    def __repr__(self):
        return f"Token({self.type.value}, {self.value!r}, line={self.line})"


@dataclass
class ValueSpan:
    """A value read after ``KEY=``."""
    text: str
    quoted: bool = False


class Lexer:
    """
    Lexer for .env content.

    Tracks the current position and 1-based line number. The line counter
    advances on every newline consumed, including newlines crossed inside a
    multiline quoted value.
    """

    def __init__(self, content: str):
        self.content = content
        self.pos = 0
        self.line = 1
        self.line_start = 0

    @property
    def current(self) -> str:
        if self.pos >= len(self.content):
            return ""
        return self.content[self.pos]

    def peek(self, offset: int = 1) -> str:
        index = self.pos + offset
        if index >= len(self.content):
            return ""
        return self.content[index]

    def _advance(self) -> str:
        ch = self.current
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.line_start = self.pos
        return ch

    def _skip_whitespace(self):
        while self.current and self.current in HORIZONTAL_WHITESPACE:
            self.pos += 1

    def _read_identifier(self) -> str:
        start = self.pos
        while self.current and _is_identifier_char(self.current):
            self.pos += 1
        return self.content[start:self.pos]

    def _read_to_end_of_line(self) -> str:
        start = self.pos
        while self.current and self.current != "\n":
            self.pos += 1
        return self.content[start:self.pos]

    def _read_word(self) -> str:
        start = self.pos
        while self.current and self.current not in HORIZONTAL_WHITESPACE + "\n#":
            self.pos += 1
        return self.content[start:self.pos]

    def next_token(self) -> Token:
        """Return the next structural token."""
        raw_start = self.pos
        self._skip_whitespace()

        token = Token(
            type=TokenType.EOF,
            line=self.line,
            col=self.pos - self.line_start + 1,
        )
        ch = self.current

        if not ch:
            return token

        if ch == "\n":
            self._advance()
            token.type = TokenType.NEWLINE
            token.value = "\n"
        elif ch == "#":
            token.type = TokenType.COMMENT
            token.value = self._read_to_end_of_line().rstrip("\r")
        elif _is_identifier_start(ch):
            identifier = self._read_identifier()
            if identifier == EXPORT_KEYWORD and self.current == " ":
                token.type = TokenType.EXPORT
                token.value = identifier
            else:
                self._skip_whitespace()
                if self.current == "=":
                    self.pos += 1
                    token.type = TokenType.KEY
                    token.value = identifier
                else:
                    token.type = TokenType.VALUE
                    token.value = identifier
        else:
            token.type = TokenType.VALUE
            token.value = self._read_word()

        token.raw = self.content[raw_start:self.pos].rstrip("\r")
        return token

    def skip_line(self):
        """Discard everything up to and including the next newline."""
        self._read_to_end_of_line()
        if self.current == "\n":
            self._advance()

    def read_value(self) -> ValueSpan:
        """
        Read the value that follows a KEY token.

        Returns:
            ValueSpan with the decoded text and whether it was quoted.
        """
        while self.current in (" ", "\t"):
            self.pos += 1

        ch = self.current
        if ch in ('"', "'"):
            self.pos += 1
            return ValueSpan(text=self._read_quoted(ch), quoted=True)

        start = self.pos
        while self.current and self.current not in ("\n", "#"):
            self.pos += 1
        return ValueSpan(text=self.content[start:self.pos].rstrip(HORIZONTAL_WHITESPACE))

    def _read_quoted(self, quote: str) -> str:
        # Unterminated quotes run to end of input.
        chars: List[str] = []
        decode = quote == '"'

        while self.current:
            ch = self.current
            if ch == quote:
                self.pos += 1
                break
            if decode and ch == "\\" and self.peek():
                escaped = self.peek()
                self.pos += 1
                self._advance()
                chars.append(ESCAPES.get(escaped, escaped))
                continue
            chars.append(self._advance())

        return "".join(chars)

    def tokenize(self) -> List[Token]:
        """
        Lex the whole content.

        Values are read after each KEY token and emitted as VALUE tokens so
        the stream can be inspected without a parser.

        Returns:
            List of tokens ending with an EOF token.
        """
        tokens = []
        while True:
            token = self.next_token()
            tokens.append(token)
            if token.type == TokenType.EOF:
                break
            if token.type == TokenType.KEY:
                line = self.line
                span = self.read_value()
                tokens.append(Token(type=TokenType.VALUE, value=span.text, line=line))
        return tokens


def tokenize(content: str) -> List[Token]:
    """
    Tokenize .env content.

    Args:
        content: String content of a .env file

    Returns:
        List of Token objects
    """
    return Lexer(content).tokenize()
