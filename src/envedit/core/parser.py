"""
Document parser and serializer for .env files.

The parser never fails on malformed input: lines that do not have the shape
``[export ]KEY=value`` with a valid identifier are dropped. The serializer
normalizes layout but guarantees that re-parsing its output yields the same
``(key, value, exported)`` sequence.
"""

import logging
from typing import List

from .lexer import HORIZONTAL_WHITESPACE, Lexer, Token, TokenType
from .model import Blank, Comment, Entry, EnvFile, KeyValue


logger = logging.getLogger(__name__)

ESCAPE_ON_WRITE = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


class Parser:
    """
    Builds an EnvFile from lexer tokens, one physical line at a time.

    A multiline quoted value consumes several physical lines; the lexer's
    line counter keeps later entries' line numbers accurate.
    """

    def __init__(self, content: str):
        self.lexer = Lexer(content)
        self.entries: List[Entry] = []
        self.dropped_lines: List[int] = []

    def parse(self) -> List[Entry]:
        while self._parse_line():
            pass
        if self.dropped_lines:
            logger.debug("Dropped %d malformed line(s): %s", len(self.dropped_lines), self.dropped_lines)
        return self.entries

    def _parse_line(self) -> bool:
        """Parse one logical line. Returns False at end of input."""
        line = self.lexer.line
        token = self.lexer.next_token()

        if token.type == TokenType.EOF:
            return False

        if token.type == TokenType.NEWLINE:
            self.entries.append(Blank(line=line))
            return True

        if token.type == TokenType.COMMENT:
            self.entries.append(Comment(text=token.raw, line=line))
            self._finish_line(self.lexer.next_token())
            return True

        exported = False
        if token.type == TokenType.EXPORT:
            exported = True
            token = self.lexer.next_token()

        if token.type != TokenType.KEY:
            self.dropped_lines.append(line)
            self._finish_line(token)
            return True

        key = token.value
        span = self.lexer.read_value()
        inline_comment = ""
        token = self.lexer.next_token()
        if token.type == TokenType.COMMENT:
            inline_comment = token.value
            token = self.lexer.next_token()

        self.entries.append(KeyValue.create(
            key=key,
            value=span.text,
            exported=exported,
            inline_comment=inline_comment,
            line=line,
        ))
        self._finish_line(token)
        return True

    def _finish_line(self, token: Token):
        """Discard whatever remains of the line after ``token``."""
        if token.type in (TokenType.NEWLINE, TokenType.EOF):
            return
        self.lexer.skip_line()


def parse(content: str, path: str = "") -> EnvFile:
    """
    Parse .env content into an EnvFile.

    Args:
        content: String content of a .env file
        path: Optional path recorded on the document

    Returns:
        EnvFile with entries in document order
    """
    entries = Parser(content).parse()
    return EnvFile(entries=entries, path=path)


def needs_quotes(value: str) -> bool:
    """Return True if writing the value bare would not parse back to it."""
    if not value:
        return False
    if value != value.strip(HORIZONTAL_WHITESPACE):
        return True
    if value[0] in ('"', "'"):
        return True
    return any(ch in value for ch in "#\n\r")


def format_value(value: str) -> str:
    """Render a value for writing, double-quoting and escaping only when needed."""
    if not needs_quotes(value):
        return value
    escaped = "".join(ESCAPE_ON_WRITE.get(ch, ch) for ch in value)
    return f'"{escaped}"'


def render_entry(entry: Entry) -> str:
    """Render a single entry as one line of text (without the newline)."""
    if isinstance(entry, KeyValue):
        prefix = "export " if entry.exported else ""
        suffix = f" {entry.inline_comment}" if entry.inline_comment else ""
        return f"{prefix}{entry.key}={format_value(entry.value)}{suffix}"
    if isinstance(entry, Comment):
        return entry.text
    if isinstance(entry, Blank):
        return ""
    raise TypeError(f"Unknown entry type: {type(entry).__name__}")


def serialize(env_file: EnvFile) -> str:
    """
    Render an EnvFile back to .env text.

    Every entry becomes one line followed by a newline, including the last.
    """
    return "".join(render_entry(entry) + "\n" for entry in env_file.entries)