"""
Tests for the envedit lexer and value reader.
"""

import pytest
from envedit.core.lexer import Lexer, TokenType, tokenize


def types(tokens):
    return [token.type for token in tokens]


class TestTokens:
    """Test structural token classification."""

    def test_empty_input(self):
        """Empty input yields only EOF."""
        assert types(tokenize("")) == [TokenType.EOF]

    def test_key_value(self):
        """A key is an identifier followed by '='."""
        tokens = tokenize("KEY=value\n")
        assert types(tokens) == [TokenType.KEY, TokenType.VALUE, TokenType.NEWLINE, TokenType.EOF]
        assert tokens[0].value == "KEY"
        assert tokens[1].value == "value"

    def test_export_marker(self):
        """'export ' before a key is its own token."""
        tokens = tokenize("export NODE_ENV=production")
        assert types(tokens) == [TokenType.EXPORT, TokenType.KEY, TokenType.VALUE, TokenType.EOF]
        assert tokens[1].value == "NODE_ENV"

    def test_export_as_key(self):
        """'export=' is an ordinary key."""
        tokens = tokenize("export=1")
        assert tokens[0].type == TokenType.KEY
        assert tokens[0].value == "export"

    def test_comment(self):
        """Comments run from '#' to end of line."""
        tokens = tokenize("# hello world\n")
        assert tokens[0].type == TokenType.COMMENT
        assert tokens[0].value == "# hello world"
        assert tokens[1].type == TokenType.NEWLINE

    def test_comment_raw_keeps_indentation(self):
        """The raw text of a comment includes leading whitespace."""
        tokens = tokenize("   # indented")
        assert tokens[0].raw == "   # indented"

    def test_whitespace_before_equals(self):
        """Whitespace between the key and '=' is allowed."""
        tokens = tokenize("KEY = value")
        assert tokens[0].type == TokenType.KEY
        assert tokens[1].value == "value"

    def test_identifier_without_equals_is_value(self):
        """An identifier not followed by '=' is not a key."""
        tokens = tokenize("just text")
        assert tokens[0].type == TokenType.VALUE

    def test_line_numbers(self):
        """Tokens carry 1-based line numbers."""
        tokens = tokenize("A=1\n\nB=2\n")
        keys = [token for token in tokens if token.type == TokenType.KEY]
        assert [token.line for token in keys] == [1, 3]


class TestReadValue:
    """Test the context-sensitive value reader."""

    def read(self, text):
        return Lexer(text).read_value()

    def test_unquoted(self):
        span = self.read("value")
        assert span.text == "value"
        assert span.quoted is False

    def test_unquoted_trims_trailing_whitespace(self):
        assert self.read("value   \t").text == "value"

    def test_unquoted_skips_leading_whitespace(self):
        assert self.read("   value").text == "value"

    def test_unquoted_stops_at_comment(self):
        assert self.read("value # note").text == "value"

    def test_unquoted_not_escape_decoded(self):
        assert self.read(r"a\nb").text == r"a\nb"

    def test_unquoted_keeps_inner_quotes(self):
        assert self.read('say "hi"').text == 'say "hi"'

    def test_empty_remainder(self):
        assert self.read("").text == ""
        assert self.read("\n").text == ""
        assert self.read("# only comment").text == ""

    def test_empty_quotes(self):
        """'""' is the empty string, not a missing value."""
        span = self.read('""')
        assert span.text == ""
        assert span.quoted is True
        assert self.read("''").text == ""

    def test_double_quoted_escapes(self):
        assert self.read(r'"a\nb\tc\rd"').text == "a\nb\tc\rd"

    def test_escaped_backslash_and_quotes(self):
        assert self.read(r'"back\\slash \"q\" \'s\'"').text == "back\\slash \"q\" 's'"

    def test_unknown_escape_keeps_character(self):
        assert self.read(r'"\x\$"').text == "x$"

    def test_single_quoted_is_verbatim(self):
        assert self.read(r"'a\nb'").text == r"a\nb"

    def test_quoted_keeps_hash(self):
        assert self.read('"a # not a comment"').text == "a # not a comment"

    def test_multiline_quoted(self):
        lexer = Lexer('"line1\nline2"\nNEXT=1')
        assert lexer.read_value().text == "line1\nline2"
        assert lexer.line == 2

    def test_unterminated_quote_runs_to_end(self):
        lexer = Lexer('"open\nstill open\n')
        assert lexer.read_value().text == "open\nstill open\n"
        assert lexer.current == ""

    def test_trailing_backslash_kept(self):
        assert self.read('"end\\').text == "end\\"

    def test_position_after_closing_quote(self):
        lexer = Lexer('"v" # note')
        lexer.read_value()
        token = lexer.next_token()
        assert token.type == TokenType.COMMENT
        assert token.value == "# note"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
