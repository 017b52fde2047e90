"""
Tests for the block configuration tokenizer and dispenser.
"""

import pytest

from knownagents.caddyfile import Dispenser, tokenize
from knownagents.exceptions import DirectiveSyntaxError


class TestTokenize:
    """Tests for tokenize()."""

    def test_words_and_lines(self):
        tokens = tokenize("knownagents {\n  access_token abc\n}")
        assert [t.text for t in tokens] == ["knownagents", "{", "access_token", "abc", "}"]
        assert [t.line for t in tokens] == [1, 1, 2, 2, 3]

    def test_quoted_token_keeps_spaces(self):
        tokens = tokenize('agent_types "AI Assistant" Archiver')
        assert [t.text for t in tokens] == ["agent_types", "AI Assistant", "Archiver"]
        assert tokens[1].quoted is True
        assert tokens[2].quoted is False

    def test_adjacent_quoted_tokens_are_separate(self):
        tokens = tokenize('"AI Assistant""AI Search Crawler"')
        assert [t.text for t in tokens] == ["AI Assistant", "AI Search Crawler"]

    def test_escaped_quote(self):
        tokens = tokenize(r'disallow "/a\"b"')
        assert tokens[1].text == '/a"b'

    def test_backtick_token_is_literal(self):
        tokens = tokenize(r"disallow `/a\"b`")
        assert tokens[1].text == r"/a\"b"

    def test_empty_quoted_token(self):
        tokens = tokenize('access_token ""')
        assert [t.text for t in tokens] == ["access_token", ""]

    def test_comments_are_skipped(self):
        tokens = tokenize("# header\naccess_token abc # trailing\n")
        assert [t.text for t in tokens] == ["access_token", "abc"]
        assert tokens[0].line == 2

    def test_placeholder_stays_one_token(self):
        tokens = tokenize("access_token {env.KA_TOKEN}")
        assert tokens[1].text == "{env.KA_TOKEN}"

    def test_unterminated_quote_raises(self):
        with pytest.raises(DirectiveSyntaxError) as exc_info:
            tokenize('access_token "abc', filename="Testfile")
        assert "unterminated" in exc_info.value.message
        assert str(exc_info.value).startswith("Testfile:1")


class TestDispenser:
    """Tests for Dispenser navigation."""

    def test_next_arg_stays_on_line(self):
        d = Dispenser.from_text("a b c\nd")
        assert d.next() and d.val() == "a"
        assert d.remaining_args() == ["b", "c"]
        assert d.next_arg() is False
        assert d.next() and d.val() == "d"
        assert d.next() is False

    def test_next_block_walks_nested_blocks(self):
        d = Dispenser.from_text(
            "outer {\n"
            "  one 1\n"
            "  inner {\n"
            "    two 2\n"
            "  }\n"
            "  three 3\n"
            "}\n"
        )
        d.next()
        seen = []
        nesting = d.nesting()
        while d.next_block(nesting):
            seen.append(d.val())
            if d.val() == "inner":
                inner = d.nesting()
                while d.next_block(inner):
                    seen.append("inner:" + d.val())
                    d.remaining_args()
            else:
                d.remaining_args()
        assert seen == ["one", "inner", "inner:two", "three"]
        assert d.nesting() == 0

    def test_next_block_without_brace(self):
        d = Dispenser.from_text("outer arg")
        d.next()
        assert d.next_block(d.nesting()) is False
        # the argument is still available
        assert d.next_arg() and d.val() == "arg"

    def test_empty_block(self):
        d = Dispenser.from_text("outer {\n}")
        d.next()
        assert d.next_block(d.nesting()) is False

    def test_quoted_brace_first_in_block_is_a_value(self):
        d = Dispenser.from_text('outer {\n    "}"\n}')
        d.next()
        nesting = d.nesting()
        assert d.next_block(nesting) is True
        assert d.val() == "}"
        assert d.next_block(nesting) is False
        assert d.nesting() == nesting

    def test_reset(self):
        d = Dispenser.from_text("a b")
        d.next()
        d.next_arg()
        d.reset()
        assert d.next() and d.val() == "a"

    def test_errors_point_at_current_line(self):
        d = Dispenser.from_text("a\nb c", filename="Testfile")
        d.next()
        d.next()
        err = d.errf("bad token '%s'", d.val())
        assert err.line == 2
        assert err.filename == "Testfile"
        assert str(err) == "Testfile:2 - Error during parsing: bad token 'b'"

    def test_arg_err_names_previous_token(self):
        d = Dispenser.from_text("access_token")
        d.next()
        assert "after 'access_token'" in d.arg_err().message
