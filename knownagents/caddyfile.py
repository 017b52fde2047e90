"""
Known Agents Middleware - Block Configuration Tokens
====================================================

What:  Tokenizer and token dispenser for the Caddyfile-style block grammar the
       `knownagents` directive is written in.
How:   `tokenize()` splits text into `Token`s (word, line number, file name).
       `Dispenser` walks those tokens with a cursor and exposes the small
       navigation API a directive parser needs: next token, next argument on
       the same line, next line inside a `{ ... }` block, plus helpers that
       build `DirectiveSyntaxError`s pointing at the current line.

Grammar:
    - Tokens are separated by whitespace; a newline ends a directive line
    - "double quoted" tokens may contain spaces and \\" escapes
    - `backtick quoted` tokens are taken literally
    - # starts a comment that runs to the end of the line
    - { and } are ordinary tokens that open and close blocks

Example:
    d = Dispenser.from_text('knownagents {\\n  access_token abc\\n}')
    d.next()                     # "knownagents"
    nesting = d.nesting()
    while d.next_block(nesting):
        d.val()                  # "access_token"
        d.next_arg()             # True, d.val() == "abc"
"""

from dataclasses import dataclass
from typing import List

from knownagents.exceptions import DirectiveSyntaxError

DEFAULT_FILENAME = "Caddyfile"


@dataclass(frozen=True)
class Token:
    """A single configuration word and where it came from."""

    text: str
    line: int
    filename: str = DEFAULT_FILENAME
    quoted: bool = False

    @property
    def line_span(self) -> int:
        # Quoted tokens may contain newlines.
        return self.text.count("\n")


# ══════════════════════════════════════════════════════════════════════════
# Tokenizer
# ══════════════════════════════════════════════════════════════════════════


def tokenize(text: str, filename: str = DEFAULT_FILENAME) -> List[Token]:
    """
    Split configuration text into tokens.

    Raises:
        DirectiveSyntaxError: on an unterminated quoted token.
    """
    tokens: List[Token] = []
    buf: List[str] = []
    line = 1
    token_line = 1
    quote = ""
    comment = False
    i = 0

    def flush(quoted: bool = False) -> None:
        if buf or quoted:
            tokens.append(Token("".join(buf), token_line, filename, quoted))
            buf.clear()

    while i < len(text):
        ch = text[i]

        if quote:
            if quote == '"' and ch == "\\" and text[i + 1:i + 2] == '"':
                buf.append('"')
                i += 2
                continue
            if ch == quote:
                quote = ""
                flush(quoted=True)
            else:
                if ch == "\n":
                    line += 1
                buf.append(ch)
            i += 1
            continue

        if comment:
            if ch == "\n":
                comment = False
                line += 1
            i += 1
            continue

        if ch in " \t\r\n":
            flush()
            if ch == "\n":
                line += 1
            i += 1
            continue

        if not buf:
            token_line = line
            if ch == "#":
                comment = True
                i += 1
                continue
            if ch in ('"', "`"):
                quote = ch
                i += 1
                continue

        buf.append(ch)
        i += 1

    if quote:
        raise DirectiveSyntaxError("unterminated quoted token", filename, token_line)
    flush()
    return tokens


# ══════════════════════════════════════════════════════════════════════════
# Dispenser
# ══════════════════════════════════════════════════════════════════════════


class Dispenser:
    """
    Cursor over a token list.

    The cursor starts before the first token, so the first call to `next()`
    (or `next_arg()`) lands on token 0. Methods that move the cursor return
    False instead of raising when there is nothing more to read.
    """

    def __init__(self, tokens: List[Token]):
        self._tokens = list(tokens)
        self._cursor = -1
        self._nesting = 0

    @classmethod
    def from_text(cls, text: str, filename: str = DEFAULT_FILENAME) -> "Dispenser":
        return cls(tokenize(text, filename))

    # ── Navigation ────────────────────────────────────────────────────────

    def next(self) -> bool:
        """Advance to the next token regardless of line. False at EOF."""
        if self._cursor < len(self._tokens) - 1:
            self._cursor += 1
            return True
        return False

    def next_arg(self) -> bool:
        """Advance only if the next token is on the current line."""
        return self._next_on_same_line()

    def next_block(self, initial_nesting: int) -> bool:
        """
        Advance to the next line inside a block opened on the current line.

        Call in a loop with the nesting level captured before the loop:

            nesting = d.nesting()
            while d.next_block(nesting):
                ...

        On the first call the current line must end with `{`; the brace is
        consumed. Subsequent calls move token by token until the matching `}`
        is consumed, at which point False is returned.
        """
        if self._nesting > initial_nesting:
            if not self.next():
                return False
            if self.val() == "}" and not self._current().quoted:
                self._nesting -= 1
            elif self.val() == "{" and not self._current().quoted:
                self._nesting += 1
            return self._nesting > initial_nesting

        if not self._next_on_same_line():
            return False
        if self.val() != "{":
            self._cursor -= 1
            return False
        if not self.next():
            return False
        if self.val() == "}" and not self._current().quoted:
            return False
        self._nesting += 1
        return True

    def nesting(self) -> int:
        return self._nesting

    def reset(self) -> None:
        """Move the cursor back before the first token."""
        self._cursor = -1
        self._nesting = 0

    def remaining_args(self) -> List[str]:
        """Consume and return every argument left on the current line."""
        args = []
        while self.next_arg():
            args.append(self.val())
        return args

    # ── Current Token ─────────────────────────────────────────────────────

    def val(self) -> str:
        if 0 <= self._cursor < len(self._tokens):
            return self._tokens[self._cursor].text
        return ""

    def line(self) -> int:
        if 0 <= self._cursor < len(self._tokens):
            return self._tokens[self._cursor].line
        return 0

    def filename(self) -> str:
        if 0 <= self._cursor < len(self._tokens):
            return self._tokens[self._cursor].filename
        return DEFAULT_FILENAME

    # ── Errors ────────────────────────────────────────────────────────────

    def err(self, message: str) -> DirectiveSyntaxError:
        """Build an error pointing at the current token's line."""
        return DirectiveSyntaxError(message, self.filename(), self.line())

    def errf(self, template: str, *args) -> DirectiveSyntaxError:
        return self.err(template % args)

    def arg_err(self) -> DirectiveSyntaxError:
        """Build the standard wrong-argument-count error."""
        return self.errf("wrong argument count or unexpected line ending after '%s'", self.val())

    # ── Internals ─────────────────────────────────────────────────────────

    def _current(self) -> Token:
        return self._tokens[self._cursor]

    def _next_on_same_line(self) -> bool:
        if self._cursor < 0:
            if not self._tokens:
                return False
            self._cursor += 1
            return True
        if self._cursor >= len(self._tokens) - 1:
            return False
        curr = self._tokens[self._cursor]
        nxt = self._tokens[self._cursor + 1]
        if _is_next_on_new_line(curr, nxt):
            return False
        self._cursor += 1
        return True


def _is_next_on_new_line(curr: Token, nxt: Token) -> bool:
    if curr.filename != nxt.filename:
        return True
    return nxt.line > curr.line + curr.line_span
