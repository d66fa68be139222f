"""Position-based cursor helpers over template source.

The scanner never holds a cursor of its own: every method takes a position
and returns a position, so parsing code can be written as pure functions of
``(scanner, pos)``.
"""

from dataclasses import dataclass
from typing import Any, Optional

from glam.compiler.exceptions import ParseError

EXPRESSION = "expression"
STATEMENT = "statement"
COMMENT = "comment"

WHITESPACE_CONTROL = "-+"
OPENING_BRACKETS = "([{"
CLOSING_BRACKETS = ")]}"
QUOTES = "'\""


@dataclass(frozen=True)
class Delimiters:
    """Jinja span delimiters, defaulting to Jinja's own defaults."""

    expression_start: str = "{{"
    expression_end: str = "}}"
    statement_start: str = "{%"
    statement_end: str = "%}"
    comment_start: str = "{#"
    comment_end: str = "#}"

    @classmethod
    def from_environment(cls, environment: Any) -> "Delimiters":
        return cls(
            expression_start=environment.variable_start_string,
            expression_end=environment.variable_end_string,
            statement_start=environment.block_start_string,
            statement_end=environment.block_end_string,
            comment_start=environment.comment_start_string,
            comment_end=environment.comment_end_string,
        )

    def start(self, kind: str) -> str:
        return {
            EXPRESSION: self.expression_start,
            STATEMENT: self.statement_start,
            COMMENT: self.comment_start,
        }[kind]

    def end(self, kind: str) -> str:
        return {
            EXPRESSION: self.expression_end,
            STATEMENT: self.statement_end,
            COMMENT: self.comment_end,
        }[kind]


DEFAULT_DELIMITERS = Delimiters()


def skip_string(source: str, pos: int) -> int:
    """Position after the string literal opening at ``pos``.

    Backslash escapes are honoured. An unterminated literal runs to the end
    of the source.
    """
    quote = source[pos]
    i = pos + 1
    while i < len(source):
        char = source[i]
        if char == "\\":
            i += 2
            continue
        if char == quote:
            return i + 1
        i += 1
    return len(source)


class Scanner:
    def __init__(
        self,
        source: str,
        delimiters: Optional[Delimiters] = None,
        name: Optional[str] = None,
    ):
        self.source = source
        self.delimiters = delimiters or DEFAULT_DELIMITERS
        self.name = name

    def __len__(self) -> int:
        return len(self.source)

    def at_end(self, pos: int) -> bool:
        return pos >= len(self.source)

    def peek(self, pos: int, offset: int = 0) -> str:
        """Character at ``pos + offset``, or "" past either end."""
        i = pos + offset
        if 0 <= i < len(self.source):
            return self.source[i]
        return ""

    def startswith(self, pos: int, text: str) -> bool:
        return self.source.startswith(text, pos)

    def skip_whitespace(self, pos: int) -> int:
        while pos < len(self.source) and self.source[pos].isspace():
            pos += 1
        return pos

    def error(self, pos: int, reason: str) -> ParseError:
        return ParseError(reason, pos, self.source, self.name)

    def span_start(self, pos: int) -> Optional[str]:
        """Kind of template span opening at ``pos``, if any."""
        for kind in (EXPRESSION, STATEMENT, COMMENT):
            if self.startswith(pos, self.delimiters.start(kind)):
                return kind
        return None

    def statement_name(self, pos: int) -> str:
        """First word of the statement span opening at ``pos``."""
        i = pos + len(self.delimiters.statement_start)
        if self.peek(i) in WHITESPACE_CONTROL:
            i += 1
        i = self.skip_whitespace(i)
        start = i
        while i < len(self.source) and (self.source[i].isalnum() or self.source[i] == "_"):
            i += 1
        return self.source[start:i]

    def skip_span(self, pos: int, reject_nested: bool = False) -> int:
        """Position just after the template span opening at ``pos``.

        Inside expression and statement spans, string literals and bracket
        depth are tracked so a closing delimiter inside ``"..."`` or inside
        an open ``{`` does not end the span. ``{% raw %}`` blocks are skipped
        whole.
        """
        kind = self.span_start(pos)
        if kind is None:
            raise self.error(pos, "expected a template span")

        start = self.delimiters.start(kind)
        end = self.delimiters.end(kind)

        if kind == COMMENT:
            close = self.source.find(end, pos + len(start))
            if close < 0:
                raise self.error(pos, "unterminated comment")
            return close + len(end)

        if kind == STATEMENT and self.statement_name(pos) == "raw":
            return self.skip_raw_block(pos)

        i = pos + len(start)
        depth = 0
        while i < len(self.source):
            char = self.source[i]
            if char in QUOTES:
                i = skip_string(self.source, i)
                continue
            if depth == 0 and self.startswith(i, end):
                return i + len(end)
            if reject_nested and self.startswith(i, self.delimiters.expression_start):
                raise self.error(i, "nested expression delimiter")
            if char in OPENING_BRACKETS:
                depth += 1
            elif char in CLOSING_BRACKETS and depth > 0:
                depth -= 1
            i += 1
        raise self.error(pos, f"unterminated {kind}")

    def skip_raw_block(self, pos: int) -> int:
        """Position after the ``endraw`` statement closing the raw block at ``pos``."""
        statement_start = self.delimiters.statement_start
        statement_end = self.delimiters.statement_end

        close = self.source.find(statement_end, pos + len(statement_start))
        while close >= 0:
            i = self.source.find(statement_start, close)
            if i < 0:
                break
            if self.statement_name(i) == "endraw":
                end = self.source.find(statement_end, i + len(statement_start))
                if end < 0:
                    break
                return end + len(statement_end)
            close = i + len(statement_start)
        raise self.error(pos, "unterminated raw block")
