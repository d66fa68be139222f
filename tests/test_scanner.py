import pytest
from jinja2 import Environment

from glam.compiler.exceptions import ParseError
from glam.compiler.scanner import COMMENT, EXPRESSION, STATEMENT, Delimiters, Scanner


def test_peek_outside_source_is_empty() -> None:
    scanner = Scanner("ab")
    assert scanner.peek(1) == "b"
    assert scanner.peek(2) == ""
    assert scanner.peek(0, -1) == ""


def test_skip_whitespace() -> None:
    assert Scanner("  \n\tx").skip_whitespace(0) == 4


def test_span_kinds() -> None:
    scanner = Scanner("{{ a }}{% b %}{# c #}")
    assert scanner.span_start(0) == EXPRESSION
    assert scanner.span_start(7) == STATEMENT
    assert scanner.span_start(14) == COMMENT
    assert scanner.span_start(1) is None


def test_close_delimiter_inside_string_does_not_end_span() -> None:
    source = '{{ "}}" ~ x }}rest'
    assert Scanner(source).skip_span(0) == source.index("rest")


def test_brackets_are_balanced_before_closing() -> None:
    source = "{{ {'a': 1}}}tail"
    assert Scanner(source).skip_span(0) == source.index("tail")


def test_comment_span() -> None:
    source = "{# a }} #}z"
    assert Scanner(source).skip_span(0) == source.index("z")


def test_raw_block_is_skipped_whole() -> None:
    source = "{% raw %}{{ not parsed {% endraw %}after"
    assert Scanner(source).skip_span(0) == source.index("after")


def test_nested_expression_delimiter_rejected() -> None:
    with pytest.raises(ParseError, match="nested expression delimiter"):
        Scanner("{{ a {{ b }} }}").skip_span(0, reject_nested=True)


def test_unterminated_span_reports_position() -> None:
    with pytest.raises(ParseError) as info:
        Scanner("ab {{ x").skip_span(3)
    assert info.value.offset == 3
    assert (info.value.line, info.value.column) == (1, 4)
    assert "line 1, column 4" in str(info.value)


def test_delimiters_follow_environment() -> None:
    env = Environment(variable_start_string="[[", variable_end_string="]]")
    delimiters = Delimiters.from_environment(env)
    assert delimiters.expression_start == "[["
    assert delimiters.statement_start == "{%"
    assert Scanner("[[ x ]]y", delimiters).skip_span(0) == 7
