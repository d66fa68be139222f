from typing import List

import pytest

from glam.compiler.ast_nodes import BOOLEAN_ATTRIBUTE, ComponentNode, Node, RawNode
from glam.compiler.exceptions import ParseError
from glam.compiler.parser import TemplateParser, parse


def text_of(nodes: List[Node]) -> str:
    assert all(isinstance(node, RawNode) for node in nodes)
    return "".join(node.content for node in nodes)


def test_plain_markup_is_raw() -> None:
    source = '<div class="a">{{ x }} <b>hi</b></div>'
    result = parse(source, set())
    assert text_of(result.nodes) == source
    assert result.deferred == frozenset()


def test_component_with_attributes_and_children() -> None:
    result = parse('<Card title="Hi" size="{{ n }}" open>body <i>x</i></Card>', {"Card"})
    [node] = result.nodes
    assert isinstance(node, ComponentNode)
    assert node.tag == "Card"
    assert node.attributes == {"title": "Hi", "size": "{{ n }}", "open": BOOLEAN_ATTRIBUTE}
    assert text_of(node.children) == "body <i>x</i>"
    assert not node.self_closing


def test_self_closing_component() -> None:
    [node] = parse('<Icon name="x"/>', {"Icon"}).nodes
    assert node.self_closing
    assert node.children == []
    assert node.attributes == {"name": "x"}

    [bare] = parse("<Icon/>", {"Icon"}).nodes
    assert isinstance(bare, ComponentNode)
    assert bare.attributes == {}


def test_spaces_around_equals_and_single_quotes() -> None:
    [node] = parse("<Icon name = 'x' />", {"Icon"}).nodes
    assert node.attributes == {"name": "x"}


def test_nested_components() -> None:
    [outer] = parse('<Outer><Inner a="1">t</Inner></Outer>', {"Outer", "Inner"}).nodes
    [inner] = outer.children
    assert inner.tag == "Inner"
    assert inner.children == [RawNode("t")]


def test_unknown_capitalised_tag_is_deferred() -> None:
    source = '<Later a="1">x</Later>'
    result = parse(source, set())
    assert result.deferred == {"Later"}
    assert text_of(result.nodes) == source


def test_html_named_capitalised_tag_is_not_deferred() -> None:
    assert parse("<Title>x</Title>", set()).deferred == frozenset()


def test_literal_tags_allow_unquoted_values() -> None:
    source = "<input type=text disabled>"
    assert text_of(parse(source, set()).nodes) == source


def test_component_values_must_be_quoted() -> None:
    with pytest.raises(ParseError, match="must be quoted"):
        parse("<Card title=Hi></Card>", {"Card"})


def test_quotes_inside_expression_do_not_end_value() -> None:
    [node] = parse('<Card title="{{ "a" ~ b }}"/>', {"Card"}).nodes
    assert node.attributes["title"] == '{{ "a" ~ b }}'


def test_statement_inside_component_attribute_rejected() -> None:
    with pytest.raises(ParseError, match="only expressions"):
        parse('<Card title="{% if x %}a{% endif %}"/>', {"Card"})


def test_nested_expression_inside_component_attribute_rejected() -> None:
    with pytest.raises(ParseError, match="nested expression"):
        parse('<Card title="{{ a {{ b }} }}"/>', {"Card"})


def test_duplicate_component_attribute_rejected() -> None:
    with pytest.raises(ParseError, match="duplicate attribute"):
        parse('<Card a="1" a="2"/>', {"Card"})


def test_unclosed_component_reports_open_tag() -> None:
    with pytest.raises(ParseError, match="unclosed component tag <Card>") as info:
        parse("ab<Card>never closed", {"Card"})
    assert info.value.offset == 2


def test_mismatched_component_close_tag() -> None:
    with pytest.raises(ParseError, match="mismatched closing tag </Other>"):
        parse("<Card><Other/></Other></Card>", {"Card", "Other"})


def test_unrelated_close_tag_inside_children_is_text() -> None:
    [node] = parse("<Card>a</div>b</Card>", {"Card"}).nodes
    assert text_of(node.children) == "a</div>b"


def test_stray_component_close_tag() -> None:
    with pytest.raises(ParseError, match="unexpected closing tag"):
        parse("x</Card>", {"Card"})


def test_end_of_input_inside_tag() -> None:
    with pytest.raises(ParseError, match="unexpected end of input"):
        parse('<div class="a"', set())


def test_angle_bracket_inside_template_span_is_not_a_tag() -> None:
    source = "{% if a <Card %}x{% endif %}"
    assert text_of(parse(source, {"Card"}).nodes) == source


def test_lone_angle_bracket_is_text() -> None:
    source = "1 < 2 and 3 <= 4"
    assert text_of(parse(source, set()).nodes) == source


def test_script_body_is_not_scanned() -> None:
    source = "<script>if (a<Card) {}</script>"
    assert text_of(parse(source, {"Card"}).nodes) == source


def test_markup_comment_is_raw() -> None:
    source = "<!-- <Card> -->"
    assert parse(source, {"Card"}).nodes == [RawNode(source)]


def test_parse_error_names_template() -> None:
    with pytest.raises(ParseError) as info:
        TemplateParser({"Card"}, name="Page").parse("<Card>")
    assert info.value.template_name == "Page"
    assert str(info.value).startswith("Page: ")


def test_deep_nesting_is_a_parse_error() -> None:
    source = "<Card>" * 2000 + "</Card>" * 2000
    with pytest.raises(ParseError, match="template nested too deeply") as info:
        parse(source, {"Card"})
    assert info.value.offset > 0
    # the parser is still usable afterwards
    assert parse("<Card>x</Card>", {"Card"}).nodes[0].tag == "Card"
