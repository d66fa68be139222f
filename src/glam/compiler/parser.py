"""Component tag parser.

Splits a template into raw text and component nodes. Everything that is not
a known component, literal markup and Jinja spans included, is kept as raw
text so that Jinja sees it unchanged.
"""

import logging
from typing import AbstractSet, Dict, List, Optional, Set, Tuple, Union

from glam.compiler.ast_nodes import (
    BOOLEAN_ATTRIBUTE,
    ComponentNode,
    Node,
    ParseResult,
    RawNode,
)
from glam.compiler.scanner import COMMENT, Delimiters, STATEMENT, Scanner
from glam.compiler.tags import RAW_TEXT_ELEMENTS, is_html_tag

logger = logging.getLogger(__name__)


def is_component_name(name: str) -> bool:
    return bool(name) and name[0].isupper()


class TemplateParser:
    """Parses component markup against a set of known component names."""

    def __init__(
        self,
        components: AbstractSet[str],
        delimiters: Optional[Delimiters] = None,
        name: Optional[str] = None,
    ):
        self.components = frozenset(components)
        self.delimiters = delimiters
        self.name = name
        self._deferred: Set[str] = set()
        self._open_pos = 0

    def parse(self, source: str) -> ParseResult:
        self._deferred = set()
        scanner = Scanner(source, self.delimiters, self.name)
        self._open_pos = 0
        try:
            nodes = self._parse_content(scanner, 0)
        except RecursionError:
            raise scanner.error(self._open_pos, "template nested too deeply") from None
        logger.debug(
            "parsed %s: %d top-level nodes, deferred=%s",
            self.name or "<template>",
            len(nodes),
            sorted(self._deferred),
        )
        return ParseResult(nodes, frozenset(self._deferred))

    def _parse_content(self, scanner: Scanner, pos: int) -> List[Node]:
        nodes: List[Node] = []
        start = pos
        while not scanner.at_end(pos):
            if scanner.span_start(pos):
                pos = scanner.skip_span(pos)
                continue
            if scanner.peek(pos) != "<":
                pos += 1
                continue

            following = scanner.peek(pos, 1)
            if following == "/":
                close_name, close_end = self._read_close_tag(scanner, pos)
                if close_name in self.components:
                    raise scanner.error(pos, f"unexpected closing tag </{close_name}>")
                pos = close_end
            elif following.isalpha():
                _flush(nodes, scanner.source, start, pos)
                node, pos = self.parse_tag(scanner, pos)
                nodes.append(node)
                start = pos
            else:
                pos = self._skip_markup_declaration(scanner, pos)

        _flush(nodes, scanner.source, start, pos)
        return nodes

    def parse_tag(self, scanner: Scanner, pos: int) -> Tuple[Node, int]:
        """Parse the tag opening at ``pos`` (which holds ``<``)."""
        tag_start = pos
        name_start = pos + 1
        pos = name_start
        while True:
            char = scanner.peek(pos)
            if char == "":
                raise scanner.error(tag_start, "unexpected end of input in tag name")
            if char.isspace() or char in ">/":
                break
            pos += 1
        tag = scanner.source[name_start:pos]

        if not is_component_name(tag):
            attributes, pos, self_closing = self.parse_attributes(scanner, pos, tag, strict=False)
            if tag.lower() in RAW_TEXT_ELEMENTS and not self_closing:
                pos = self._skip_raw_text(scanner, pos, tag)
            return RawNode(scanner.source[tag_start:pos]), pos

        attributes, pos, self_closing = self.parse_attributes(
            scanner, pos, tag, strict=tag in self.components
        )

        if tag not in self.components:
            if not is_html_tag(tag):
                self._deferred.add(tag)
            return RawNode(scanner.source[tag_start:pos]), pos

        if self_closing:
            return ComponentNode(tag, attributes, [], True, tag_start), pos

        children, pos = self.parse_children(scanner, pos, tag, tag_start)
        return ComponentNode(tag, attributes, children, False, tag_start), pos

    def parse_attributes(
        self, scanner: Scanner, pos: int, tag: str, strict: bool = True
    ) -> Tuple[Dict[str, str], int, bool]:
        """Parse attributes up to and including the closing ``>`` or ``/>``.

        Returns the attributes, the position after the tag and whether the tag
        was self-closing. ``strict`` applies the component rules: values must
        be quoted, template spans may not appear between attributes and names
        may not repeat.
        """
        attributes: Dict[str, str] = {}
        while True:
            pos = scanner.skip_whitespace(pos)
            char = scanner.peek(pos)
            if char == "":
                raise scanner.error(pos, f"unexpected end of input in tag <{tag}>")
            if char == ">":
                return attributes, pos + 1, False
            if char == "/" and scanner.peek(pos, 1) == ">":
                return attributes, pos + 2, True
            if scanner.span_start(pos):
                if strict:
                    raise scanner.error(
                        pos, f"template tags are not allowed between attributes of <{tag}>"
                    )
                pos = scanner.skip_span(pos)
                continue

            name_start = pos
            while True:
                char = scanner.peek(pos)
                if char == "" or char.isspace() or char in "=>\"'" or scanner.span_start(pos):
                    break
                if char == "/" and scanner.peek(pos, 1) == ">":
                    break
                pos += 1
            name = scanner.source[name_start:pos]
            if not name:
                if strict:
                    raise scanner.error(pos, f"malformed attribute in <{tag}>")
                pos += 1
                continue

            pos = scanner.skip_whitespace(pos)
            if scanner.peek(pos) == "=":
                pos = scanner.skip_whitespace(pos + 1)
                value, pos = self._parse_attribute_value(scanner, pos, tag, name, strict)
            else:
                value = BOOLEAN_ATTRIBUTE

            if strict and name in attributes:
                raise scanner.error(name_start, f"duplicate attribute {name!r} in <{tag}>")
            attributes[name] = value

    def _parse_attribute_value(
        self, scanner: Scanner, pos: int, tag: str, name: str, strict: bool
    ) -> Tuple[str, int]:
        quote = scanner.peek(pos)
        if quote not in ("'", '"'):
            if strict:
                raise scanner.error(pos, f"value of attribute {name!r} in <{tag}> must be quoted")
            start = pos
            while True:
                char = scanner.peek(pos)
                if char == "" or char.isspace() or char == ">":
                    break
                if scanner.span_start(pos):
                    pos = scanner.skip_span(pos)
                    continue
                pos += 1
            return scanner.source[start:pos], pos

        start = pos + 1
        pos = start
        while True:
            char = scanner.peek(pos)
            if char == "":
                raise scanner.error(start - 1, f"unterminated value of attribute {name!r} in <{tag}>")
            if char == quote:
                return scanner.source[start:pos], pos + 1
            kind = scanner.span_start(pos)
            if kind is None:
                pos += 1
                continue
            if strict and kind in (STATEMENT, COMMENT):
                raise scanner.error(
                    pos, f"only expressions are allowed in attribute {name!r} of <{tag}>"
                )
            pos = scanner.skip_span(pos, reject_nested=strict)

    def parse_children(
        self, scanner: Scanner, pos: int, tag: str, open_pos: int
    ) -> Tuple[List[Node], int]:
        """Parse child content up to the matching ``</tag>``."""
        self._open_pos = open_pos
        children: List[Node] = []
        start = pos
        while True:
            if scanner.at_end(pos):
                raise scanner.error(open_pos, f"unclosed component tag <{tag}>")
            if scanner.span_start(pos):
                pos = scanner.skip_span(pos)
                continue
            if scanner.peek(pos) != "<":
                pos += 1
                continue

            following = scanner.peek(pos, 1)
            if following == "/":
                close_name, close_end = self._read_close_tag(scanner, pos)
                if close_name == tag:
                    _flush(children, scanner.source, start, pos)
                    return children, close_end
                if close_name in self.components:
                    raise scanner.error(
                        pos, f"mismatched closing tag </{close_name}>, expected </{tag}>"
                    )
                pos = close_end
            elif following.isalpha():
                _flush(children, scanner.source, start, pos)
                node, pos = self.parse_tag(scanner, pos)
                children.append(node)
                start = pos
            else:
                pos = self._skip_markup_declaration(scanner, pos)

    def _read_close_tag(self, scanner: Scanner, pos: int) -> Tuple[str, int]:
        close = scanner.source.find(">", pos)
        if close < 0:
            raise scanner.error(pos, "unexpected end of input in closing tag")
        return scanner.source[pos + 2 : close].strip(), close + 1

    def _skip_markup_declaration(self, scanner: Scanner, pos: int) -> int:
        """Skip ``<!-- -->``, ``<!...>`` and ``<?...>``; any other ``<`` is text."""
        if scanner.startswith(pos, "<!--"):
            close = scanner.source.find("-->", pos + 4)
            if close < 0:
                raise scanner.error(pos, "unterminated comment")
            return close + 3
        if scanner.peek(pos, 1) in ("!", "?"):
            close = scanner.source.find(">", pos)
            if close < 0:
                raise scanner.error(pos, "unexpected end of input in markup declaration")
            return close + 1
        return pos + 1

    def _skip_raw_text(self, scanner: Scanner, pos: int, tag: str) -> int:
        """Position of the ``</script>`` or ``</style>`` ending a raw text element."""
        lowered = scanner.source.lower()
        close = lowered.find(f"</{tag.lower()}", pos)
        return len(scanner.source) if close < 0 else close


def _flush(nodes: List[Node], source: str, start: int, end: int) -> None:
    if end > start:
        nodes.append(RawNode(source[start:end]))


def parse(
    source: str,
    components: Union[AbstractSet[str], List[str]],
    delimiters: Optional[Delimiters] = None,
    name: Optional[str] = None,
) -> ParseResult:
    """Parse ``source`` treating ``components`` as the registered component names."""
    return TemplateParser(set(components), delimiters, name).parse(source)
