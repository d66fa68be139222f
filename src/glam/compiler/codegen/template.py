"""Lowering of component nodes to plain Jinja source."""

from typing import Dict, List, Optional

from glam.compiler.ast_nodes import ComponentNode, Node, RawNode
from glam.compiler.scanner import EXPRESSION, Delimiters, Scanner
from glam.compiler.scope import CONTEXT_NAME, ROOT_NAME, THIS_NAME, rewrite_nodes, split_span

RENDER_FUNC = "glam__render"
SCOPE_FUNC = "glam__scope"
BLOCK_PREFIX = "glam__"


def string_literal(value: str) -> str:
    """Quote ``value`` as a Jinja string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class TemplateCodegen:
    """Generates Jinja source for a parsed component template.

    Components with children become a call-out plus a top-level macro
    holding the children; the macros are emitted ahead of the main body.
    """

    def __init__(self, delimiters: Optional[Delimiters] = None) -> None:
        self.delimiters = delimiters or Delimiters()
        self._block_counter = 0
        self.block_definitions: List[str] = []

    def generate(self, nodes: List[Node]) -> str:
        self._block_counter = 0
        self.block_definitions = []
        body = self._lower(nodes, sub_block=False)
        return "".join(self.block_definitions) + body

    def _lower(self, nodes: List[Node], sub_block: bool) -> str:
        parts = []
        for node in nodes:
            if isinstance(node, RawNode):
                parts.append(node.content)
            elif node.children:
                parts.append(self._lower_with_children(node, sub_block))
            else:
                parts.append(self._call(node, "", "none"))
        return "".join(parts)

    def _lower_with_children(self, node: ComponentNode, sub_block: bool) -> str:
        block_id = self._next_block_id(node.tag)
        children, captured = rewrite_nodes(node.children, delimiters=self.delimiters)

        if not sub_block:
            carrier = f"{SCOPE_FUNC}({THIS_NAME}, {ROOT_NAME}, {self._capture(captured)})"
        elif captured:
            carrier = f"{CONTEXT_NAME}.extend({self._capture(captured)})"
        else:
            carrier = CONTEXT_NAME

        call = self._call(node, block_id, carrier)
        body = self._lower(children, sub_block=True)
        self.block_definitions.append(
            self._statement(f"macro {block_id}({CONTEXT_NAME})")
            + body
            + self._statement("endmacro")
        )
        return call

    def _next_block_id(self, tag: str) -> str:
        self._block_counter += 1
        return f"{BLOCK_PREFIX}{tag}__{self._block_counter}"

    def _call(self, node: ComponentNode, block_id: str, carrier: str) -> str:
        arguments = ", ".join(
            [
                string_literal(node.tag),
                string_literal(block_id),
                self.attribute_dict(node.attributes),
                carrier,
            ]
        )
        return (
            f"{self.delimiters.expression_start} {RENDER_FUNC}({arguments}) "
            f"{self.delimiters.expression_end}"
        )

    def _statement(self, body: str) -> str:
        return f"{self.delimiters.statement_start} {body} {self.delimiters.statement_end}"

    def _capture(self, names: List[str]) -> str:
        return "{" + ", ".join(f"{string_literal(name)}: {name}" for name in names) + "}"

    def attribute_dict(self, attributes: Dict[str, str]) -> str:
        items = [
            f"{string_literal(key)}: {self.attribute_expression(value)}"
            for key, value in attributes.items()
        ]
        return "{" + ", ".join(items) + "}"

    def attribute_expression(self, value: str) -> str:
        """Jinja expression for an attribute value.

        A value that is a single expression span keeps the type of the
        expression; text mixed with expressions is joined with ``~``.
        """
        scanner = Scanner(value, self.delimiters)
        parts: List[str] = []
        pos = start = 0
        while pos < len(value):
            if scanner.span_start(pos) != EXPRESSION:
                pos += 1
                continue
            end = scanner.skip_span(pos)
            if pos > start:
                parts.append(string_literal(value[start:pos]))
            _, body, _ = split_span(value[pos:end], EXPRESSION, self.delimiters)
            parts.append(f"({body.strip()})")
            pos = start = end
        if start < len(value) or not parts:
            parts.append(string_literal(value[start:]))
        return " ~ ".join(parts)
