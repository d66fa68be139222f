"""Template tree nodes produced by the tag parser."""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Union

# Attribute value stored for a bare attribute such as <Button disabled>.
BOOLEAN_ATTRIBUTE = "true"


@dataclass(frozen=True)
class RawNode:
    """Template text passed through to Jinja unchanged."""

    content: str

    def pretty(self, indent: int = 0) -> str:
        return " " * indent + f"Raw({self.content!r})"


@dataclass(frozen=True)
class ComponentNode:
    """A reference to a registered component."""

    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)
    self_closing: bool = False
    offset: int = 0

    def pretty(self, indent: int = 0) -> str:
        pad = " " * indent
        attrs = " ".join(f"{key}={value!r}" for key, value in self.attributes.items())
        head = f"{pad}Component({self.tag}{' ' + attrs if attrs else ''})"
        if not self.children:
            return head
        lines = [head + " {"]
        lines.extend(child.pretty(indent + 2) for child in self.children)
        lines.append(pad + "}")
        return "\n".join(lines)


Node = Union[RawNode, ComponentNode]


@dataclass(frozen=True)
class ParseResult:
    """Nodes of one template plus the capitalised tag names left unresolved."""

    nodes: List[Node]
    deferred: FrozenSet[str] = frozenset()


def walk(nodes: List[Node]):
    """Yield every node depth-first."""
    for node in nodes:
        yield node
        if isinstance(node, ComponentNode):
            yield from walk(node.children)
