"""Component markup compiler: parse, scope-rewrite and lower to Jinja source."""

from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, List, Optional

from glam.compiler.ast_nodes import Node
from glam.compiler.codegen.template import TemplateCodegen
from glam.compiler.exceptions import CompileError
from glam.compiler.parser import parse
from glam.compiler.scanner import Delimiters


@dataclass(frozen=True)
class CompiledSource:
    lowered: str
    deferred: FrozenSet[str]
    nodes: List[Node]


def compile_source(
    source: str,
    components: AbstractSet[str],
    delimiters: Optional[Delimiters] = None,
    name: Optional[str] = None,
) -> CompiledSource:
    """Lower ``source`` to Jinja source, treating ``components`` as registered."""
    result = parse(source, components, delimiters, name)
    try:
        lowered = TemplateCodegen(delimiters).generate(result.nodes)
    except RecursionError:
        raise CompileError("template nested too deeply", template_name=name) from None
    return CompiledSource(lowered, result.deferred, result.nodes)
