from dataclasses import dataclass, field, replace
from typing import Any, Mapping


@dataclass(frozen=True)
class BlockContext:
    """Values a hoisted children block sees.

    ``dot`` is the component whose template contained the children, ``root``
    the outermost rendered component and ``locals`` the call-site variables
    captured when the block was invoked.
    """

    dot: Any
    root: Any
    locals: Mapping[str, Any] = field(default_factory=dict)

    def extend(self, values: Mapping[str, Any]) -> "BlockContext":
        return replace(self, locals={**self.locals, **values})


def make_scope(dot: Any, root: Any, values: Mapping[str, Any]) -> BlockContext:
    return BlockContext(dot, root, dict(values))
