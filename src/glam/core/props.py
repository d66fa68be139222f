import dataclasses
from typing import Any

from markupsafe import Markup

ATTR_METADATA_KEY = "glam_attr"
CHILDREN_METADATA_KEY = "glam_children"


def attr(name: str, *, default: Any = dataclasses.MISSING, default_factory: Any = dataclasses.MISSING) -> Any:
    """Dataclass field bound to a markup attribute with a different name.

    Usage:
        @dataclass
        class Button:
            data_name: str = attr("data-name", default="")
    """
    options = {}
    if default is not dataclasses.MISSING:
        options["default"] = default
    if default_factory is not dataclasses.MISSING:
        options["default_factory"] = default_factory
    return dataclasses.field(metadata={ATTR_METADATA_KEY: name}, **options)


def children() -> Any:
    """Dataclass field that receives the rendered children of the component.

    Usage:
        @dataclass
        class Card:
            body: Markup = children()
    """
    return dataclasses.field(default=Markup(""), metadata={CHILDREN_METADATA_KEY: True})
