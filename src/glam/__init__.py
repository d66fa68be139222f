from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("glam")
except PackageNotFoundError:
    __version__ = "unknown"

from glam.compiler.exceptions import CompileError, GlamError, ParseError
from glam.core.props import attr, children
from glam.runtime.components import RegistrationError
from glam.runtime.context import BlockContext
from glam.runtime.engine import (
    ComponentNotFoundError,
    Engine,
    FuncMap,
    Recoverable,
    RenderError,
)

__all__ = [
    "Engine",
    "FuncMap",
    "Recoverable",
    "BlockContext",
    "attr",
    "children",
    "GlamError",
    "ParseError",
    "CompileError",
    "RegistrationError",
    "ComponentNotFoundError",
    "RenderError",
]
