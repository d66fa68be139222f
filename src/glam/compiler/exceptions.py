"""Errors raised while parsing, compiling and rendering component templates."""

from typing import Optional, Tuple


class GlamError(Exception):
    """Base class for every error raised by glam."""

    def __init__(self, message: str, template_name: Optional[str] = None):
        self.message = message
        self.template_name = template_name
        super().__init__(self._format())

    def _format(self) -> str:
        if self.template_name:
            return f"{self.template_name}: {self.message}"
        return self.message


def line_and_column(source: str, offset: int) -> Tuple[int, int]:
    """1-based line and column of a character offset."""
    offset = max(0, min(offset, len(source)))
    line = source.count("\n", 0, offset) + 1
    column = offset - (source.rfind("\n", 0, offset) + 1) + 1
    return line, column


class ParseError(GlamError):
    """Malformed component markup.

    Carries the character offset of the failure and, when the source is
    known, the matching line and column.
    """

    def __init__(
        self,
        message: str,
        offset: int,
        source: Optional[str] = None,
        template_name: Optional[str] = None,
    ):
        self.offset = offset
        self.source = source
        self.line: Optional[int] = None
        self.column: Optional[int] = None
        if source is not None:
            self.line, self.column = line_and_column(source, offset)
        super().__init__(message, template_name)

    def _format(self) -> str:
        if self.line is not None:
            location = f"line {self.line}, column {self.column}"
        else:
            location = f"offset {self.offset}"
        return super()._format() + f" at {location}"

    def with_template_name(self, template_name: str) -> "ParseError":
        return ParseError(self.message, self.offset, self.source, template_name)


class CompileError(GlamError):
    """The template could not be lowered, or Jinja rejected the lowered source."""
