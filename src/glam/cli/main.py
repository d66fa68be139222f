"""Main CLI entry point."""

import logging
from pathlib import Path
from typing import Optional, Tuple

import rich_click as click
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.text import Text
from rich.tree import Tree

from glam import __version__
from glam.compiler import compile_source
from glam.compiler.ast_nodes import ComponentNode, walk
from glam.compiler.exceptions import GlamError

console = Console()

click.rich_click.STYLE_HELPTEXT_FIRST = True
click.rich_click.STYLE_COMMANDS_TABLE_SHOW_LINES = False
click.rich_click.STYLE_COMMANDS_TABLE_BOX = None
click.rich_click.STYLE_OPTIONS_TABLE_BOX = None
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = "Try running 'glam --help' for more information."


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _compile_file(path: Path, components: Tuple[str, ...], name: Optional[str]):
    known = set(components)
    if name:
        known.add(name)
    source = path.read_text(encoding="utf-8")
    try:
        return compile_source(source, known, name=name or path.name)
    except GlamError as exc:
        raise click.ClickException(str(exc)) from exc


def _add_nodes(tree: Tree, nodes) -> None:
    for node in nodes:
        if isinstance(node, ComponentNode):
            attrs = "".join(f" {key}={value!r}" for key, value in node.attributes.items())
            branch = tree.add(Text.assemble((f"<{node.tag}>", "bold cyan"), attrs))
            _add_nodes(branch, node.children)
        else:
            tree.add(Text(repr(node.content), style="dim"))


component_option = click.option(
    "--component",
    "-c",
    "components",
    multiple=True,
    help="Name of a registered component (repeatable).",
)
name_option = click.option("--name", "-n", default=None, help="Component name of the template itself.")


@click.group(help=f"glam v{__version__}: component tags for Jinja2 templates.")
@click.version_option(__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    _configure_logging(verbose)


@cli.command()
@click.argument("template", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@component_option
@name_option
@click.option("--plain", is_flag=True, help="Print an indented text dump instead of a tree.")
def parse(template: Path, components: Tuple[str, ...], name: Optional[str], plain: bool) -> None:
    """Print the component tree of TEMPLATE."""
    compiled = _compile_file(template, components, name)
    if plain:
        click.echo("\n".join(node.pretty() for node in compiled.nodes))
        return
    tree = Tree(Text(template.name, style="bold"))
    _add_nodes(tree, compiled.nodes)
    console.print(tree)

    used = sorted({node.tag for node in walk(compiled.nodes) if isinstance(node, ComponentNode)})
    console.print(f"components: {', '.join(used) or '-'}")
    console.print(f"deferred: {', '.join(sorted(compiled.deferred)) or '-'}")


@cli.command()
@click.argument("template", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@component_option
@name_option
@click.option("--plain", is_flag=True, help="Print without syntax highlighting.")
def lower(template: Path, components: Tuple[str, ...], name: Optional[str], plain: bool) -> None:
    """Print the Jinja source TEMPLATE lowers to."""
    compiled = _compile_file(template, components, name)
    if plain:
        click.echo(compiled.lowered)
        return
    console.print(Syntax(compiled.lowered, "html+jinja", word_wrap=True))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
