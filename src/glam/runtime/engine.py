"""Component engine: registration, forward references and rendering."""

import inspect
import io
import logging
import threading
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Optional,
    Protocol,
    TextIO,
    Tuple,
    runtime_checkable,
)

from jinja2 import Environment, Template, TemplateSyntaxError, Undefined, pass_context, select_autoescape
from jinja2.runtime import Context
from markupsafe import Markup

from glam.compiler import compile_source
from glam.compiler.codegen.template import RENDER_FUNC, SCOPE_FUNC
from glam.compiler.exceptions import CompileError, GlamError
from glam.compiler.scanner import Delimiters
from glam.compiler.scope import ROOT_NAME, THIS_NAME
from glam.compiler.tags import is_html_tag
from glam.runtime.components import ComponentType, RegistrationError
from glam.runtime.context import BlockContext, make_scope
from glam.runtime.registry import DependencyGraph

logger = logging.getLogger(__name__)

FUNCS_NAME = "glam__funcs"

FuncMap = Dict[str, Callable[..., Any]]


class ComponentNotFoundError(GlamError):
    """Rendering asked for a component type that was never registered."""


class RenderError(GlamError):
    """Jinja failed while rendering a component."""


@runtime_checkable
class Recoverable(Protocol):
    """Components that turn their own render failures into output."""

    def recover(self, error: Exception, out: TextIO) -> None:
        ...


@dataclass(frozen=True)
class CompiledComponent:
    name: str
    template: Template
    lowered: str
    # Kept only while the template still references unregistered components.
    source: Optional[str]
    deferred: FrozenSet[str]


class Engine:
    """Registry of components and their compiled templates.

    Components are classes (usually dataclasses) paired with a template.
    Templates may use other components as tags, including ones registered
    later; those templates are recompiled as soon as the missing components
    arrive.
    """

    def __init__(
        self,
        funcs: Optional[FuncMap] = None,
        *,
        environment: Optional[Environment] = None,
        autoescape: bool = True,
        undefined: Optional[type] = None,
    ) -> None:
        if environment is None:
            environment = Environment(
                autoescape=select_autoescape(
                    enabled_extensions=("html", "htm", "xml"), default_for_string=autoescape
                ),
                undefined=undefined or Undefined,
            )
        self.environment = environment
        self.delimiters = Delimiters.from_environment(environment)
        self._components: Dict[str, ComponentType] = {}
        self._templates: Dict[str, CompiledComponent] = {}
        self._graph = DependencyGraph()
        self._lock = threading.RLock()
        self._funcs: FuncMap = dict(funcs or {})

        environment.globals.update(self._funcs)
        environment.globals[RENDER_FUNC] = self._render_callout
        environment.globals[SCOPE_FUNC] = make_scope

    @property
    def funcs(self) -> FuncMap:
        return dict(self._funcs)

    def known_components(self) -> Dict[str, type]:
        return {name: component_type.cls for name, component_type in self._components.items()}

    def pending_references(self) -> Dict[str, FrozenSet[str]]:
        """Templates mapped to the component names they are still waiting for."""
        return self._graph.snapshot()

    def register_component(self, component: Any, template_source: str) -> None:
        """Register a component class (or an instance of one) with its template.

        Either the component, its template and every template waiting on it
        are all compiled, or nothing changes.
        """
        cls = component if inspect.isclass(component) else type(component)
        name = cls.__name__
        if not name[:1].isupper():
            raise RegistrationError(f"component {name} is private, registered components must be public")
        if is_html_tag(name):
            raise RegistrationError(f"component {name} conflicts with an existing HTML tag")
        component_type = ComponentType.from_class(cls)

        with self._lock:
            previous = self._components.get(name)
            self._components[name] = component_type
            recompiled: Dict[str, CompiledComponent] = {}

            def recompile(template_name: str) -> FrozenSet[str]:
                waiting = self._templates[template_name]
                recompiled[template_name] = self._compile(template_name, waiting.source or "")
                logger.debug("recompiled %s now that %s is registered", template_name, name)
                return recompiled[template_name].deferred

            try:
                compiled = self._compile(name, template_source)
                self._graph.resolve(name, recompile)
            except BaseException:
                if previous is None:
                    del self._components[name]
                else:
                    self._components[name] = previous
                raise

            self._templates[name] = compiled
            self._templates.update(recompiled)
            self._graph.set_pending(name, compiled.deferred)

        logger.debug(
            "registered component %s (waiting for: %s)",
            name,
            ", ".join(sorted(compiled.deferred)) or "nothing",
        )

    def _compile(self, name: str, source: str) -> CompiledComponent:
        result = compile_source(source, self._components.keys(), self.delimiters, name)
        try:
            template = self.environment.from_string(result.lowered)
        except TemplateSyntaxError as exc:
            raise CompileError(
                f"error compiling template: {exc.message} (line {exc.lineno})",
                template_name=name,
            ) from exc
        return CompiledComponent(
            name=name,
            template=template,
            lowered=result.lowered,
            source=source if result.deferred else None,
            deferred=result.deferred,
        )

    def _lookup(self, name: str) -> Tuple[ComponentType, CompiledComponent]:
        component_type = self._components.get(name)
        compiled = self._templates.get(name)
        if component_type is None or compiled is None:
            raise ComponentNotFoundError(f"no component registered for type {name}")
        return component_type, compiled

    def render(self, writer: Any, component: Any) -> None:
        """Render ``component`` and write the output to ``writer``."""
        self.render_with_funcs(writer, component, None)

    def render_with_funcs(self, writer: Any, component: Any, funcs: Optional[FuncMap]) -> None:
        """Render with functions that override the engine's for this call only.

        The overrides are visible to every nested component as well.
        """
        if inspect.isclass(component):
            component = self._lookup(component.__name__)[0].instantiate()
        component_type, compiled = self._lookup(type(component).__name__)

        try:
            if isinstance(component, Recoverable):
                writer.write(self._render_instance(component_type, compiled, component, component, funcs))
                return
            context = self._template_vars(component_type, component, component, funcs)
            for chunk in compiled.template.generate(context):
                writer.write(chunk)
        except GlamError:
            raise
        except Exception as exc:
            raise RenderError(f"error rendering component: {exc}", template_name=component_type.name) from exc

    def render_to_string(self, component: Any, funcs: Optional[FuncMap] = None) -> str:
        buffer = io.StringIO()
        self.render_with_funcs(buffer, component, funcs)
        return buffer.getvalue()

    def _template_vars(
        self, component_type: ComponentType, instance: Any, root: Any, funcs: Optional[FuncMap]
    ) -> Dict[str, Any]:
        context: Dict[str, Any] = dict(funcs or {})
        context.update(component_type.template_vars(instance))
        context[THIS_NAME] = instance
        context[ROOT_NAME] = root
        context[FUNCS_NAME] = funcs
        return context

    def _render_instance(
        self,
        component_type: ComponentType,
        compiled: CompiledComponent,
        instance: Any,
        root: Any,
        funcs: Optional[FuncMap],
    ) -> str:
        context = self._template_vars(component_type, instance, root, funcs)
        try:
            return compiled.template.render(context)
        except Exception as exc:
            if not isinstance(instance, Recoverable):
                raise
            logger.warning("component %s recovered from %r", component_type.name, exc)
            out = io.StringIO()
            instance.recover(exc, out)
            return out.getvalue()

    @pass_context
    def _render_callout(
        self,
        context: Context,
        name: str,
        block_id: str,
        attributes: Optional[Dict[str, Any]],
        carrier: Optional[BlockContext],
    ) -> Markup:
        component_type, compiled = self._lookup(name)

        children = None
        if component_type.children_field is not None:
            children = self._render_block(context, block_id, carrier)
        elif block_id:
            logger.debug("component %s has no children field, children are dropped", name)

        instance = component_type.instantiate(attributes, children)
        root = carrier.root if isinstance(carrier, BlockContext) else context.get(ROOT_NAME)
        funcs = context.get(FUNCS_NAME)
        return Markup(self._render_instance(component_type, compiled, instance, root, funcs))

    def _render_block(self, context: Context, block_id: str, carrier: Optional[BlockContext]) -> Markup:
        if not block_id:
            return Markup("")
        macro = context.get(block_id)
        if macro is None:
            raise RenderError(f"children block {block_id} is not defined")
        return Markup(macro(carrier))
