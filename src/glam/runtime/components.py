"""Component type descriptors.

A component is a class, normally a dataclass. Its public fields are the
attributes it accepts in markup; one optional field receives the rendered
children.
"""

import dataclasses
import logging
import typing
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Mapping, Optional

from markupsafe import Markup

from glam.compiler.exceptions import GlamError
from glam.compiler.scope import RESERVED_PREFIX, ROOT_NAME, THIS_NAME
from glam.core.props import ATTR_METADATA_KEY, CHILDREN_METADATA_KEY

logger = logging.getLogger(__name__)

CHILDREN_FIELD_NAME = "children"

_ZERO_FACTORIES = (str, int, float, bool, complex, bytes, list, dict, set, frozenset, tuple)


class RegistrationError(GlamError):
    """A component or its template cannot be registered."""


def zero_value(annotation: Any) -> Any:
    """Empty value for a field type: "", 0, empty containers, else None."""
    if annotation is Markup:
        return Markup("")
    origin = typing.get_origin(annotation) or annotation
    if origin in _ZERO_FACTORIES:
        return origin()
    return None


def _type_hints(cls: type) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        # Unresolvable forward references; fall back to the raw annotations.
        hints: Dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            hints.update(getattr(klass, "__annotations__", {}))
        return hints


@dataclass(frozen=True)
class FieldSpec:
    name: str
    attribute: str
    annotation: Any = None
    is_children: bool = False
    has_default: bool = False

    def zero(self) -> Any:
        return zero_value(self.annotation)


@dataclass(frozen=True)
class ComponentType:
    name: str
    cls: type
    fields: Mapping[str, FieldSpec]
    children_field: Optional[str] = None

    @classmethod
    def from_class(cls, component: type) -> "ComponentType":
        hints = _type_hints(component)
        specs: List[FieldSpec] = []

        if dataclasses.is_dataclass(component):
            for item in dataclasses.fields(component):
                if item.name.startswith("_"):
                    continue
                specs.append(
                    FieldSpec(
                        name=item.name,
                        attribute=item.metadata.get(ATTR_METADATA_KEY, item.name),
                        annotation=hints.get(item.name, item.type),
                        is_children=bool(item.metadata.get(CHILDREN_METADATA_KEY))
                        or item.name == CHILDREN_FIELD_NAME,
                        has_default=item.default is not dataclasses.MISSING
                        or item.default_factory is not dataclasses.MISSING,
                    )
                )
        else:
            for name, annotation in hints.items():
                if name.startswith("_") or typing.get_origin(annotation) is ClassVar:
                    continue
                specs.append(
                    FieldSpec(
                        name=name,
                        attribute=name,
                        annotation=annotation,
                        is_children=name == CHILDREN_FIELD_NAME,
                        has_default=hasattr(component, name),
                    )
                )

        children_fields = [spec.name for spec in specs if spec.is_children]
        if len(children_fields) > 1:
            raise RegistrationError(
                f"component {component.__name__} declares more than one children field: "
                + ", ".join(children_fields)
            )
        for spec in specs:
            if spec.name in (THIS_NAME, ROOT_NAME) or spec.name.startswith(RESERVED_PREFIX):
                raise RegistrationError(
                    f"component {component.__name__} uses reserved field name {spec.name!r}"
                )

        return cls(
            name=component.__name__,
            cls=component,
            fields={spec.attribute: spec for spec in specs},
            children_field=children_fields[0] if children_fields else None,
        )

    def instantiate(
        self, attributes: Optional[Mapping[str, Any]] = None, children: Optional[Markup] = None
    ) -> Any:
        """Build a component instance from markup attribute values.

        Attributes are matched to fields by exact markup name; unknown ones
        are ignored. Fields without a value or default get a zero value.
        ``children`` goes to the children field when the type declares one.
        """
        values: Dict[str, Any] = {}
        for key, value in (attributes or {}).items():
            spec = self.fields.get(key)
            if spec is None or spec.is_children:
                logger.debug("component %s ignores attribute %r", self.name, key)
                continue
            values[spec.name] = value
        if children is not None and self.children_field is not None:
            values[self.children_field] = children

        if dataclasses.is_dataclass(self.cls):
            init_names = {item.name for item in dataclasses.fields(self.cls) if item.init}
            kwargs = {}
            for spec in self.fields.values():
                if spec.name not in init_names:
                    continue
                if spec.name in values:
                    kwargs[spec.name] = values[spec.name]
                elif not spec.has_default:
                    kwargs[spec.name] = spec.zero()
            instance = self.cls(**kwargs)
            for name, value in values.items():
                if name not in init_names:
                    setattr(instance, name, value)
            return instance

        instance = self.cls()
        for spec in self.fields.values():
            if spec.name in values:
                setattr(instance, spec.name, values[spec.name])
            elif not hasattr(instance, spec.name):
                setattr(instance, spec.name, spec.zero())
        return instance

    def template_vars(self, instance: Any) -> Dict[str, Any]:
        """Field values of ``instance`` keyed by field name."""
        return {spec.name: getattr(instance, spec.name, spec.zero()) for spec in self.fields.values()}
