"""
Caller-declared form fields and their reconciliation with model properties.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .attributes import FormAttribute, Hidden, Row, has_attribute, merge_attributes, only_form_attributes, row_key
from .exceptions import FieldConfigurationError
from .resolver import EmptyPropertyDescriptor, PropertyDescriptor, describe, describe_class, is_bag, resolve

logger = logging.getLogger(__name__)


@dataclass(eq=False, kw_only=True)
class FormField:
    """Base render unit. Fields compare by identity so they can be unregistered."""
    attributes: Tuple[FormAttribute, ...] = ()
    additional_attributes: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.attributes = only_form_attributes(self.attributes)

    @property
    def row_key(self) -> int:
        return row_key(self.attributes)


@dataclass(eq=False)
class PropertyField(FormField):
    """
    Field backed by a model property.

    Args:
        name: Property name or dotted path; may be omitted when declared_type
            matches exactly one member of the model
        declared_type: Explicit type; required for dictionary models
        row: Shortcut for adding a Row(row) tag
    """
    name: Optional[str] = None
    declared_type: Any = None
    row: Optional[int] = None

    def __post_init__(self):
        super().__post_init__()
        if self.row is not None and not has_attribute(self.attributes, Row):
            self.attributes = self.attributes + (Row(self.row),)


@dataclass(eq=False)
class ComplexField(PropertyField):
    """Property field rendered by a caller template instead of the dispatcher."""
    template: Optional[Callable[[Any], Any]] = None


@dataclass(eq=False)
class GeneratorField(FormField):
    """Field without a backing property; the template renders everything."""
    template: Optional[Callable[["GeneratorContext"], Any]] = None


@dataclass
class GeneratorContext:
    """Argument handed to a GeneratorField template."""
    form: Any


@dataclass(frozen=True)
class FieldIdentifier:
    """Unit of change tracking: a field name on one model instance."""
    model_id: int
    field_name: str

    @classmethod
    def for_model(cls, model: Any, field_name: str) -> "FieldIdentifier":
        return cls(id(model), field_name)


@dataclass
class ResolvedField:
    """A field paired with its descriptor and effective attributes."""
    field: FormField
    descriptor: Optional[PropertyDescriptor]
    attributes: Tuple[FormAttribute, ...]

    @property
    def name(self) -> Optional[str]:
        return self.descriptor.name if self.descriptor is not None else None

    @property
    def row_key(self) -> int:
        return row_key(self.attributes)

    @property
    def is_hidden(self) -> bool:
        return has_attribute(self.attributes, Hidden)


def _infer_name(model: Any, declared_type: Any) -> Optional[str]:
    if is_bag(model):
        return None
    matches = [m.name for m in describe_class(type(model)) if m.declared_type == declared_type]
    if len(matches) == 1:
        return matches[0]
    return None


def resolve_descriptor(model: Any, form_field: PropertyField) -> PropertyDescriptor:
    """
    Resolve the descriptor backing a property field.

    The field's own tags are merged over the property's tags and stored on the
    returned descriptor.

    Raises:
        FieldConfigurationError: If neither the property nor a declared type
            can be determined
    """
    name = form_field.name
    if name is None and form_field.declared_type is None:
        return EmptyPropertyDescriptor(attributes=form_field.attributes)

    if name is None:
        name = _infer_name(model, form_field.declared_type)
        if name is None:
            raise FieldConfigurationError(
                None, type(model),
                f"could not find a unique property of type {form_field.declared_type!r}; name the field explicitly"
            )

    descriptor = describe(model, name, form_field.declared_type, form_field.attributes)
    if descriptor.type_info is None:
        raise FieldConfigurationError(name, type(model))

    return descriptor.with_attributes(merge_attributes(form_field.attributes, descriptor.attributes))


def reconcile(explicit_fields: Optional[Sequence[FormField]], model: Any) -> List[ResolvedField]:
    """
    Produce the canonical, ordered field list for a model.

    A non-empty explicit list replaces property enumeration entirely. Hidden
    fields are dropped.

    Args:
        explicit_fields: Fields registered by the caller, may be empty
        model: Typed object or dictionary bag

    Returns:
        List of ResolvedField in render order
    """
    resolved: List[ResolvedField] = []

    if explicit_fields:
        for form_field in explicit_fields:
            if isinstance(form_field, PropertyField):
                descriptor = resolve_descriptor(model, form_field)
                resolved.append(ResolvedField(form_field, descriptor, descriptor.attributes))
            else:
                resolved.append(ResolvedField(form_field, None, form_field.attributes))
    else:
        for descriptor in resolve(model):
            form_field = PropertyField(
                name=descriptor.name,
                declared_type=descriptor.declared_type,
                attributes=descriptor.attributes,
            )
            resolved.append(ResolvedField(form_field, descriptor, descriptor.attributes))

    visible = [r for r in resolved if not r.is_hidden]
    if len(visible) != len(resolved):
        logger.debug(f"Dropped {len(resolved) - len(visible)} hidden field(s)")
    return visible
