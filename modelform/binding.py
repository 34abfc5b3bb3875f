"""
Two-way bindings between widgets and model storage.

A binding is rebuilt on every render pass from a resolved field, its
descriptor and the model. Writing through a binding updates the model first
and then notifies the owning form, which tracks the change.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .fields import ComplexField, ResolvedField
from .resolver import PropertyDescriptor
from .validation import KeyReference, MemberReference, ValueReference
from .widgets import DispatchContext, WidgetSpec, fallback_widget, select_widget

logger = logging.getLogger(__name__)


@dataclass
class ComplexFieldContext:
    """Argument handed to a ComplexField template."""
    row: Any
    input_id: str
    value: Any
    value_changed: Optional[Callable[[Any], None]]
    reference: Optional[ValueReference]
    grid_context: Any = None


@dataclass
class Binding:
    """
    Live connection between one widget and the model.

    Attributes:
        name: Property path the binding edits
        widget: Selected widget; None for complex fields
        value: Value read when the binding was built
        input_id: Stable id used for label association
        reference: Symbolic reference for the validation engine
        getter: Reads the current model value
        setter: Writes a value and notifies the form; None when read-only
        complex_context: Template argument for complex fields
    """
    name: str
    widget: Optional[WidgetSpec]
    value: Any
    input_id: str
    reference: Optional[ValueReference]
    getter: Callable[[], Any]
    setter: Optional[Callable[[Any], None]] = None
    complex_context: Optional[ComplexFieldContext] = None
    additional_attributes: dict = field(default_factory=dict)

    @property
    def is_read_only(self) -> bool:
        return self.setter is None

    def get(self) -> Any:
        return self.getter()

    def set(self, value: Any) -> None:
        if self.setter is None:
            raise AttributeError(f"Field '{self.name}' is read-only")
        self.setter(value)


def make_reference(descriptor: PropertyDescriptor, model: Any) -> Optional[ValueReference]:
    """
    Build the validation reference for a descriptor.

    Dictionary members get a KeyReference carrying the declared type; they are
    never presented as object members.
    """
    holder = descriptor.get_holder(model)
    if holder is None:
        return None
    if descriptor.is_bag:
        return KeyReference(id(holder), descriptor.name, descriptor.declared_type, holder)
    return MemberReference(id(holder), descriptor.name, descriptor.member_name, holder)


def _make_setter(descriptor: PropertyDescriptor, model: Any, form: Any) -> Callable[[Any], None]:
    def setter(new_value: Any) -> None:
        previous = descriptor.get_value(model)
        descriptor.set_value(model, new_value)
        form.notify_value_changed(descriptor.name, new_value, previous)
    return setter


def _widget_attributes(resolved: ResolvedField, cell_style_key: Optional[str]) -> dict:
    return {k: v for k, v in resolved.field.additional_attributes.items() if k != cell_style_key}


def bind(resolved: ResolvedField, model: Any, form: Any, input_id: str,
         context: Optional[DispatchContext] = None,
         cell_style_key: Optional[str] = None,
         grid_context: Any = None) -> Binding:
    """
    Bind a resolved property field to the model.

    Args:
        resolved: Field with its descriptor
        model: Typed object or dictionary bag
        form: Owner notified through ``notify_value_changed``
        input_id: Id assigned to the input
        context: Render-context flags for widget selection
        cell_style_key: Additional-attribute key reserved for table cells
        grid_context: Passed through to complex field templates

    Returns:
        Binding; degraded to the fallback widget without setter when the
        holder is missing or the type is unsupported
    """
    descriptor = resolved.descriptor
    type_info = descriptor.type_info

    def getter() -> Any:
        return descriptor.get_value(model)

    extra = _widget_attributes(resolved, cell_style_key)

    holder_missing = descriptor.get_holder(model) is None
    value = None if holder_missing else descriptor.get_value(model)

    if isinstance(resolved.field, ComplexField):
        if resolved.field.template is None or holder_missing:
            logger.warning(f"Complex field '{descriptor.name}' has no template or holder, using fallback")
            return Binding(descriptor.name, fallback_widget(context), value, input_id, None, getter,
                           additional_attributes=extra)
        reference = make_reference(descriptor, model)
        setter = _make_setter(descriptor, model, form)
        complex_context = ComplexFieldContext(model, input_id, value, setter, reference, grid_context)
        return Binding(descriptor.name, None, value, input_id, reference, getter, setter,
                       complex_context=complex_context, additional_attributes=extra)

    if holder_missing or not type_info.is_supported:
        logger.debug(f"Field '{descriptor.name}' degraded to fallback widget")
        return Binding(descriptor.name, fallback_widget(context), value, input_id, None, getter,
                       additional_attributes=extra)

    widget = select_widget(type_info, descriptor.attributes, context, descriptor.is_read_only)

    if value is None:
        value = type_info.zero_value

    setter = None if widget.disabled else _make_setter(descriptor, model, form)
    return Binding(
        name=descriptor.name,
        widget=widget,
        value=value,
        input_id=input_id,
        reference=make_reference(descriptor, model),
        getter=getter,
        setter=setter,
        additional_attributes=extra,
    )
