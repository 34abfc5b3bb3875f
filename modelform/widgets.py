"""
Widget selection for resolved form fields.

select_widget() is a pure function from a resolved type, its metadata tags and
the render context to a WidgetSpec. It is total over every TypeCategory:
unsupported types get the fallback widget instead of an error.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import time
from typing import Any, Dict, Iterable, Optional

from .attributes import DateTime, Password, ReadOnly, TextArea, Time, has_attribute
from .config_loader import ZERO_WIDTH_SPACE
from .exceptions import FieldConfigurationError
from .type_info import TypeCategory, TypeInfo

logger = logging.getLogger(__name__)


class WidgetKind(str, enum.Enum):
    NUMBER_INPUT = "number_input"
    DATE_INPUT = "date_input"
    TIME_INPUT = "time_input"
    DATETIME_INPUT = "datetime_input"
    CHECKBOX = "checkbox"
    SELECT = "select"
    GUID_INPUT = "guid_input"
    TEXT_INPUT = "text_input"
    TEXT_AREA = "text_area"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class DispatchContext:
    """Render-context flags that influence widget selection."""
    is_filter_row: bool = False
    css_class: str = "m-form-control"
    null_description: str = ZERO_WIDTH_SPACE


@dataclass
class WidgetSpec:
    """
    Widget identity and configuration handed to the renderer.

    Attributes:
        kind: Selected widget
        options: Widget-specific configuration
        disabled: Render without accepting input
        css_class: Class hint for the input element
        input_type: "password" to mask the value, else None
    """
    kind: WidgetKind
    options: Dict[str, Any] = field(default_factory=dict)
    disabled: bool = False
    css_class: str = "m-form-control"
    input_type: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.kind is WidgetKind.FALLBACK


def fallback_widget(context: Optional[DispatchContext] = None) -> WidgetSpec:
    """Disabled read-only display of the current value."""
    context = context or DispatchContext()
    return WidgetSpec(WidgetKind.FALLBACK, disabled=True, css_class=context.css_class)


def _temporal_kind(type_info: TypeInfo, attributes: Iterable[Any]) -> WidgetKind:
    if has_attribute(attributes, Time) or type_info.underlying_type is time:
        return WidgetKind.TIME_INPUT
    if has_attribute(attributes, DateTime):
        return WidgetKind.DATETIME_INPUT
    return WidgetKind.DATE_INPUT


def _choice_options(choices, type_info: TypeInfo, context: DispatchContext) -> Dict[str, Any]:
    options: Dict[str, Any] = {'choices': list(choices), 'nullable': type_info.nullable}
    if context.is_filter_row:
        options['null_description'] = context.null_description
    return options


def select_widget(type_info: Optional[TypeInfo], attributes: Iterable[Any] = (),
                  context: Optional[DispatchContext] = None,
                  is_read_only: bool = False) -> WidgetSpec:
    """
    Determine the widget for a resolved field.

    Args:
        type_info: Resolved declared type of the field
        attributes: Effective metadata tags of the field
        context: Render-context flags
        is_read_only: Whether the backing property is read-only

    Returns:
        WidgetSpec

    Raises:
        FieldConfigurationError: If no declared type was resolved
    """
    if type_info is None:
        raise FieldConfigurationError(None, message="could not determine type for field; declare it explicitly")

    context = context or DispatchContext()
    attributes = tuple(attributes or ())
    category = type_info.category
    options: Dict[str, Any] = {}

    if category is TypeCategory.NUMERIC:
        kind = WidgetKind.NUMBER_INPUT
        options['number_type'] = type_info.underlying_type
        options['step'] = 1 if issubclass(type_info.underlying_type, int) else 0.01
        options['nullable'] = type_info.nullable

    elif category is TypeCategory.TEMPORAL:
        kind = _temporal_kind(type_info, attributes)
        options['nullable'] = type_info.nullable

    elif category is TypeCategory.BOOLEAN:
        if type_info.nullable:
            kind = WidgetKind.SELECT
            options = _choice_options((True, False), type_info, context)
        else:
            kind = WidgetKind.CHECKBOX

    elif category is TypeCategory.IDENTIFIER:
        kind = WidgetKind.GUID_INPUT

    elif category is TypeCategory.CHOICE:
        kind = WidgetKind.SELECT
        options = _choice_options(type_info.choices, type_info, context)

    elif category is TypeCategory.TEXT:
        kind = WidgetKind.TEXT_AREA if has_attribute(attributes, TextArea) else WidgetKind.TEXT_INPUT

    else:
        logger.debug(f"Unsupported type {type_info.declared_type!r}, using fallback widget")
        return fallback_widget(context)

    return WidgetSpec(
        kind=kind,
        options=options,
        disabled=is_read_only or has_attribute(attributes, ReadOnly),
        css_class=context.css_class,
        input_type="password" if has_attribute(attributes, Password) else None,
    )
