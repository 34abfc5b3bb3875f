"""
Metadata tags attached to model properties or form fields.

Tags are plain frozen dataclasses. Attach them to a model with
``typing.Annotated`` (dataclasses, pydantic models, annotated classes), with
``dataclasses.field(metadata={"form": (...)})`` or with pydantic
``Field(json_schema_extra={"form": (...)})``. Fields may carry their own tags,
which take precedence over the property's tags of the same class.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Tuple, Type, TypeVar

# Key used in dataclass field metadata and pydantic json_schema_extra
METADATA_KEY = "form"


class FormAttribute:
    """Base class of all form metadata tags."""


@dataclass(frozen=True)
class Hidden(FormAttribute):
    """Do not render the property."""


@dataclass(frozen=True)
class ReadOnly(FormAttribute):
    """Render the property disabled and bind it get-only."""


@dataclass(frozen=True)
class Row(FormAttribute):
    """Place the field in the layout row with the given id."""
    row_id: int

    def __post_init__(self):
        # 0 is reserved for fields without a row
        if isinstance(self.row_id, bool) or not isinstance(self.row_id, int) or self.row_id <= 0:
            raise ValueError(f"Row id must be a positive integer, got {self.row_id!r}")


@dataclass(frozen=True)
class Display(FormAttribute):
    """Label text used instead of the property name."""
    name: str


@dataclass(frozen=True)
class Password(FormAttribute):
    """Mask the rendered value."""


@dataclass(frozen=True)
class TextArea(FormAttribute):
    """Render text as a multi-line editor."""


@dataclass(frozen=True)
class Time(FormAttribute):
    """Render a temporal value as time of day only."""


@dataclass(frozen=True)
class DateTime(FormAttribute):
    """Render a temporal value with both date and time."""


@dataclass(frozen=True)
class CustomValidation(FormAttribute):
    """
    Extra per-member check run by the validation adapter.

    The callable receives the value and returns an error message, or None when
    the value is acceptable.
    """
    check: Callable[[Any], Optional[str]]
    name: str = "custom"


A = TypeVar("A", bound=FormAttribute)


def find_attribute(attributes: Iterable[Any], attribute_type: Type[A]) -> Optional[A]:
    """Return the first tag of the given class, or None."""
    for attribute in attributes or ():
        if type(attribute) is attribute_type:
            return attribute
    return None


def has_attribute(attributes: Iterable[Any], attribute_type: Type[FormAttribute]) -> bool:
    return find_attribute(attributes, attribute_type) is not None


def only_form_attributes(values: Iterable[Any]) -> Tuple[FormAttribute, ...]:
    """Filter arbitrary metadata down to form tags, keeping order."""
    return tuple(v for v in values or () if isinstance(v, FormAttribute))


def merge_attributes(own: Iterable[Any], inherited: Iterable[Any]) -> Tuple[FormAttribute, ...]:
    """
    Union of a field's own tags and the backing property's tags.

    Own tags come first and win: an inherited tag is dropped when a tag of the
    same class is already present.
    """
    merged = list(only_form_attributes(own))
    seen = {type(a) for a in merged}
    for attribute in only_form_attributes(inherited):
        if type(attribute) not in seen:
            merged.append(attribute)
            seen.add(type(attribute))
    return tuple(merged)


def row_key(attributes: Iterable[Any]) -> int:
    """Row id of the tags, 0 when no Row tag is present."""
    row = find_attribute(attributes, Row)
    return row.row_id if row is not None else 0
