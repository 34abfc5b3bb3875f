"""
Declared-type classification for widget dispatch.

Each declared type is resolved once into a TypeInfo carrying its category, so
dispatch never has to probe Python types again during a render pass.
"""

import enum
import types
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Annotated, Any, Optional, Tuple, Union, get_args, get_origin

_UNION_TYPES = tuple(t for t in (Union, getattr(types, "UnionType", None)) if t is not None)
_NONE_TYPE = type(None)

NUMBER_TYPES = (int, float, Decimal)
TEMPORAL_TYPES = (datetime, date, time)


class TypeCategory(str, enum.Enum):
    """Closed set of declared-type families the dispatcher knows about."""
    NUMERIC = "numeric"
    TEMPORAL = "temporal"
    BOOLEAN = "boolean"
    IDENTIFIER = "identifier"
    CHOICE = "choice"
    TEXT = "text"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class TypeInfo:
    """
    A declared type resolved for dispatch.

    Attributes:
        declared_type: The type as declared (Optional wrappers included)
        underlying_type: The type with nullability removed
        nullable: Whether None is an accepted value
        category: Dispatch family of underlying_type
        choices: Enum members for CHOICE types, empty otherwise
    """
    declared_type: Any
    underlying_type: Any
    nullable: bool
    category: TypeCategory
    choices: Tuple[Any, ...] = ()

    @property
    def is_supported(self) -> bool:
        return self.category is not TypeCategory.UNSUPPORTED

    @property
    def zero_value(self) -> Any:
        """Value shown when the model holds None for a non-nullable type."""
        if self.nullable:
            return None
        tp = self.underlying_type
        if self.category is TypeCategory.BOOLEAN:
            return False
        if self.category is TypeCategory.NUMERIC:
            return tp(0)
        if self.category is TypeCategory.TEXT:
            return ""
        if self.category is TypeCategory.IDENTIFIER:
            return uuid.UUID(int=0)
        if self.category is TypeCategory.CHOICE:
            return self.choices[0] if self.choices else None
        if self.category is TypeCategory.TEMPORAL:
            return tp.min
        return None


def strip_annotated(tp: Any) -> Tuple[Any, Tuple[Any, ...]]:
    """Split ``Annotated[T, *extras]`` into (T, extras); other types pass through."""
    if get_origin(tp) is Annotated:
        args = get_args(tp)
        return args[0], tuple(args[1:])
    return tp, ()


def unwrap_optional(tp: Any) -> Tuple[Any, bool]:
    """Return (underlying type, nullable) for ``Optional[T]`` / ``T | None``."""
    if get_origin(tp) in _UNION_TYPES:
        args = get_args(tp)
        if _NONE_TYPE in args:
            remaining = tuple(a for a in args if a is not _NONE_TYPE)
            if len(remaining) == 1:
                return remaining[0], True
            return Union[remaining], True
    return tp, False


def _category_of(tp: Any) -> TypeCategory:
    if not isinstance(tp, type):
        return TypeCategory.UNSUPPORTED
    # bool is an int subclass and Enum members may be ints or strs
    if issubclass(tp, enum.Enum):
        return TypeCategory.CHOICE
    if issubclass(tp, bool):
        return TypeCategory.BOOLEAN
    if issubclass(tp, NUMBER_TYPES):
        return TypeCategory.NUMERIC
    if issubclass(tp, TEMPORAL_TYPES):
        return TypeCategory.TEMPORAL
    if issubclass(tp, uuid.UUID):
        return TypeCategory.IDENTIFIER
    if issubclass(tp, str):
        return TypeCategory.TEXT
    return TypeCategory.UNSUPPORTED


def classify(declared_type: Any) -> TypeInfo:
    """
    Resolve a declared type into a TypeInfo.

    Args:
        declared_type: Any Python type annotation

    Returns:
        TypeInfo; unknown or composite types get the UNSUPPORTED category
    """
    tp, _ = strip_annotated(declared_type)
    underlying, nullable = unwrap_optional(tp)
    underlying, _ = strip_annotated(underlying)

    category = _category_of(underlying)
    choices: Tuple[Any, ...] = ()
    if category is TypeCategory.CHOICE:
        choices = tuple(underlying)

    return TypeInfo(
        declared_type=declared_type,
        underlying_type=underlying,
        nullable=nullable,
        category=category,
        choices=choices,
    )


def is_type_supported(declared_type: Any) -> bool:
    return classify(declared_type).is_supported


def classify_optional(declared_type: Optional[Any]) -> Optional[TypeInfo]:
    """Like classify(), but passes None through for unknown types."""
    if declared_type is None:
        return None
    return classify(declared_type)
