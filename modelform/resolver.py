"""
Property descriptor resolution for typed models and open dictionary bags.

Typed models (pydantic models, dataclasses, annotated classes) are introspected
per class and the result cached. Dictionary models carry no static members, so
their descriptors are synthesized on demand from a caller-supplied key and type.
"""

import dataclasses
import functools
import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, List, Optional, Tuple, get_origin, get_type_hints

from pydantic import BaseModel

from .attributes import METADATA_KEY, FormAttribute, merge_attributes, only_form_attributes
from .type_info import TypeInfo, classify, classify_optional, strip_annotated, unwrap_optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberSpec:
    """Static description of one declared member of a class."""
    name: str
    declared_type: Any
    attributes: Tuple[FormAttribute, ...] = ()
    is_read_only: bool = False


@dataclass(frozen=True)
class PropertyDescriptor:
    """
    Introspected metadata and accessors for one model property.

    Attributes:
        name: Property name; dotted for nested members ("address.city")
        type_info: Resolved declared type, None when unknown
        attributes: Ordered metadata tags
        is_read_only: True when the member cannot be written
        is_bag: True when the value lives under a dictionary key
    """
    name: str
    type_info: Optional[TypeInfo]
    attributes: Tuple[FormAttribute, ...] = ()
    is_read_only: bool = False
    is_bag: bool = False
    path: Tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self):
        if not self.path:
            object.__setattr__(self, "path", tuple(self.name.split(".")))

    @property
    def declared_type(self) -> Any:
        return self.type_info.declared_type if self.type_info is not None else None

    @property
    def member_name(self) -> str:
        return self.path[-1]

    def get_holder(self, model: Any) -> Any:
        """Return the object or dictionary that directly owns the member, or None."""
        holder = model
        for part in self.path[:-1]:
            if holder is None:
                return None
            if isinstance(holder, Mapping):
                holder = holder.get(part)
            else:
                holder = getattr(holder, part, None)
        return holder

    def get_value(self, model: Any) -> Any:
        holder = self.get_holder(model)
        if holder is None:
            return None
        if isinstance(holder, Mapping):
            return holder.get(self.member_name)
        return getattr(holder, self.member_name, None)

    def set_value(self, model: Any, value: Any) -> None:
        holder = self.get_holder(model)
        if holder is None:
            raise AttributeError(f"Cannot set '{self.name}': the owning object is not set")
        if isinstance(holder, MutableMapping):
            holder[self.member_name] = value
        else:
            setattr(holder, self.member_name, value)

    def with_attributes(self, attributes: Tuple[FormAttribute, ...]) -> "PropertyDescriptor":
        return replace(self, attributes=tuple(attributes))


@dataclass(frozen=True)
class EmptyPropertyDescriptor(PropertyDescriptor):
    """Placeholder for fields that name neither a property nor a type."""
    name: str = ""
    type_info: Optional[TypeInfo] = None
    path: Tuple[str, ...] = field(default=("",), compare=False)

    def get_holder(self, model: Any) -> Any:
        return None

    def get_value(self, model: Any) -> Any:
        return None

    def set_value(self, model: Any, value: Any) -> None:
        pass


def is_bag(model: Any) -> bool:
    """True for open key/value models."""
    return isinstance(model, Mapping)


def _annotation_attributes(annotation: Any) -> Tuple[FormAttribute, ...]:
    """Collect form tags from Annotated metadata, including inside Optional[...]."""
    tp, extras = strip_annotated(annotation)
    inner, _ = unwrap_optional(tp)
    _, inner_extras = strip_annotated(inner)
    return only_form_attributes(extras + inner_extras)


def _extra_attributes(container: Any) -> Tuple[FormAttribute, ...]:
    if isinstance(container, Mapping):
        values = container.get(METADATA_KEY, ())
        if isinstance(values, FormAttribute):
            values = (values,)
        return only_form_attributes(values)
    return ()


def _pydantic_members(cls: type) -> List[MemberSpec]:
    frozen = bool(cls.model_config.get("frozen", False))
    members = []
    for name, info in cls.model_fields.items():
        own = only_form_attributes(info.metadata) + _extra_attributes(info.json_schema_extra)
        # pydantic keeps unknown Annotated extras in info.metadata
        members.append(MemberSpec(
            name=name,
            declared_type=info.annotation,
            attributes=merge_attributes(own, _annotation_attributes(info.annotation)),
            is_read_only=frozen or bool(info.frozen),
        ))
    return members


def _dataclass_members(cls: type) -> List[MemberSpec]:
    frozen = cls.__dataclass_params__.frozen
    hints = get_type_hints(cls, include_extras=True)
    members = []
    for f in dataclasses.fields(cls):
        annotation = hints.get(f.name, f.type)
        declared, _ = strip_annotated(annotation)
        members.append(MemberSpec(
            name=f.name,
            declared_type=declared,
            attributes=merge_attributes(_extra_attributes(f.metadata), _annotation_attributes(annotation)),
            is_read_only=frozen,
        ))
    return members


def _annotated_class_members(cls: type) -> List[MemberSpec]:
    hints = get_type_hints(cls, include_extras=True)
    members = []
    for name, annotation in hints.items():
        if name.startswith("_") or get_origin(annotation) is ClassVar:
            continue
        declared, _ = strip_annotated(annotation)
        members.append(MemberSpec(name, declared, _annotation_attributes(annotation)))

    known = {m.name for m in members}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if name.startswith("_") or name in known or not isinstance(value, property):
                continue
            annotation = get_type_hints(value.fget, include_extras=True).get("return") if value.fget else None
            if annotation is None:
                continue
            declared, _ = strip_annotated(annotation)
            members.append(MemberSpec(name, declared, _annotation_attributes(annotation),
                                      is_read_only=value.fset is None))
            known.add(name)
    return members


@functools.lru_cache(maxsize=None)
def describe_class(cls: type) -> Tuple[MemberSpec, ...]:
    """
    List the declared instance members of a class in declaration order.

    Args:
        cls: A pydantic model, dataclass or annotated class

    Returns:
        Tuple of MemberSpec, base-class members first
    """
    if isinstance(cls, type) and issubclass(cls, BaseModel):
        members = _pydantic_members(cls)
    elif dataclasses.is_dataclass(cls):
        members = _dataclass_members(cls)
    else:
        members = _annotated_class_members(cls)
    logger.debug(f"Described {cls.__name__}: {[m.name for m in members]}")
    return tuple(members)


def _member_of(cls: Any, name: str) -> Optional[MemberSpec]:
    if not isinstance(cls, type):
        return None
    for member in describe_class(cls):
        if member.name == name:
            return member
    return None


def _is_mapping_type(tp: Any) -> bool:
    origin = get_origin(tp) or tp
    return isinstance(origin, type) and issubclass(origin, Mapping)


def resolve(model: Any) -> List[PropertyDescriptor]:
    """
    Enumerate the renderable properties of a model.

    Args:
        model: Typed object or dictionary bag

    Returns:
        Descriptors in declaration order; empty for dictionary bags, whose
        descriptors are created per key with describe()
    """
    if is_bag(model):
        return []
    return [
        PropertyDescriptor(
            name=member.name,
            type_info=classify(member.declared_type),
            attributes=member.attributes,
            is_read_only=member.is_read_only,
        )
        for member in describe_class(type(model))
    ]


def describe(model: Any, name: str, declared_type: Any = None,
             attributes: Tuple[FormAttribute, ...] = ()) -> PropertyDescriptor:
    """
    Build the descriptor for one (possibly dotted) property name.

    An explicitly declared type wins over the introspected one. Members of
    dictionary bags take their type and tags from the caller only; a bag
    member without a declared type keeps type_info None and fails at dispatch.

    Args:
        model: Typed object or dictionary bag
        name: Property name or dotted path
        declared_type: Explicit type, required for bag members
        attributes: Explicit tags from the field

    Returns:
        PropertyDescriptor
    """
    parts = name.split(".")
    current: Any = type(model)
    bag = is_bag(model)
    member: Optional[MemberSpec] = None

    for index, part in enumerate(parts):
        if bag:
            break
        member = _member_of(current, part)
        if member is None:
            break
        if index < len(parts) - 1:
            inner, _ = unwrap_optional(strip_annotated(member.declared_type)[0])
            current = strip_annotated(inner)[0]
            if _is_mapping_type(current):
                bag = True
                member = None

    if bag:
        return PropertyDescriptor(
            name=name,
            type_info=classify_optional(declared_type),
            attributes=only_form_attributes(attributes),
            is_bag=True,
            path=tuple(parts),
        )

    if member is None or member.name != parts[-1]:
        logger.debug(f"No declared member '{name}' on {type(model).__name__}")
        return PropertyDescriptor(
            name=name,
            type_info=classify_optional(declared_type),
            attributes=only_form_attributes(attributes),
            path=tuple(parts),
        )

    return PropertyDescriptor(
        name=name,
        type_info=classify(declared_type if declared_type is not None else member.declared_type),
        attributes=member.attributes,
        is_read_only=member.is_read_only,
        path=tuple(parts),
    )
