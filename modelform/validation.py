"""
Validation contract and the default pydantic-backed validation engine.

Bindings hand the validation engine a symbolic reference to the value they
edit. Typed models produce a MemberReference pointing at a real member of the
holder object, so member metadata (CustomValidation tags, pydantic field
constraints) applies. Dictionary models produce a KeyReference instead: there
is no member to reflect metadata from, so per-key annotations are not
available and only model-level validation can report errors for the key.
"""

import dataclasses
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Protocol, Type, Union, runtime_checkable

from pydantic import BaseModel, TypeAdapter, ValidationError

from .attributes import CustomValidation, find_attribute
from .resolver import is_bag, resolve

logger = logging.getLogger(__name__)

GENERAL = "general"


@dataclass(frozen=True)
class MemberReference:
    """Reference to a real member on a typed holder object."""
    holder_id: int
    path: str
    member: str
    holder: Any = field(default=None, compare=False, hash=False, repr=False)
    supports_member_metadata: ClassVar[bool] = True


@dataclass(frozen=True)
class KeyReference:
    """Synthetic reference to a dictionary entry with a caller-declared type."""
    bag_id: int
    path: str
    declared_type: Any = field(default=None, compare=False, hash=False)
    bag: Any = field(default=None, compare=False, hash=False, repr=False)
    supports_member_metadata: ClassVar[bool] = False

    @property
    def key(self) -> str:
        return self.path.split(".")[-1]


ValueReference = Union[MemberReference, KeyReference]


@dataclass
class ValidationContext:
    """
    Result of validating a model.

    Attributes:
        model: The validated model
        errors: Messages keyed by property path; model-wide messages use "general"
    """
    model: Any
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not any(self.errors.values())

    def messages_for(self, reference: Optional[ValueReference]) -> List[str]:
        if reference is None:
            return []
        return list(self.errors.get(reference.path, []))

    @property
    def messages(self) -> List[str]:
        """Flat list of "path: message" strings, general messages unprefixed."""
        flat = []
        for path, messages in self.errors.items():
            for message in messages:
                flat.append(message if path == GENERAL else f"{path}: {message}")
        return flat

    @classmethod
    def from_result(cls, model: Any, result: Any) -> "ValidationContext":
        """Normalize a validator result (context or plain bool) into a context."""
        if isinstance(result, ValidationContext):
            return result
        if result:
            return cls(model)
        return cls(model, {GENERAL: ["Validation failed"]})


@runtime_checkable
class Validator(Protocol):
    def validate(self, model: Any) -> Any:
        """Return a ValidationContext, or a bool for simple validators."""


class AlwaysValid:
    """Validator used when validation is disabled."""

    def validate(self, model: Any) -> ValidationContext:
        return ValidationContext(model)


def _alias_map(cls: Type[BaseModel]) -> Dict[str, str]:
    """Map validation aliases of a pydantic model back to field names."""
    aliases = {}
    for name, info in cls.model_fields.items():
        alias = info.validation_alias if isinstance(info.validation_alias, str) else info.alias
        if alias and alias != name:
            aliases[alias] = name
    return aliases


def _collect_pydantic_errors(error: ValidationError, errors: Dict[str, List[str]], prefix: str = "",
                             aliases: Optional[Dict[str, str]] = None) -> None:
    for item in error.errors():
        parts = [str(part) for part in item.get('loc', ())]
        if parts and aliases:
            parts[0] = aliases.get(parts[0], parts[0])
        loc = ".".join(parts)
        path = ".".join(p for p in (prefix, loc) if p) or GENERAL
        errors[path].append(item.get('msg', 'Invalid value'))


class PydanticValidator:
    """
    Validate models with pydantic.

    - pydantic models are re-validated from their current field values
    - dataclasses are validated through a TypeAdapter of their class
    - annotated classes are validated member by member
    - dictionary bags are validated against ``bag_model`` when one is given

    CustomValidation tags on typed members run after type validation.
    """

    def __init__(self, bag_model: Optional[Type[BaseModel]] = None):
        self.bag_model = bag_model

    def validate(self, model: Any) -> ValidationContext:
        errors: Dict[str, List[str]] = defaultdict(list)

        if is_bag(model):
            if self.bag_model is not None:
                try:
                    self.bag_model.model_validate(dict(model))
                except ValidationError as e:
                    _collect_pydantic_errors(e, errors)
            else:
                logger.debug("No bag model configured; dictionary values are not validated")
        elif isinstance(model, BaseModel):
            try:
                type(model).model_validate(model.model_dump(by_alias=True))
            except ValidationError as e:
                _collect_pydantic_errors(e, errors, aliases=_alias_map(type(model)))
        elif dataclasses.is_dataclass(model):
            try:
                TypeAdapter(type(model)).validate_python(
                    {f.name: getattr(model, f.name) for f in dataclasses.fields(model) if f.init}
                )
            except ValidationError as e:
                _collect_pydantic_errors(e, errors)
        else:
            for descriptor in resolve(model):
                try:
                    TypeAdapter(descriptor.declared_type).validate_python(descriptor.get_value(model))
                except ValidationError as e:
                    _collect_pydantic_errors(e, errors, prefix=descriptor.name)

        if not is_bag(model):
            self._run_custom_checks(model, errors)

        context = ValidationContext(model, dict(errors))
        if not context.is_valid:
            logger.debug(f"Validation of {type(model).__name__} failed: {context.messages}")
        return context

    @staticmethod
    def _run_custom_checks(model: Any, errors: Dict[str, List[str]]) -> None:
        for descriptor in resolve(model):
            check = find_attribute(descriptor.attributes, CustomValidation)
            if check is None:
                continue
            message = check.check(descriptor.get_value(model))
            if message:
                errors[descriptor.name].append(message)
