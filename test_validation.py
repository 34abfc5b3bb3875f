"""
Unit tests for the validation contract and the pydantic validator.
"""

from dataclasses import dataclass
from typing import Annotated, Optional

from pydantic import BaseModel, Field

from modelform.attributes import CustomValidation
from modelform.validation import (
    GENERAL, AlwaysValid, KeyReference, MemberReference, PydanticValidator, ValidationContext, Validator
)


def _not_blank(value):
    return None if value and value.strip() else "must not be blank"


@dataclass
class Person:
    age: int = 0
    name: Annotated[str, CustomValidation(_not_blank)] = "x"


class Product(BaseModel):
    title: str = Field(min_length=2)
    price: float = Field(ge=0)


class Plain:
    count: int

    def __init__(self, count):
        self.count = count


class BagModel(BaseModel):
    x: int
    label: Optional[str] = None


class Supplier(BaseModel):
    supplier_name: str = Field(alias="supplierName", min_length=2)


class TestValidationContext:
    """Test cases for ValidationContext."""

    def test_empty_context_is_valid(self):
        """Test no errors means valid."""
        context = ValidationContext(model=None)
        assert context.is_valid
        assert context.messages == []

    def test_messages_are_flattened(self):
        """Test general messages are unprefixed."""
        context = ValidationContext(None, {"age": ["too young"], GENERAL: ["broken"]})
        assert not context.is_valid
        assert context.messages == ["age: too young", "broken"]

    def test_messages_for_reference(self):
        """Test lookup by reference path."""
        context = ValidationContext(None, {"age": ["too young"]})
        reference = MemberReference(1, "age", "age")
        assert context.messages_for(reference) == ["too young"]
        assert context.messages_for(None) == []

    def test_from_bool_result(self):
        """Test simple validators may return a bool."""
        assert ValidationContext.from_result(None, True).is_valid
        assert not ValidationContext.from_result(None, False).is_valid


class TestReferences:
    """Test cases for value references."""

    def test_member_reference_supports_metadata(self):
        """Test typed members expose metadata."""
        assert MemberReference.supports_member_metadata

    def test_key_reference_has_no_member_metadata(self):
        """Test dictionary keys are never presented as members."""
        reference = KeyReference(1, "extras.vip", bool)
        assert not reference.supports_member_metadata
        assert reference.key == "vip"

    def test_references_compare_without_holder(self):
        """Test equality ignores the holder object."""
        assert MemberReference(1, "a", "a", object()) == MemberReference(1, "a", "a", object())


class TestPydanticValidator:
    """Test cases for PydanticValidator."""

    def test_satisfies_protocol(self):
        """Test the validators implement the Validator protocol."""
        assert isinstance(PydanticValidator(), Validator)
        assert isinstance(AlwaysValid(), Validator)

    def test_valid_dataclass(self):
        """Test a valid dataclass passes."""
        assert PydanticValidator().validate(Person(age=3, name="Ann")).is_valid

    def test_invalid_dataclass_type(self):
        """Test a wrongly typed dataclass value is reported under its path."""
        context = PydanticValidator().validate(Person(age="abc", name="Ann"))
        assert not context.is_valid
        assert "age" in context.errors

    def test_custom_validation(self):
        """Test CustomValidation tags run on typed members."""
        context = PydanticValidator().validate(Person(age=3, name="  "))
        assert context.errors["name"] == ["must not be blank"]

    def test_pydantic_model_constraints(self):
        """Test field constraints are checked against current values."""
        product = Product(title="Pen", price=1.0)
        product.price = -5

        context = PydanticValidator().validate(product)

        assert not context.is_valid
        assert "price" in context.errors

    def test_aliased_fields_report_field_names(self):
        """Test errors on aliased fields are keyed by the field name."""
        supplier = Supplier(supplierName="Acme")
        supplier.supplier_name = "A"

        context = PydanticValidator().validate(supplier)

        assert not context.is_valid
        assert context.messages_for(MemberReference(id(supplier), "supplier_name", "supplier_name"))
        assert "supplierName" not in context.errors

    def test_plain_class(self):
        """Test plain annotated classes are checked member by member."""
        assert PydanticValidator().validate(Plain(3)).is_valid
        assert not PydanticValidator().validate(Plain("many")).is_valid

    def test_bag_without_model_is_valid(self):
        """Test dictionaries are not validated without a bag model."""
        assert PydanticValidator().validate({"x": "not a number"}).is_valid

    def test_bag_with_model(self):
        """Test dictionaries are validated against the bag model."""
        validator = PydanticValidator(bag_model=BagModel)
        assert validator.validate({"x": 5}).is_valid
        context = validator.validate({"x": "not a number"})
        assert "x" in context.errors
