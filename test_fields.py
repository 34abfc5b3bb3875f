"""
Unit tests for field declaration and reconciliation.
"""

from dataclasses import dataclass
from typing import Annotated

import pytest

from modelform.attributes import Display, Hidden, ReadOnly, Row
from modelform.exceptions import FieldConfigurationError
from modelform.fields import (
    FieldIdentifier, GeneratorField, PropertyField, reconcile, resolve_descriptor
)
from modelform.resolver import EmptyPropertyDescriptor


@dataclass
class Person:
    age: int = 0
    name: Annotated[str, Display("Full name")] = ""
    secret: Annotated[str, Hidden()] = ""


@dataclass
class TwoInts:
    a: int = 0
    b: int = 0


class TestPropertyField:
    """Test cases for PropertyField construction."""

    def test_row_shortcut_adds_tag(self):
        """Test row= adds a Row tag."""
        form_field = PropertyField(name="age", row=3)
        assert Row(3) in form_field.attributes
        assert form_field.row_key == 3

    def test_non_form_attributes_are_dropped(self):
        """Test arbitrary objects are filtered out of the tags."""
        form_field = PropertyField(name="age", attributes=(ReadOnly(), "noise"))
        assert form_field.attributes == (ReadOnly(),)

    def test_fields_compare_by_identity(self):
        """Test two equal declarations are distinct fields."""
        assert PropertyField(name="age") != PropertyField(name="age")


class TestResolveDescriptor:
    """Test cases for resolve_descriptor()."""

    def test_field_tags_win_over_property_tags(self):
        """Test own Display replaces the property's Display."""
        descriptor = resolve_descriptor(Person(), PropertyField(name="name", attributes=(Display("Name"),)))
        displays = [a for a in descriptor.attributes if isinstance(a, Display)]
        assert displays == [Display("Name")]

    def test_name_inferred_from_unique_type(self):
        """Test a type-only field binds to the single member of that type."""
        descriptor = resolve_descriptor(Person(), PropertyField(declared_type=int))
        assert descriptor.name == "age"

    def test_ambiguous_type_raises(self):
        """Test a type matching several members cannot be inferred."""
        with pytest.raises(FieldConfigurationError):
            resolve_descriptor(TwoInts(), PropertyField(declared_type=int))

    def test_unknown_name_without_type_raises(self):
        """Test an unknown property without a declared type is rejected."""
        with pytest.raises(FieldConfigurationError) as exc_info:
            resolve_descriptor(Person(), PropertyField(name="missing"))
        assert "missing" in str(exc_info.value)

    def test_bag_key_without_type_raises(self):
        """Test dictionary keys need an explicit type."""
        with pytest.raises(FieldConfigurationError):
            resolve_descriptor({"x": 1}, PropertyField(name="x"))

    def test_field_without_name_or_type(self):
        """Test such fields resolve to the empty placeholder."""
        descriptor = resolve_descriptor(Person(), PropertyField())
        assert isinstance(descriptor, EmptyPropertyDescriptor)


class TestReconcile:
    """Test cases for reconcile()."""

    def test_synthesizes_fields_in_declaration_order(self):
        """Test an empty field list renders every visible property."""
        resolved = reconcile([], Person())
        assert [r.name for r in resolved] == ["age", "name"]

    def test_explicit_list_is_authoritative(self):
        """Test explicit fields replace property enumeration."""
        resolved = reconcile([PropertyField(name="name")], Person())
        assert [r.name for r in resolved] == ["name"]

    def test_hidden_explicit_field_is_dropped(self):
        """Test Hidden on a field removes it."""
        resolved = reconcile([PropertyField(name="age", attributes=(Hidden(),))], Person())
        assert resolved == []

    def test_generator_fields_have_no_descriptor(self):
        """Test generator fields pass through without a property."""
        generator = GeneratorField(template=lambda ctx: "hello")
        resolved = reconcile([generator], Person())
        assert resolved[0].descriptor is None
        assert resolved[0].field is generator

    def test_empty_bag_without_fields(self):
        """Test a dictionary without explicit fields renders nothing."""
        assert reconcile(None, {"x": 1}) == []


class TestFieldIdentifier:
    """Test cases for FieldIdentifier."""

    def test_identity_per_model_instance(self):
        """Test identifiers differ per model instance and coalesce per name."""
        first, second = Person(), Person()
        assert FieldIdentifier.for_model(first, "age") == FieldIdentifier.for_model(first, "age")
        assert FieldIdentifier.for_model(first, "age") != FieldIdentifier.for_model(second, "age")
