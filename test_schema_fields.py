"""
Unit tests for schema-declared fields.
"""

import json
import logging
import uuid
from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import Optional

import pytest
import yaml

from modelform.attributes import Display, Hidden, Password, ReadOnly, Row, TextArea, Time
from modelform.config_loader import get_default_config
from modelform.exceptions import ConfigurationLoadError
from modelform.fields import PropertyField
from modelform.form import Form
from modelform.schema_fields import (
    SUPPORTED_FIELD_TYPES, fields_from_schema, get_field_attributes, get_field_type, load_schema, model_from_schema
)
from modelform.validation import PydanticValidator
from modelform.widgets import WidgetKind

SCHEMA = {
    'fields': {
        'supplier_name': {'type': 'string', 'label': 'Supplier Name', 'required': True, 'min_length': 2},
        'total': {'type': 'number', 'min_value': 0, 'row': 1},
        'quantity': {'type': 'integer', 'required': True, 'row': 1},
        'status': {'type': 'enum', 'choices': ['open', 'closed'], 'required': True},
        'internal': {'type': 'string', 'hidden': True},
    }
}


class TestLoadSchema:
    """Test cases for load_schema."""

    def test_load_yaml(self, tmp_path):
        """Test loading a YAML schema."""
        path = tmp_path / "schema.yaml"
        path.write_text(yaml.safe_dump(SCHEMA), encoding='utf-8')
        assert load_schema(path) == SCHEMA

    def test_load_json(self, tmp_path):
        """Test loading a JSON schema from a string path."""
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(SCHEMA), encoding='utf-8')
        assert load_schema(str(path))['fields']['total']['type'] == 'number'

    def test_missing_file(self, tmp_path):
        """Test a missing file raises ConfigurationLoadError."""
        with pytest.raises(ConfigurationLoadError):
            load_schema(tmp_path / "missing.yaml")

    def test_unsupported_extension(self, tmp_path):
        """Test unknown file formats are rejected."""
        path = tmp_path / "schema.txt"
        path.write_text("fields: {}", encoding='utf-8')
        with pytest.raises(ConfigurationLoadError):
            load_schema(path)

    def test_schema_without_fields(self, tmp_path):
        """Test a schema must contain a fields mapping."""
        path = tmp_path / "schema.yaml"
        path.write_text("title: nothing", encoding='utf-8')
        with pytest.raises(ConfigurationLoadError):
            load_schema(path)


class TestFieldTypes:
    """Test cases for get_field_type."""

    @pytest.mark.parametrize("type_name,expected", [
        ('string', str), ('integer', int), ('number', float), ('float', float),
        ('decimal', Decimal), ('boolean', bool), ('date', date), ('time', time), ('uuid', uuid.UUID),
    ])
    def test_required_types(self, type_name, expected):
        """Test schema type names map to Python types."""
        assert get_field_type('f', {'type': type_name, 'required': True}) is expected

    def test_optional_by_default(self):
        """Test fields are nullable unless required."""
        assert get_field_type('f', {'type': 'integer'}) == Optional[int]

    def test_unknown_type_defaults_to_str(self, caplog):
        """Test unknown types fall back to str with a warning."""
        assert 'array' not in SUPPORTED_FIELD_TYPES
        with caplog.at_level(logging.WARNING, logger='modelform.schema_fields'):
            assert get_field_type('f', {'type': 'array', 'required': True}) is str
        assert "Unknown field type 'array'" in caplog.text

    def test_every_supported_type_resolves(self, caplog):
        """Test supported types never hit the unknown-type fallback."""
        with caplog.at_level(logging.WARNING, logger='modelform.schema_fields'):
            for type_name in SUPPORTED_FIELD_TYPES:
                get_field_type('f', {'type': type_name, 'choices': ['a']})
        assert "Unknown field type" not in caplog.text

    def test_enum_choices(self):
        """Test enum fields become an Enum shared between calls."""
        config = {'type': 'enum', 'choices': ['open', 'closed'], 'required': True}
        tp = get_field_type('status', config)

        assert issubclass(tp, Enum)
        assert [m.value for m in tp] == ['open', 'closed']
        assert get_field_type('status', config) is tp

    def test_enum_without_choices(self):
        """Test an enum without choices falls back to str."""
        assert get_field_type('f', {'type': 'enum', 'required': True}) is str


class TestFieldAttributes:
    """Test cases for presentation keys."""

    def test_all_keys(self):
        """Test every presentation key produces its tag."""
        attributes = get_field_attributes({
            'label': 'Name', 'readonly': True, 'hidden': True, 'multiline': True,
            'password': True, 'time_only': True, 'row': 2,
        })
        assert attributes == (Display('Name'), ReadOnly(), Hidden(), TextArea(), Password(), Time(), Row(2))

    def test_no_keys(self):
        """Test plain fields carry no tags."""
        assert get_field_attributes({'type': 'string'}) == ()


class TestSchemaForms:
    """Test cases for forms over dictionaries declared by a schema."""

    def test_fields_from_schema(self):
        """Test fields keep schema order, types and tags."""
        fields = fields_from_schema(SCHEMA)

        assert [f.name for f in fields] == ['supplier_name', 'total', 'quantity', 'status', 'internal']
        assert all(isinstance(f, PropertyField) for f in fields)
        assert fields[0].declared_type is str
        assert fields[1].row_key == 1

    def test_render_bag_form(self):
        """Test a schema-driven dictionary form renders its widgets."""
        bag = {'supplier_name': 'Acme', 'total': 1.5, 'quantity': 2, 'status': None}
        form = Form(bag, fields_from_schema(SCHEMA), config=get_default_config())

        rendered = form.render()
        kinds = {f.field.name: f.kind for f in rendered.fields}

        assert kinds == {
            'supplier_name': WidgetKind.TEXT_INPUT,
            'total': WidgetKind.NUMBER_INPUT,
            'quantity': WidgetKind.NUMBER_INPUT,
            'status': WidgetKind.SELECT,
        }
        labels = {f.field.name: f.label for f in rendered.fields}
        assert labels['supplier_name'] == 'Supplier Name'

    def test_bag_model_validation(self):
        """Test the generated model validates dictionaries."""
        model = model_from_schema(SCHEMA, "Invoice")
        validator = PydanticValidator(bag_model=model)

        assert validator.validate({'supplier_name': 'Acme', 'quantity': 1, 'status': 'open'}).is_valid

        context = validator.validate({'supplier_name': 'A', 'quantity': 1, 'status': 'open', 'total': -1})
        assert set(context.errors) == {'supplier_name', 'total'}

    def test_enum_member_from_widget_validates(self):
        """Test enum members chosen in the form pass bag validation."""
        status = get_field_type('status', SCHEMA['fields']['status'])
        validator = PydanticValidator(bag_model=model_from_schema(SCHEMA))
        bag = {'supplier_name': 'Acme', 'quantity': 1, 'status': status('closed')}
        assert validator.validate(bag).is_valid
