"""
Form fields and bag models declared in YAML or JSON schema files.

A schema lists fields under a ``fields`` mapping:

    fields:
      supplier_name:
        type: string
        label: "Supplier Name"
        required: true
      status:
        type: enum
        choices: [open, closed]
        row: 1

Schemas drive forms over dictionary models, where every rendered key needs an
explicit declared type.
"""

import enum
import functools
import json
import logging
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, create_model

from .attributes import DateTime, Display, FormAttribute, Hidden, Password, ReadOnly, Row, TextArea, Time
from .exceptions import ConfigurationLoadError
from .fields import PropertyField

logger = logging.getLogger(__name__)

SUPPORTED_FIELD_TYPES = {
    'string', 'integer', 'number', 'float', 'decimal', 'boolean',
    'date', 'datetime', 'time', 'uuid', 'enum'
}

_SIMPLE_TYPES = {
    'string': str,
    'integer': int,
    'number': float,
    'float': float,
    'decimal': Decimal,
    'boolean': bool,
    'date': date,
    'datetime': datetime,
    'time': time,
    'uuid': uuid.UUID,
}


def load_schema(schema_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a schema from a YAML or JSON file.

    Args:
        schema_path: Path to the schema file

    Returns:
        Schema dictionary

    Raises:
        ConfigurationLoadError: If the file cannot be read, parsed or lacks a
            ``fields`` mapping
    """
    full_path = Path(schema_path)

    try:
        with open(full_path, 'r', encoding='utf-8') as f:
            if full_path.suffix.lower() in ['.yaml', '.yml']:
                schema = yaml.safe_load(f)
            elif full_path.suffix.lower() == '.json':
                schema = json.load(f)
            else:
                raise ValueError(f"Unsupported schema file format: {full_path.suffix}")
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Error loading schema {full_path}: {e}")
        raise ConfigurationLoadError(full_path, e) from e

    if not isinstance(schema, dict) or not isinstance(schema.get('fields'), dict):
        error = ValueError("Schema must contain a 'fields' mapping")
        logger.error(f"Invalid schema structure in {full_path}")
        raise ConfigurationLoadError(full_path, error)

    logger.info(f"Successfully loaded schema: {full_path}")
    return schema


@functools.lru_cache(maxsize=None)
def _choice_enum(field_name: str, choices: Tuple[Any, ...]) -> Type[enum.Enum]:
    # One Enum per (field, choices) so fields and bag models share member identity
    name = "".join(part.capitalize() for part in field_name.split("_")) + "Choice"
    return enum.Enum(name, {str(c): c for c in choices})


def get_field_type(field_name: str, field_config: Dict[str, Any]) -> Any:
    """
    Map a schema field type to a Python type.

    Enum fields become a dynamically created Enum whose member values are the
    declared choices. Optional unless ``required`` is true.

    Args:
        field_name: Name of the field, used to name enum types
        field_config: Field configuration from the schema

    Returns:
        Python type for the field
    """
    field_type = field_config.get('type', 'string')

    if field_type not in SUPPORTED_FIELD_TYPES:
        logger.warning(f"Unknown field type '{field_type}' for '{field_name}', defaulting to str")
        tp: Any = str
    elif field_type == 'enum':
        choices = field_config.get('choices', [])
        if choices:
            tp = _choice_enum(field_name, tuple(choices))
        else:
            logger.warning(f"Enum field '{field_name}' has no choices, defaulting to str")
            tp = str
    else:
        tp = _SIMPLE_TYPES[field_type]

    if not field_config.get('required', False):
        return Optional[tp]
    return tp


def get_field_attributes(field_config: Dict[str, Any]) -> Tuple[FormAttribute, ...]:
    """Translate presentation keys of a field config into form tags."""
    attributes: List[FormAttribute] = []

    if field_config.get('label'):
        attributes.append(Display(str(field_config['label'])))
    if field_config.get('readonly'):
        attributes.append(ReadOnly())
    if field_config.get('hidden'):
        attributes.append(Hidden())
    if field_config.get('multiline'):
        attributes.append(TextArea())
    if field_config.get('password'):
        attributes.append(Password())
    if field_config.get('time_only'):
        attributes.append(Time())
    if field_config.get('date_time'):
        attributes.append(DateTime())
    if field_config.get('row'):
        attributes.append(Row(int(field_config['row'])))

    return tuple(attributes)


def fields_from_schema(schema: Dict[str, Any]) -> List[PropertyField]:
    """
    Build explicit form fields from a schema, in declaration order.

    Args:
        schema: Schema dictionary with a ``fields`` mapping

    Returns:
        List of PropertyField with declared types and tags
    """
    fields = []
    for field_name, field_config in schema.get('fields', {}).items():
        field_config = field_config or {}
        fields.append(PropertyField(
            name=field_name,
            declared_type=get_field_type(field_name, field_config),
            attributes=get_field_attributes(field_config),
        ))
    logger.debug(f"Built {len(fields)} field(s) from schema")
    return fields


def _field_info(field_config: Dict[str, Any]) -> Any:
    kwargs: Dict[str, Any] = {}
    if 'min_length' in field_config:
        kwargs['min_length'] = field_config['min_length']
    if 'max_length' in field_config:
        kwargs['max_length'] = field_config['max_length']
    if 'min_value' in field_config:
        kwargs['ge'] = field_config['min_value']
    if 'max_value' in field_config:
        kwargs['le'] = field_config['max_value']
    if 'pattern' in field_config:
        kwargs['pattern'] = field_config['pattern']

    if field_config.get('required', False):
        return Field(..., **kwargs)
    return Field(default=None, **kwargs)


def model_from_schema(schema: Dict[str, Any], model_name: str = "SchemaModel") -> Type[BaseModel]:
    """
    Create a pydantic model validating dictionaries shaped by the schema.

    Pass the result as ``PydanticValidator(bag_model=...)`` to validate a
    dictionary-backed form.

    Args:
        schema: Schema dictionary with a ``fields`` mapping
        model_name: Name for the generated model class

    Returns:
        Pydantic model class ignoring keys the schema does not declare
    """
    model_fields = {}
    for field_name, field_config in schema.get('fields', {}).items():
        field_config = field_config or {}
        model_fields[field_name] = (get_field_type(field_name, field_config), _field_info(field_config))

    return create_model(model_name, __config__=ConfigDict(extra='ignore'), **model_fields)
