"""
Model-driven forms: derive, lay out, bind and submit forms from typed models
or dictionary bags.
"""

from .attributes import CustomValidation, DateTime, Display, Hidden, Password, ReadOnly, Row, TextArea, Time
from .container import FormContainer
from .exceptions import ConfigurationLoadError, FieldConfigurationError, FormError, FormValidationError
from .fields import ComplexField, GeneratorField, PropertyField
from .form import Form, FormSubmitArgs, FormValueChangedArgs, RenderedField, RenderedForm, RenderedRow
from .validation import PydanticValidator, ValidationContext, Validator
from .widgets import WidgetKind

__all__ = [
    "ComplexField",
    "ConfigurationLoadError",
    "CustomValidation",
    "DateTime",
    "Display",
    "FieldConfigurationError",
    "Form",
    "FormContainer",
    "FormError",
    "FormSubmitArgs",
    "FormValidationError",
    "FormValueChangedArgs",
    "GeneratorField",
    "Hidden",
    "Password",
    "PropertyField",
    "PydanticValidator",
    "ReadOnly",
    "RenderedField",
    "RenderedForm",
    "RenderedRow",
    "Row",
    "TextArea",
    "Time",
    "ValidationContext",
    "Validator",
    "WidgetKind",
]
