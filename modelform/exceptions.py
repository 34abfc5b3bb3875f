"""
Exception classes for form resolution, configuration and submission errors.

Configuration errors are raised eagerly while a form's field tree is resolved.
Validation errors are user-facing and raised only when a form takes part in a
container submit, so the container can aggregate failures from several forms.
"""

import logging
from typing import Optional, Dict, Any, List
from pathlib import Path

logger = logging.getLogger(__name__)


class FormError(Exception):
    """
    Base exception for form engine errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class FieldConfigurationError(FormError):
    """
    Exception raised when a field cannot be resolved to a renderable type.

    This covers explicit fields naming no known property without a declared
    type, and bag-backed fields that never received one.
    """

    def __init__(self, field_name: Optional[str], model_type: Optional[type] = None,
                 message: Optional[str] = None):
        self.field_name = field_name

        if message is None:
            message = f"could not determine type for field `{field_name}`; declare it explicitly"

        context = {
            'field_name': field_name,
            'model_type': model_type.__name__ if model_type is not None else None
        }

        recovery_suggestions = [
            "Pass declared_type to the PropertyField",
            "Check the field name for typos",
            "For dictionary models, declare every rendered key explicitly"
        ]

        super().__init__(message, context, recovery_suggestions)


class FormValidationError(FormError):
    """
    User-facing exception raised when a container-submitted form is invalid.

    Attributes:
        messages: Validation messages collected for the failing form(s)
    """

    def __init__(self, message: str, messages: Optional[List[str]] = None,
                 forms: Optional[List[Any]] = None):
        self.messages = list(messages or [])
        self.forms = list(forms or [])

        context = {
            'message_count': len(self.messages),
            'form_count': len(self.forms)
        }

        super().__init__(message, context, ["Correct the highlighted values and submit again"])


class ConfigurationLoadError(FormError):
    """
    Exception raised when configuration file loading fails.

    This includes YAML parsing errors, file not found, permission issues, etc.
    """

    def __init__(self, config_path: Path, original_error: Exception,
                 message: Optional[str] = None):
        self.config_path = config_path
        self.original_error = original_error

        if message is None:
            message = f"Failed to load configuration from {config_path}: {str(original_error)}"

        context = {
            'config_path': str(config_path),
            'original_error_type': type(original_error).__name__,
            'original_error_message': str(original_error)
        }

        recovery_suggestions = [
            "Check if the configuration file exists and is readable",
            "Verify YAML syntax is correct",
            "Load without strict mode to fall back to the default configuration"
        ]

        super().__init__(message, context, recovery_suggestions)


def log_form_error(error: FormError, context: str) -> None:
    """
    Log a form error together with its recovery suggestions.

    Args:
        error: The form error to report
        context: Where the error occurred (e.g., "render", "submit")
    """
    logger.error(f"Form error in {context}: {error.message}")
    for suggestion in error.recovery_suggestions:
        logger.info(f"Recovery suggestion: {suggestion}")
