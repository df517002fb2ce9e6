"""
Validation and error handling for the buildrelay package.

This module provides input validation and error handling helpers with
consistent error reporting across the application.
"""

from .exceptions import (
    BuildSettingsError,
    ErrorSeverity,
    ParserClosedError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_subprocess_error,
)
from .validators import (
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_string_list,
)

__all__ = [
    # Errors
    "BuildSettingsError",
    "ErrorSeverity",
    "ParserClosedError",
    "ValidationError",
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    "handle_subprocess_error",
    # Validators
    "validate_enum_choice",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_regex_pattern",
    "validate_string_list",
]
