"""
Configuration management for the buildrelay package.

This module provides a clean interface for loading, validating, and accessing
configuration data from a TOML file with singleton pattern management.
"""

from .manager import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    set_config_path,
)
from .validators import (
    validate_app_config,
    validate_launcher_config,
    validate_parser_config,
    validate_reporter_defaults,
    validate_termination_config,
)

__all__ = [
    # Main interface
    "get_config",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "get_config_info",
    # Advanced interface
    "validate_app_config",
    "validate_launcher_config",
    "validate_parser_config",
    "validate_reporter_defaults",
    "validate_termination_config",
]
