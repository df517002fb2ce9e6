"""
Configuration validation utilities.

This module turns raw TOML tables into validated configuration dataclasses.
Every section is optional; absent keys take the dataclass defaults.
"""

import logging
from typing import Any, Dict

from ..models.config import (
    AppConfig,
    LauncherConfig,
    ParserConfig,
    ReporterDefaults,
    TerminationConfig,
)
from ..reporting.factory import REPORTER_NAMES
from ..validation import (
    ValidationError,
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_string_list,
)

logger = logging.getLogger(__name__)


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValidationError(f"[{name}] must be a table", field_name=name, value=section)
    return section


def validate_launcher_config(launcher_data: Dict[str, Any]) -> LauncherConfig:
    """
    Validate and create a LauncherConfig from the `[launcher]` table.

    Raises:
        ValidationError: If validation fails
    """
    defaults = LauncherConfig()

    tool_path = launcher_data.get("tool_path", defaults.tool_path)
    if not isinstance(tool_path, str) or not tool_path.strip():
        raise ValidationError(
            "launcher.tool_path must be a non-empty string",
            field_name="launcher.tool_path",
            value=tool_path,
        )

    default_root = launcher_data.get("default_toolchain_root", defaults.default_toolchain_root)
    if not isinstance(default_root, str) or not default_root.strip():
        raise ValidationError(
            "launcher.default_toolchain_root must be a non-empty string",
            field_name="launcher.default_toolchain_root",
            value=default_root,
        )

    read_chunk_size = validate_positive_integer(
        launcher_data.get("read_chunk_size", defaults.read_chunk_size),
        min_value=1,
        max_value=16 * 1024 * 1024,
        field_name="launcher.read_chunk_size",
    )

    error_tail_lines = validate_positive_integer(
        launcher_data.get("error_tail_lines", defaults.error_tail_lines),
        min_value=1,
        max_value=1000,
        field_name="launcher.error_tail_lines",
    )

    environment = launcher_data.get("environment", {})
    if not isinstance(environment, dict):
        raise ValidationError(
            "launcher.environment must be a table of strings",
            field_name="launcher.environment",
            value=environment,
        )
    for key, value in environment.items():
        if not isinstance(value, str):
            raise ValidationError(
                f"launcher.environment.{key} must be a string, got {type(value).__name__}",
                field_name=f"launcher.environment.{key}",
                value=value,
            )

    return LauncherConfig(
        tool_path=tool_path,
        default_toolchain_root=default_root,
        read_chunk_size=read_chunk_size,
        error_tail_lines=error_tail_lines,
        environment=dict(environment),
    )


def validate_parser_config(parser_data: Dict[str, Any]) -> ParserConfig:
    """
    Validate and create a ParserConfig from the `[parser]` table.

    Raises:
        ValidationError: If a pattern does not compile or lacks required groups
    """
    defaults = ParserConfig()

    begin_step_pattern = validate_regex_pattern(
        parser_data.get("begin_step_pattern", defaults.begin_step_pattern),
        field_name="parser.begin_step_pattern",
        required_groups=("name",),
    )

    end_step_pattern = validate_regex_pattern(
        parser_data.get("end_step_pattern", defaults.end_step_pattern),
        field_name="parser.end_step_pattern",
        required_groups=("name", "status"),
    )

    success_statuses = validate_string_list(
        parser_data.get("success_statuses", defaults.success_statuses),
        field_name="parser.success_statuses",
    )

    recognize_json_events = parser_data.get(
        "recognize_json_events", defaults.recognize_json_events
    )
    if not isinstance(recognize_json_events, bool):
        raise ValidationError(
            "parser.recognize_json_events must be a boolean",
            field_name="parser.recognize_json_events",
            value=recognize_json_events,
        )

    return ParserConfig(
        begin_step_pattern=begin_step_pattern,
        end_step_pattern=end_step_pattern,
        success_statuses=success_statuses,
        recognize_json_events=recognize_json_events,
    )


def validate_reporter_defaults(reporters_data: Dict[str, Any]) -> ReporterDefaults:
    """Validate the `[reporters]` table."""
    default = validate_string_list(
        reporters_data.get("default", ReporterDefaults().default),
        field_name="reporters.default",
    )
    if not default:
        logger.warning("reporters.default is empty; runs without -r will have no reporters")

    normalized = []
    for spec in default:
        name, sep, output = spec.strip().partition(":")
        name = validate_enum_choice(
            name.strip(), list(REPORTER_NAMES), field_name="reporters.default", case_sensitive=False
        )
        normalized.append(f"{name}{sep}{output}")
    return ReporterDefaults(default=normalized)


def validate_termination_config(termination_data: Dict[str, Any]) -> TerminationConfig:
    """Validate the `[termination]` table."""
    defaults = TerminationConfig()
    values = {}
    for name in ("graceful_timeout", "interrupt_timeout", "force_timeout"):
        values[name] = validate_positive_float(
            termination_data.get(name, getattr(defaults, name)),
            min_value=0.0,
            max_value=300.0,
            field_name=f"termination.{name}",
        )
    return TerminationConfig(**values)


def validate_app_config(config_data: Dict[str, Any]) -> AppConfig:
    """
    Validate a whole parsed configuration file.

    Args:
        config_data: Parsed TOML document

    Returns:
        Validated AppConfig instance

    Raises:
        ValidationError: If any section fails validation
    """
    known = {"launcher", "parser", "reporters", "termination"}
    unknown = sorted(set(config_data) - known)
    if unknown:
        logger.warning(f"Ignoring unknown configuration sections: {unknown}")

    return AppConfig(
        launcher=validate_launcher_config(_section(config_data, "launcher")),
        parser=validate_parser_config(_section(config_data, "parser")),
        reporters=validate_reporter_defaults(_section(config_data, "reporters")),
        termination=validate_termination_config(_section(config_data, "termination")),
    )
