"""
Configuration data models.

This module contains the configuration data structures for the launcher,
the event grammar, default reporters and process termination, loaded from
`config.toml`. Every field has a default so that a missing section is
equivalent to an empty one.
"""

from dataclasses import dataclass, field
from typing import Dict, List

DEFAULT_BEGIN_STEP_PATTERN = r"^Step started: (?P<name>.+?)\s*$"
DEFAULT_END_STEP_PATTERN = (
    r"^Step finished: (?P<name>.+?)"
    r"(?: \((?P<duration>[^)]*?)s?\))?"
    r" (?P<status>\S+)\s*$"
)


@dataclass
class LauncherConfig:
    """
    Configuration for launching the build tool, loaded from `[launcher]`.
    """

    # Path of the build tool relative to the toolchain root.
    tool_path: str = "usr/bin/xcodebuild"
    # Used when neither DEVELOPER_DIR nor xcode-select yields a toolchain root.
    default_toolchain_root: str = "/Applications/Xcode.app/Contents/Developer"
    # Maximum number of bytes requested from the output pipe per read.
    read_chunk_size: int = 65536
    # Number of trailing diagnostic lines quoted in a failure message.
    error_tail_lines: int = 5
    # Extra variables exported to the build tool.
    environment: Dict[str, str] = field(default_factory=dict)


@dataclass
class ParserConfig:
    """
    Output recognition rules, loaded from `[parser]`.
    """

    # Must define a `name` group.
    begin_step_pattern: str = DEFAULT_BEGIN_STEP_PATTERN
    # Must define `name` and `status` groups; `duration` is optional.
    end_step_pattern: str = DEFAULT_END_STEP_PATTERN
    # Statuses (case-insensitive) that mark a finished step as succeeded.
    success_statuses: List[str] = field(default_factory=lambda: ["OK", "SUCCEEDED", "PASSED"])
    # Treat JSON object lines carrying an "event" key as structured events.
    recognize_json_events: bool = True


@dataclass
class ReporterDefaults:
    """
    Reporters used when none are given on the command line, from `[reporters]`.
    """

    default: List[str] = field(default_factory=lambda: ["plain"])


@dataclass
class TerminationConfig:
    """
    Escalation timeouts (seconds) for out-of-band termination, from `[termination]`.
    """

    graceful_timeout: float = 3.0
    interrupt_timeout: float = 2.0
    force_timeout: float = 2.0


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    launcher: LauncherConfig = field(default_factory=LauncherConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    reporters: ReporterDefaults = field(default_factory=ReporterDefaults)
    termination: TerminationConfig = field(default_factory=TerminationConfig)
