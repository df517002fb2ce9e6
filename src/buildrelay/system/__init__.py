"""
Host system access for buildrelay.

This package wraps everything that touches the operating system outside of
the main build process stream: helper command execution, environment
discovery, and process tree termination.
"""

from .commands import run_command
from .environment import (
    BINARIES_PATH_ENV,
    DEVELOPER_DIR_ENV,
    TEST_MODE_ENV,
    EnvironmentResolver,
    FixedEnvironmentResolver,
    SystemEnvironmentResolver,
    absolute_executable_path,
    allocate_temp_file,
    parse_sdk_listing,
)
from .processes import is_process_alive, terminate_process_tree

__all__ = [
    # Commands
    "run_command",
    # Environment
    "EnvironmentResolver",
    "SystemEnvironmentResolver",
    "FixedEnvironmentResolver",
    "absolute_executable_path",
    "allocate_temp_file",
    "parse_sdk_listing",
    "DEVELOPER_DIR_ENV",
    "BINARIES_PATH_ENV",
    "TEST_MODE_ENV",
    # Processes
    "terminate_process_tree",
    "is_process_alive",
]
