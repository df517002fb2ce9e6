"""
Build tool execution for buildrelay.
"""

from .launcher import ProcessLauncher, describe_exit_code, launch_and_feed

__all__ = [
    "ProcessLauncher",
    "launch_and_feed",
    "describe_exit_code",
]
