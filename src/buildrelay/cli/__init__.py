"""
Command-line interface for buildrelay.
"""

from .main import build_parser, configure_logging, main_cli

__all__ = [
    "main_cli",
    "build_parser",
    "configure_logging",
]
