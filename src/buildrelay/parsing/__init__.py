"""
Output parsing for buildrelay.

Turns the build tool's textual output into typed build events, and parses
one-shot build settings dumps.
"""

from .build_settings import (
    extract_build_settings,
    parse_build_settings,
    parse_build_settings_by_target,
)
from .event_parser import EventParser, iter_events
from .grammar import EventGrammar

__all__ = [
    # Event stream
    "EventParser",
    "EventGrammar",
    "iter_events",
    # Build settings
    "parse_build_settings",
    "parse_build_settings_by_target",
    "extract_build_settings",
]
