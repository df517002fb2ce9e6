"""
Data models used throughout buildrelay.

Event Models:
- Build events and the sequencer that orders them

Result Models:
- Launch results, error classification and reporter fault records

Configuration Models:
- Launcher, parser, reporter and termination settings
"""

from .config import (
    AppConfig,
    LauncherConfig,
    ParserConfig,
    ReporterDefaults,
    TerminationConfig,
)
from .events import BuildEvent, EventKind, EventSequencer, PayloadValue
from .results import ErrorCode, LaunchResult, ReporterFault

__all__ = [
    # Events
    "BuildEvent",
    "EventKind",
    "EventSequencer",
    "PayloadValue",
    # Results
    "ErrorCode",
    "LaunchResult",
    "ReporterFault",
    # Configuration
    "AppConfig",
    "LauncherConfig",
    "ParserConfig",
    "ReporterDefaults",
    "TerminationConfig",
]
