"""
buildrelay: Run build tools and relay their progress as structured events.

The build tool's combined output is parsed incrementally into typed build
events (run, step and message events) which are fanned out to any number of
reporters while the build is still running.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Events, results and configuration data structures
- validation: Input validation and error handling
- system: Environment discovery, helper commands and process termination
- parsing: Incremental event parser, recognition grammar, build settings
- reporting: Reporter contract, fan-out multiplexer and built-in reporters
- execution: Build tool process launching
- orchestration: Run-level events and the run state machine
- cli: Command-line interface

Usage:
    From command line:
        buildrelay run -r plain -- -scheme App build

    Programmatically:
        from buildrelay import run_build, PlainTextReporter
        result = run_build(["-scheme", "App", "build"], "build", "App",
                           [PlainTextReporter()])
"""

# Main interfaces
from .config import clear_config_cache, get_config, set_config_path
from .orchestration import BuildRunOrchestrator, RunState, run_build
from .execution import ProcessLauncher, launch_and_feed
from .cli import main_cli

# Model classes for external use
from .models import (
    AppConfig,
    BuildEvent,
    ErrorCode,
    EventKind,
    EventSequencer,
    LaunchResult,
    ReporterFault,
)

# Parsing
from .parsing import (
    EventGrammar,
    EventParser,
    iter_events,
    parse_build_settings,
)

# Reporting
from .reporting import (
    JsonStreamReporter,
    PlainTextReporter,
    ReporterMultiplexer,
    ReporterSink,
    StepTimingReporter,
    create_reporter,
)

# Environment
from .system import (
    EnvironmentResolver,
    FixedEnvironmentResolver,
    SystemEnvironmentResolver,
)

# Validation utilities
from .validation import ParserClosedError, ValidationError

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "BuildRunOrchestrator",
    "RunState",
    "run_build",
    "ProcessLauncher",
    "launch_and_feed",
    "main_cli",
    # Models
    "AppConfig",
    "BuildEvent",
    "ErrorCode",
    "EventKind",
    "EventSequencer",
    "LaunchResult",
    "ReporterFault",
    # Parsing
    "EventGrammar",
    "EventParser",
    "iter_events",
    "parse_build_settings",
    # Reporting
    "ReporterSink",
    "ReporterMultiplexer",
    "PlainTextReporter",
    "JsonStreamReporter",
    "StepTimingReporter",
    "create_reporter",
    # Environment
    "EnvironmentResolver",
    "SystemEnvironmentResolver",
    "FixedEnvironmentResolver",
    # Validation
    "ValidationError",
    "ParserClosedError",
]
