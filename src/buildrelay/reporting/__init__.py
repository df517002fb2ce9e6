"""
Reporting for buildrelay.

Reporters consume build events as they happen. The multiplexer fans events
out to every reporter and isolates reporter failures from the build.
"""

from .base import ReporterSink, reporter_name
from .factory import REPORTER_FACTORIES, create_reporter, create_reporters
from .multiplexer import ReporterMultiplexer
from .reporters import JsonStreamReporter, PlainTextReporter, StepTimingReporter

__all__ = [
    # Contract
    "ReporterSink",
    "reporter_name",
    # Fan-out
    "ReporterMultiplexer",
    # Built-in reporters
    "PlainTextReporter",
    "JsonStreamReporter",
    "StepTimingReporter",
    # Factory
    "create_reporter",
    "create_reporters",
    "REPORTER_FACTORIES",
]
