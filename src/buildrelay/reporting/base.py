"""
The reporter sink contract.

A reporter is anything with `on_event` and `on_finish` methods. Reporters
may raise; the multiplexer isolates those faults from the run and from the
other reporters. An optional `name` attribute is used in fault records.
"""

from typing import Any, Protocol, runtime_checkable

from ..models.events import BuildEvent
from ..models.results import LaunchResult


@runtime_checkable
class ReporterSink(Protocol):
    """Consumer of build events."""

    def on_event(self, event: BuildEvent) -> None: ...

    def on_finish(self, result: LaunchResult) -> None: ...


def reporter_name(sink: Any) -> str:
    """Display name of a sink: its `name` attribute, else its class name."""
    name = getattr(sink, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(sink).__name__
