"""
Factory for creating reporters from `name[:output]` specs.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from .base import ReporterSink
from .reporters import (
    STDOUT_OUTPUT,
    JsonStreamReporter,
    PlainTextReporter,
    StepTimingReporter,
)

logger = logging.getLogger(__name__)

DEFAULT_STEP_TIMING_OUTPUT = "step_timings.parquet"


def _step_timing(output: Optional[str]) -> ReporterSink:
    return StepTimingReporter(output or DEFAULT_STEP_TIMING_OUTPUT)


REPORTER_FACTORIES: Dict[str, Callable[[Optional[str]], ReporterSink]] = {
    "plain": lambda output: PlainTextReporter(output or STDOUT_OUTPUT),
    "json-stream": lambda output: JsonStreamReporter(output or STDOUT_OUTPUT),
    "step-timing": _step_timing,
}

REPORTER_NAMES = tuple(REPORTER_FACTORIES)


def create_reporter(spec: str) -> ReporterSink:
    """
    Create a reporter from a spec such as `plain`, `json-stream:events.jsonl`
    or `step-timing:out/timings.parquet`.

    Args:
        spec: Reporter name, optionally followed by `:` and an output target.
            `-` or no output means stdout.

    Returns:
        A new reporter instance

    Raises:
        ValueError: If the reporter name is unknown
    """
    name, _, output = spec.strip().partition(":")
    name = name.strip().lower()
    factory = REPORTER_FACTORIES.get(name)
    if factory is None:
        raise ValueError(
            f"Unknown reporter '{name}'. Available: {', '.join(sorted(REPORTER_FACTORIES))}"
        )
    logger.debug(f"Creating reporter '{name}' with output '{output or STDOUT_OUTPUT}'")
    return factory(output.strip() or None)


def create_reporters(specs: Iterable[str]) -> List[ReporterSink]:
    return [create_reporter(spec) for spec in specs]
