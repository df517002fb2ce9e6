"""
Built-in reporters.

- PlainTextReporter: human readable progress lines
- JsonStreamReporter: one JSON object per event, then one for the result
- StepTimingReporter: per-step durations written as a Parquet table
"""

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, TextIO, Tuple, Union

import polars as pl

from ..models.events import BuildEvent, EventKind
from ..models.results import LaunchResult

logger = logging.getLogger(__name__)

Output = Union[str, Path, TextIO, None]

STDOUT_OUTPUT = "-"


def _open_output(output: Output) -> Tuple[TextIO, bool]:
    """Resolve an output target to (stream, whether we own and must close it)."""
    if output is None or output == STDOUT_OUTPUT:
        return sys.stdout, False
    if isinstance(output, (str, Path)):
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        return open(path, "w", encoding="utf-8"), True
    return output, False


class _StreamReporter:
    """
    Shared handling of a text output.

    A file output is opened on the first write, not at construction, and is
    closed by on_finish or by an explicit close() when a run is abandoned.
    """

    name = "stream"

    def __init__(self, output: Output = None):
        self.output = output
        self._stream: Optional[TextIO] = None
        self._owns_stream = False

    @property
    def stream(self) -> TextIO:
        if self._stream is None:
            self._stream, self._owns_stream = _open_output(self.output)
        return self._stream

    def _write_line(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def close(self) -> None:
        """Close an owned output file. Safe to call more than once."""
        if self._stream is None:
            return
        if self._owns_stream:
            self._stream.close()
        elif not self._stream.closed:
            self._stream.flush()


class PlainTextReporter(_StreamReporter):
    """Writes a readable line per event."""

    name = "plain"

    def on_event(self, event: BuildEvent) -> None:
        line = self.format_event(event)
        if line is not None:
            self._write_line(line)

    def on_finish(self, result: LaunchResult) -> None:
        self.stream.flush()
        self.close()

    @staticmethod
    def format_event(event: BuildEvent) -> Optional[str]:
        kind = event.kind
        if kind is EventKind.BEGIN_RUN:
            return f"=== {event.get('title', '')} ({event.get('command', '')}) ==="
        if kind is EventKind.END_RUN:
            title = event.get("title", "")
            if event.get("succeeded"):
                return f"=== {title} succeeded ==="
            return f"=== {title} failed: {event.get('error_message', 'unknown error')} ==="
        if kind is EventKind.BEGIN_STEP:
            return f"--> {event.get('name')}"
        if kind is EventKind.END_STEP:
            line = f"<-- {event.get('name')} {event.get('status')}"
            duration = event.get("duration")
            if duration is not None:
                line += f" ({duration:.2f}s)"
            return line
        if kind is EventKind.RAW:
            return f"[{event.get('raw_event', 'raw')}] {event.get('raw', '')}"
        return event.get("text", "")


class JsonStreamReporter(_StreamReporter):
    """Writes newline-delimited JSON, ending with a `result` object."""

    name = "json-stream"

    def on_event(self, event: BuildEvent) -> None:
        self._write_line(json.dumps(event.to_dict(), sort_keys=True))

    def on_finish(self, result: LaunchResult) -> None:
        record: Dict[str, Any] = {"event": "result", **result.summary()}
        record["duration_seconds"] = round(result.duration_seconds, 6)
        self._write_line(json.dumps(record, sort_keys=True))
        self.close()


class StepTimingReporter:
    """
    Collects one row per finished step and writes them as Parquet on finish.

    When an end-step marker carries no duration, the wall time since the
    matching begin-step event is used instead.

    Args:
        output: Parquet file path
        compression: Parquet compression algorithm
    """

    name = "step-timing"

    SCHEMA = {
        "sequence": pl.Int64,
        "name": pl.Utf8,
        "status": pl.Utf8,
        "succeeded": pl.Boolean,
        "duration_seconds": pl.Float64,
        "measured": pl.Boolean,
    }

    def __init__(
        self,
        output: Union[str, Path],
        compression: Literal["snappy", "gzip", "brotli", "lz4", "zstd"] = "snappy",
    ):
        if output == STDOUT_OUTPUT:
            raise ValueError("step-timing reporter needs a file path, not stdout")
        self.output = Path(output)
        self.compression = compression
        self.rows: List[Dict[str, Any]] = []
        self._started_at: Dict[str, float] = {}

    def on_event(self, event: BuildEvent) -> None:
        if event.kind is EventKind.BEGIN_STEP:
            self._started_at[event.get("name")] = time.monotonic()
        elif event.kind is EventKind.END_STEP:
            name = event.get("name")
            started = self._started_at.pop(name, None)
            duration = event.get("duration")
            measured = duration is None
            if measured and started is not None:
                duration = time.monotonic() - started
            self.rows.append({
                "sequence": event.sequence,
                "name": name,
                "status": event.get("status"),
                "succeeded": event.get("succeeded"),
                "duration_seconds": None if duration is None else float(duration),
                "measured": measured,
            })

    def to_dataframe(self) -> pl.DataFrame:
        return pl.DataFrame(self.rows, schema=self.SCHEMA)

    def on_finish(self, result: LaunchResult) -> None:
        df = self.to_dataframe()
        self.output.parent.mkdir(parents=True, exist_ok=True)
        df.write_parquet(self.output, compression=self.compression)
        logger.info(f"Wrote timings for {len(df)} steps to {self.output}")
