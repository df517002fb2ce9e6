"""
Build tool process launching.

ProcessLauncher starts the build tool, streams its combined output through
an EventParser, and hands each recognized event to a ReporterMultiplexer
while the tool is still running. The outcome of the invocation is always a
LaunchResult; spawn errors and non-zero exits are never raised.
"""

import codecs
import logging
import signal
import subprocess
import threading
import time
from collections import deque
from pathlib import Path
from typing import Deque, Iterable, List, Mapping, Optional, Sequence, Union

from ..models.config import LauncherConfig, TerminationConfig
from ..models.events import BuildEvent, EventKind, EventSequencer
from ..models.results import LaunchResult
from ..parsing import EventGrammar, EventParser
from ..reporting import ReporterMultiplexer, ReporterSink
from ..system.processes import terminate_process_tree
from ..validation import ErrorSeverity, handle_subprocess_error

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def describe_exit_code(exit_code: int) -> str:
    """Readable description of a process exit status."""
    if exit_code < 0:
        try:
            signal_name = signal.Signals(-exit_code).name
        except ValueError:
            signal_name = f"signal {-exit_code}"
        return f"terminated by {signal_name}"
    return f"exited with code {exit_code}"


class ProcessLauncher:
    """
    Runs one build tool invocation at a time and streams its events.

    Args:
        config: Chunk size and error tail settings
        grammar: Recognition rules for the parser (default markers if None)
        termination_config: Timeouts used by terminate()
    """

    def __init__(
        self,
        config: Optional[LauncherConfig] = None,
        grammar: Optional[EventGrammar] = None,
        termination_config: Optional[TerminationConfig] = None,
    ):
        self.config = config or LauncherConfig()
        self.grammar = grammar or EventGrammar()
        self.termination_config = termination_config or TerminationConfig()
        self._process: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()
        self._terminate_requested = threading.Event()

    @property
    def pid(self) -> Optional[int]:
        with self._lock:
            return self._process.pid if self._process else None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._process is not None and self._process.poll() is None

    def launch(
        self,
        executable: PathLike,
        arguments: Sequence[str],
        environment: Mapping[str, str],
        multiplexer: ReporterMultiplexer,
        sequencer: Optional[EventSequencer] = None,
    ) -> LaunchResult:
        """
        Run the build tool to completion, delivering events as they appear.

        stderr is merged into stdout, so the relative order of lines written
        to either stream is preserved as the tool wrote them. This method
        returns only after the process exited and its output was drained.

        Args:
            executable: Absolute path of the build tool
            arguments: Arguments passed verbatim
            environment: Complete environment for the child process
            multiplexer: Receives every recognized event
            sequencer: Shared sequence source, so callers can place their own
                events before and after the parsed ones

        Returns:
            LaunchResult describing how the invocation ended
        """
        executable = str(executable)
        argv = [executable, *(str(argument) for argument in arguments)]
        parser = EventParser(grammar=self.grammar, sequencer=sequencer)
        error_tail: Deque[str] = deque(maxlen=self.config.error_tail_lines)

        started_at = time.monotonic()
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=dict(environment),
            )
        except OSError as e:
            handle_subprocess_error(
                e, executable, severity=ErrorSeverity.ERROR, reraise=False, logger=logger
            )
            return LaunchResult.launch_failure(
                f"Could not launch '{executable}': {e.strerror or e}"
            )

        with self._lock:
            self._process = process
        logger.info(f"Build tool started with PID {process.pid}: {executable}")
        if self._terminate_requested.is_set():
            self.terminate()

        try:
            self._pump_output(process, parser, multiplexer, error_tail)
            exit_code = process.wait()
        finally:
            if process.poll() is None:
                logger.warning(f"Stopping build tool (PID {process.pid}) after an interrupted read")
                process.kill()
                process.wait()
            with self._lock:
                self._process = None
            stopped = self._terminate_requested.is_set()
            self._terminate_requested.clear()

        duration = time.monotonic() - started_at
        logger.info(
            f"Build tool {describe_exit_code(exit_code)} after {duration:.2f}s "
            f"({parser.lines_parsed} lines)"
        )
        if stopped:
            # A stopped run fails whatever the exit status.
            return LaunchResult.runtime_failure(
                exit_code,
                f"{Path(executable).name} was stopped before it finished "
                f"({describe_exit_code(exit_code)})",
                duration_seconds=duration,
            )
        if exit_code == 0:
            return LaunchResult.succeeded(exit_code=0, duration_seconds=duration)
        return LaunchResult.runtime_failure(
            exit_code,
            self._failure_message(executable, exit_code, error_tail),
            duration_seconds=duration,
        )

    def terminate(self) -> bool:
        """
        Stop the running build tool and its children from another thread.

        The interrupted run still completes normally and reports a failed
        LaunchResult. Calling this before the process has started stops it
        as soon as it is spawned.

        Returns:
            True if nothing of the process tree is left running
        """
        self._terminate_requested.set()
        with self._lock:
            process = self._process
        if process is None or process.poll() is not None:
            return True
        return terminate_process_tree(
            process.pid,
            "build tool",
            self.termination_config,
            wait_for_root=lambda timeout: self._wait_for_exit(process, timeout),
        )

    @staticmethod
    def _wait_for_exit(process: subprocess.Popen, timeout: float) -> bool:
        # Only Popen reaps the tool, so its returncode stays authoritative.
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    def _pump_output(
        self,
        process: subprocess.Popen,
        parser: EventParser,
        multiplexer: ReporterMultiplexer,
        error_tail: Deque[str],
    ) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        chunk_size = self.config.read_chunk_size
        with process.stdout as stream:
            while True:
                data = stream.read1(chunk_size)
                if not data:
                    break
                logger.debug(f"Read {len(data)} bytes from build tool")
                self._deliver(parser.feed(decoder.decode(data)), multiplexer, error_tail)
            self._deliver(parser.feed(decoder.decode(b"", final=True)), multiplexer, error_tail)
            self._deliver(parser.end_of_stream(), multiplexer, error_tail)

    @staticmethod
    def _deliver(
        events: List[BuildEvent],
        multiplexer: ReporterMultiplexer,
        error_tail: Deque[str],
    ) -> None:
        for event in events:
            if event.kind is EventKind.MESSAGE and event.get("text"):
                error_tail.append(event.get("text"))
            multiplexer.deliver(event)

    @staticmethod
    def _failure_message(executable: str, exit_code: int, error_tail: Deque[str]) -> str:
        tail = "\n".join(line.strip() for line in error_tail)
        if exit_code < 0:
            headline = f"{Path(executable).name} {describe_exit_code(exit_code)}"
            return f"{headline}\n{tail}" if tail else headline
        return tail or f"{Path(executable).name} {describe_exit_code(exit_code)}"


def launch_and_feed(
    executable_path: PathLike,
    arguments: Sequence[str],
    environment: Mapping[str, str],
    reporters: Iterable[ReporterSink],
    config: Optional[LauncherConfig] = None,
    grammar: Optional[EventGrammar] = None,
) -> LaunchResult:
    """
    Run the build tool and feed its events to `reporters`.

    No run-level events are synthesized; the reporters see exactly the
    events recognized in the tool's output, followed by on_finish.

    Returns:
        The LaunchResult, with any reporter faults attached
    """
    multiplexer = ReporterMultiplexer(reporters)
    launcher = ProcessLauncher(config=config, grammar=grammar)
    result = launcher.launch(executable_path, arguments, environment, multiplexer)
    multiplexer.finish(result)
    return result.with_faults(multiplexer.faults)
