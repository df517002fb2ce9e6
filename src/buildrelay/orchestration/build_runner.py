"""
Build run orchestration.

BuildRunOrchestrator wraps one build tool invocation in run-level events:
reporters see a begin-run event, every event recognized in the tool output
as it happens, an end-run event summarizing the outcome, and finally
on_finish with the LaunchResult.
"""

import logging
import os
import shlex
import threading
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Sequence, Union

from ..config import get_config
from ..execution import ProcessLauncher
from ..models.config import AppConfig
from ..models.events import EventKind, EventSequencer
from ..models.results import ErrorCode, LaunchResult
from ..parsing import EventGrammar
from ..reporting import ReporterMultiplexer, ReporterSink
from ..system.environment import (
    BINARIES_PATH_ENV,
    TEST_MODE_ENV,
    EnvironmentResolver,
    SystemEnvironmentResolver,
)
from ..validation import ErrorSeverity, handle_error
from .shared_state import InvocationEnvironment, RunState

logger = logging.getLogger(__name__)


class BuildRunOrchestrator:
    """
    Coordinates a single build run. Instances are one-shot.

    Args:
        reporters: Sinks receiving events, in delivery order
        resolver: Source of toolchain and environment facts
        config: Application configuration (the loaded config if None)
        executable: Build tool to run instead of the one inside the toolchain
        grammar: Recognition rules (built from config.parser if None)
    """

    def __init__(
        self,
        reporters: Iterable[ReporterSink],
        resolver: Optional[EnvironmentResolver] = None,
        config: Optional[AppConfig] = None,
        executable: Optional[Union[str, Path]] = None,
        grammar: Optional[EventGrammar] = None,
    ):
        self.config = config or get_config()
        self.resolver = resolver or SystemEnvironmentResolver(self.config.launcher)
        self.executable = Path(executable) if executable else None
        self.multiplexer = ReporterMultiplexer(reporters)
        self.sequencer = EventSequencer()
        self.launcher = ProcessLauncher(
            config=self.config.launcher,
            grammar=grammar or EventGrammar.from_config(self.config.parser),
            termination_config=self.config.termination,
        )
        self._state = RunState.IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> RunState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: RunState) -> None:
        with self._state_lock:
            logger.debug(f"Run state {self._state.value} -> {state.value}")
            self._state = state

    def resolve_executable(self) -> Path:
        """The explicit executable, else the tool path inside the toolchain root."""
        if self.executable is not None:
            return self.executable
        return self.resolver.resolve_toolchain_root() / self.config.launcher.tool_path

    def build_environment(self, environment: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Environment for the build tool.

        Layered in order: the current process environment, the configured
        launcher environment, the binaries path and unbuffered output flags,
        the test mode flag, and finally the caller's overrides.
        """
        env = dict(os.environ)
        env.update(self.config.launcher.environment)
        env[BINARIES_PATH_ENV] = str(self.resolver.resolve_binaries_path())
        env.update(InvocationEnvironment.UNBUFFERED)
        if self.resolver.is_test_mode():
            env[TEST_MODE_ENV] = InvocationEnvironment.TEST_MODE_VALUE
        if environment:
            env.update(environment)
        return env

    def run(
        self,
        arguments: Sequence[str],
        command: str,
        title: str,
        environment: Optional[Mapping[str, str]] = None,
    ) -> LaunchResult:
        """
        Execute the build and report it.

        Args:
            arguments: Arguments passed verbatim to the build tool
            command: Name of the high-level action (e.g. "build", "test")
            title: Human readable label for the run
            environment: Extra variables for the build tool

        Returns:
            The LaunchResult, with any reporter faults attached

        Raises:
            RuntimeError: If this orchestrator has already been used
        """
        with self._state_lock:
            if self._state is not RunState.IDLE:
                raise RuntimeError(
                    f"BuildRunOrchestrator is one-shot (current state: {self._state.value})"
                )
            self._state = RunState.LAUNCHING

        arguments = [str(argument) for argument in arguments]
        try:
            logger.info(f"Starting run '{title}' ({command})")
            self.multiplexer.deliver(self.sequencer.make(
                EventKind.BEGIN_RUN,
                {"command": command, "title": title, "arguments": shlex.join(arguments)},
            ))

            try:
                executable = self.resolve_executable()
                env = self.build_environment(environment)

                self._set_state(RunState.RUNNING)
                result = self.launcher.launch(
                    executable, arguments, env, self.multiplexer, self.sequencer
                )
            except Exception as e:
                # Every begin-run is closed by an end-run, even on internal errors.
                handle_error(
                    e,
                    context=f"run '{title}'",
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger,
                    include_traceback=True,
                )
                result = self._aborted_result(e)

            self.multiplexer.deliver(self.sequencer.make(
                EventKind.END_RUN,
                {"command": command, "title": title, **result.summary()},
            ))
            self.multiplexer.finish(result)
        finally:
            self._set_state(RunState.FINISHED)

        if result.success:
            logger.info(f"Run '{title}' succeeded in {result.duration_seconds:.2f}s")
        else:
            logger.error(f"Run '{title}' failed: {result.error_message}")
        return result.with_faults(self.multiplexer.faults)

    def _aborted_result(self, error: Exception) -> LaunchResult:
        message = f"Run aborted by {type(error).__name__}: {error}"
        if self.state is RunState.LAUNCHING:
            return LaunchResult.launch_failure(message)
        return LaunchResult(
            success=False, error_message=message, error_code=ErrorCode.RUNTIME_FAILURE
        )

    def terminate(self) -> bool:
        """Stop the running build tool; the run then reports a failure."""
        return self.launcher.terminate()


def run_build(
    arguments: Sequence[str],
    command: str,
    title: str,
    reporters: Iterable[ReporterSink],
    resolver: Optional[EnvironmentResolver] = None,
    config: Optional[AppConfig] = None,
    executable: Optional[Union[str, Path]] = None,
    environment: Optional[Mapping[str, str]] = None,
) -> LaunchResult:
    """Run one build with a fresh orchestrator and return its result."""
    orchestrator = BuildRunOrchestrator(
        reporters, resolver=resolver, config=config, executable=executable
    )
    return orchestrator.run(arguments, command, title, environment=environment)
