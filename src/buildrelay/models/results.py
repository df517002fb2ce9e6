"""
Run result data models.

LaunchResult is the terminal outcome of one build tool invocation. It is the
only failure channel visible to callers: launch failures and non-zero exits
are reported here rather than raised. Reporter faults are attached for
post-run inspection but never change the verdict.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple, Union


class ErrorCode(str, Enum):
    """Classifies why a run (or a reporter) failed."""
    LAUNCH_FAILURE = "launch-failure"
    RUNTIME_FAILURE = "runtime-failure"
    REPORTER_FAULT = "reporter-fault"


@dataclass(frozen=True)
class ReporterFault:
    """
    The first fault raised by a reporter during one run.

    Attributes:
        reporter_name: Display name of the faulting reporter
        reporter_index: Registration position of the reporter
        phase: "event" when raised from on_event, "finish" from on_finish
        sequence: Sequence number of the event being delivered, if any
        exception_type: Class name of the raised exception
        message: String form of the raised exception
        suppressed: Number of later faults from the same reporter that were
            not recorded separately
    """

    reporter_name: str
    reporter_index: int
    phase: str
    sequence: Optional[int]
    exception_type: str
    message: str
    suppressed: int = 0

    @property
    def error_code(self) -> ErrorCode:
        return ErrorCode.REPORTER_FAULT


@dataclass(frozen=True)
class LaunchResult:
    """
    Outcome of one subprocess invocation.

    ``success`` is True only if the process started, terminated normally and
    exited with status 0. Every other outcome has ``success`` False and a
    populated ``error_message``.
    """

    success: bool
    exit_code: Optional[int] = None
    error_message: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    duration_seconds: float = 0.0
    reporter_faults: Tuple[ReporterFault, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.success and not self.error_message:
            raise ValueError("A failed LaunchResult requires an error_message")

    @classmethod
    def succeeded(cls, exit_code: int = 0, duration_seconds: float = 0.0) -> "LaunchResult":
        return cls(success=True, exit_code=exit_code, duration_seconds=duration_seconds)

    @classmethod
    def launch_failure(cls, message: str) -> "LaunchResult":
        return cls(
            success=False,
            error_message=message,
            error_code=ErrorCode.LAUNCH_FAILURE,
        )

    @classmethod
    def runtime_failure(
        cls, exit_code: int, message: str, duration_seconds: float = 0.0
    ) -> "LaunchResult":
        return cls(
            success=False,
            exit_code=exit_code,
            error_message=message,
            error_code=ErrorCode.RUNTIME_FAILURE,
            duration_seconds=duration_seconds,
        )

    def with_faults(self, faults) -> "LaunchResult":
        return replace(self, reporter_faults=tuple(faults))

    def summary(self) -> Dict[str, Union[str, int, bool]]:
        """Fields embedded into the end-of-run event payload."""
        summary: Dict[str, Union[str, int, bool]] = {"succeeded": self.success}
        if self.exit_code is not None:
            summary["exit_code"] = self.exit_code
        if self.error_message:
            summary["error_message"] = self.error_message
        if self.error_code is not None:
            summary["error_code"] = self.error_code.value
        return summary
