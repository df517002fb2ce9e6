"""
Orchestration for buildrelay.

Wraps build tool invocations in run-level events and drives the one-shot
run state machine.
"""

from .build_runner import BuildRunOrchestrator, run_build
from .shared_state import InvocationEnvironment, RunState

__all__ = [
    "BuildRunOrchestrator",
    "run_build",
    "RunState",
    "InvocationEnvironment",
]
