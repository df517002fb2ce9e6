"""
Shared definitions for the orchestration module.

This module defines the run state machine and the environment variables
the orchestrator injects into every build tool invocation.
"""

from enum import Enum


class RunState(Enum):
    """Lifecycle of one orchestrated run. FINISHED is terminal."""
    IDLE = "idle"
    LAUNCHING = "launching"
    RUNNING = "running"
    FINISHED = "finished"


class InvocationEnvironment:
    """
    Variables set for the build tool process.

    Unbuffered output makes the tool flush each line promptly, so events are
    recognized while the build is still running.
    """
    UNBUFFERED = {
        "PYTHONUNBUFFERED": "1",
        "NSUnbufferedIO": "YES",
    }
    TEST_MODE_VALUE = "1"
