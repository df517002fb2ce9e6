"""
Process tree termination.

Used to stop a running build tool, and every process it spawned, from
outside the thread that is reading its output.
"""

import logging
import signal
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import psutil

from ..models.config import TerminationConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Phase:
    name: str
    signal: signal.Signals
    timeout: float


def _phases(config: TerminationConfig) -> List[_Phase]:
    return [
        _Phase("graceful", signal.SIGTERM, config.graceful_timeout),
        _Phase("interrupt", signal.SIGINT, config.interrupt_timeout),
        _Phase("force_kill", signal.SIGKILL, config.force_timeout),
    ]


def is_process_alive(process: psutil.Process) -> bool:
    """Whether a process is still running and not a zombie."""
    try:
        if not process.is_running():
            return False
        return process.status() not in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def _live_children(parent: psutil.Process) -> List[psutil.Process]:
    try:
        return [child for child in parent.children(recursive=True) if is_process_alive(child)]
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        # parent exited during enumeration
        return []


def _signal_all(processes: List[psutil.Process], phase: _Phase) -> List[psutil.Process]:
    signaled = []
    for process in processes:
        if not is_process_alive(process):
            continue
        try:
            if phase.signal is signal.SIGKILL:
                process.kill()
            else:
                process.send_signal(phase.signal)
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending {phase.signal.name} to PID {process.pid}")
            continue
        signaled.append(process)
        logger.debug(f"Sent {phase.signal.name} to PID {process.pid}")
    return signaled


def _wait_for_exit(processes: List[psutil.Process], timeout: float) -> List[psutil.Process]:
    if not processes:
        return []
    _, still_alive = psutil.wait_procs(processes, timeout=timeout)
    return [process for process in still_alive if is_process_alive(process)]


def terminate_process_tree(
    pid: int,
    name: str,
    termination_config: Optional[TerminationConfig] = None,
    wait_for_root: Optional[Callable[[float], bool]] = None,
) -> bool:
    """
    Stop a process and all of its descendants with escalating force.

    Each phase (SIGTERM, SIGINT, SIGKILL) re-enumerates the children, since
    the tree can change between phases, and waits up to the phase timeout.

    Args:
        pid: Root of the process tree
        name: Human readable name used in log messages
        termination_config: Per-phase timeouts
        wait_for_root: Waits up to the given timeout for the root to exit and
            returns whether it did. Required when the caller owns the root
            (e.g. a subprocess.Popen child): the root is then signalled but
            never reaped here, so its owner still sees the real exit status.

    Returns:
        True if no process of the tree is left running
    """
    config = termination_config or TerminationConfig()
    if pid <= 0:
        logger.warning(f"Invalid PID {pid} for {name}, skipping termination")
        return True

    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        logger.info(f"Process {name} (PID: {pid}) already terminated")
        return True

    logger.info(f"Starting termination of {name} (PID: {pid}) and its process tree")
    remaining: List[psutil.Process] = []

    for phase in _phases(config):
        children = _live_children(parent)
        targets = ([parent] if is_process_alive(parent) else []) + children
        if not targets:
            remaining = []
            break

        logger.info(f"Phase {phase.name}: signalling {len(targets)} processes of {name}")
        signaled = _signal_all(targets, phase)
        if wait_for_root is None:
            remaining = _wait_for_exit(signaled, phase.timeout)
        else:
            deadline = time.monotonic() + phase.timeout
            root_exited = parent not in signaled or wait_for_root(phase.timeout)
            others = [process for process in signaled if process is not parent]
            remaining = _wait_for_exit(others, max(0.0, deadline - time.monotonic()))
            if not root_exited:
                remaining.insert(0, parent)
        if not remaining:
            logger.info(f"All processes of {name} terminated in phase {phase.name}")
            break
        logger.warning(f"Phase {phase.name}: {len(remaining)} processes still alive")

    if remaining:
        logger.error(
            f"Failed to terminate {len(remaining)} processes of {name}: "
            f"{[process.pid for process in remaining]}"
        )
        return False
    return True
