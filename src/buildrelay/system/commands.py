"""
Command execution utilities.

This module runs short-lived helper commands (toolchain discovery, SDK
listing, build settings dumps) and captures their output.
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]


def _display(command: Command) -> str:
    return command if isinstance(command, str) else shlex.join(command)


def run_command(
    command: Command,
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> Tuple[int, str, str]:
    """Execute a command and capture its output with robust error handling.

    Args:
        command: Argument list, or a string that is split with shlex.
        cwd: Working directory for the command (inherits when None).
        env: Environment for the command (inherits when None).
        timeout: Seconds to wait before giving up (no limit when None).

    Returns:
        Tuple of (return_code, stdout_string, stderr_string).
        return_code is -1 when the command could not be run at all.

    Note:
        Uses UTF-8 decoding with error replacement for robust text handling.
    """
    argv = shlex.split(command) if isinstance(command, str) else list(command)
    logger.debug(f"Executing command: '{_display(argv)}' in '{cwd or '.'}'")
    try:
        process = subprocess.run(
            argv,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
        return process.returncode, process.stdout, process.stderr
    except FileNotFoundError as e:
        logger.error(f"Command not found: {argv[0] if argv else ''}: {type(e).__name__}: {e}")
        return -1, "", f"Error: Command not found '{argv[0] if argv else ''}'"
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s: '{_display(argv)[:80]}'")
        return -1, "", f"Error: Command timed out after {timeout}s"
    except OSError as e:
        logger.error(f"Could not run '{_display(argv)[:80]}': {type(e).__name__}: {e}")
        return -1, "", f"Error: {e}"
