"""
Unit tests for helper command execution and process tree termination.
"""

import signal
import subprocess
import sys
import time

import psutil
import pytest

from buildrelay.models import TerminationConfig
from buildrelay.system import is_process_alive, run_command, terminate_process_tree

FAST_TERMINATION = TerminationConfig(graceful_timeout=2.0, interrupt_timeout=1.0, force_timeout=1.0)


def popen_waiter(process):
    def wait(timeout):
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    return wait


@pytest.mark.unit
class TestRunCommand:
    """Test cases for run_command."""

    def test_captures_output(self):
        code, stdout, stderr = run_command(
            [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"]
        )
        assert code == 0
        assert stdout == "out\n"
        assert stderr == "err\n"

    def test_string_command_is_split(self):
        code, stdout, _ = run_command(f"'{sys.executable}' -c 'print(42)'")
        assert code == 0
        assert stdout.strip() == "42"

    def test_non_zero_exit(self):
        code, _, _ = run_command([sys.executable, "-c", "raise SystemExit(3)"])
        assert code == 3

    def test_missing_command(self, temp_dir):
        code, stdout, stderr = run_command([str(temp_dir / "no-such-tool")])
        assert code == -1
        assert stdout == ""
        assert "not found" in stderr

    def test_timeout(self):
        code, _, stderr = run_command([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)
        assert code == -1
        assert "timed out" in stderr

    def test_environment_and_cwd(self, temp_dir):
        code, stdout, _ = run_command(
            [sys.executable, "-c", "import os; print(os.environ['MARKER'], os.getcwd())"],
            cwd=temp_dir,
            env={"MARKER": "set", "PATH": "/usr/bin:/bin"},
        )
        assert code == 0
        marker, cwd = stdout.split()
        assert marker == "set"
        assert cwd == str(temp_dir.resolve())


@pytest.mark.unit
class TestTerminateProcessTree:
    """Test cases for terminate_process_tree."""

    def test_terminates_parent_and_children(self):
        script = (
            "import subprocess, sys, time\n"
            "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)'])\n"
            "print(child.pid, flush=True)\n"
            "time.sleep(60)\n"
        )
        parent = subprocess.Popen([sys.executable, "-c", script], stdout=subprocess.PIPE, text=True)
        child_pid = int(parent.stdout.readline())
        child = psutil.Process(child_pid)

        assert terminate_process_tree(
            parent.pid, "test tree", FAST_TERMINATION, wait_for_root=popen_waiter(parent)
        ) is True

        assert parent.wait(timeout=5) == -signal.SIGTERM
        parent.stdout.close()
        assert not is_process_alive(child)

    def test_escalates_when_sigterm_is_ignored(self):
        script = (
            "import signal, time\n"
            "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
            "signal.signal(signal.SIGINT, signal.SIG_IGN)\n"
            "print('ready', flush=True)\n"
            "time.sleep(60)\n"
        )
        process = subprocess.Popen([sys.executable, "-c", script], stdout=subprocess.PIPE, text=True)
        process.stdout.readline()
        config = TerminationConfig(graceful_timeout=0.2, interrupt_timeout=0.2, force_timeout=2.0)

        started = time.monotonic()
        assert terminate_process_tree(
            process.pid, "stubborn", config, wait_for_root=popen_waiter(process)
        ) is True

        assert process.wait(timeout=5) == -signal.SIGKILL
        process.stdout.close()
        assert time.monotonic() - started < 5

    def test_already_exited_process(self):
        process = subprocess.Popen([sys.executable, "-c", "pass"])
        process.wait()
        assert terminate_process_tree(process.pid, "gone", FAST_TERMINATION) is True

    def test_invalid_pid(self):
        assert terminate_process_tree(0, "nothing") is True

    @pytest.mark.parametrize("attempt", range(10))
    def test_owned_root_keeps_its_exit_status(self, attempt):
        process = subprocess.Popen(
            [sys.executable, "-c", "print('ready', flush=True); import time; time.sleep(60)"],
            stdout=subprocess.PIPE,
            text=True,
        )
        process.stdout.readline()

        assert terminate_process_tree(
            process.pid, "owned", FAST_TERMINATION, wait_for_root=popen_waiter(process)
        ) is True

        assert process.returncode == -signal.SIGTERM
        assert process.wait() == -signal.SIGTERM
        process.stdout.close()

    def test_root_wait_timeout_escalates(self):
        script = (
            "import signal, time\n"
            "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
            "print('ready', flush=True)\n"
            "time.sleep(60)\n"
        )
        process = subprocess.Popen([sys.executable, "-c", script], stdout=subprocess.PIPE, text=True)
        process.stdout.readline()
        timeouts = []
        waiter = popen_waiter(process)

        def recording_waiter(timeout):
            timeouts.append(timeout)
            return waiter(timeout)

        config = TerminationConfig(graceful_timeout=0.2, interrupt_timeout=1.0, force_timeout=1.0)
        assert terminate_process_tree(
            process.pid, "half stubborn", config, wait_for_root=recording_waiter
        ) is True

        assert timeouts == [0.2, 1.0]
        assert process.returncode == -signal.SIGINT
        process.stdout.close()
