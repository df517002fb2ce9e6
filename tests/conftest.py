"""
Pytest configuration and shared fixtures for the buildrelay test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the buildrelay project.
"""

import shutil
import sys
import tempfile
import textwrap
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "e2e: mark test as an end-to-end test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_config_data() -> Dict[str, Any]:
    """Sample configuration data for testing."""
    return {
        "launcher": {
            "tool_path": "usr/bin/xcodebuild",
            "default_toolchain_root": "/opt/toolchain",
            "read_chunk_size": 4096,
            "error_tail_lines": 3,
            "environment": {"CODE_SIGNING_ALLOWED": "NO"},
        },
        "parser": {
            "success_statuses": ["OK", "SUCCEEDED"],
            "recognize_json_events": True,
        },
        "reporters": {
            "default": ["plain", "json-stream:-"],
        },
        "termination": {
            "graceful_timeout": 1.0,
            "interrupt_timeout": 0.5,
            "force_timeout": 0.5,
        },
    }


@pytest.fixture
def config_files(temp_dir, sample_config_data):
    """Create a temporary config.toml for testing."""
    import toml

    config_file = temp_dir / "config.toml"
    with open(config_file, "w") as f:
        toml.dump(sample_config_data, f)

    return {"config": config_file, "dir": temp_dir}


# ============================================================================
# Reporter Fixtures
# ============================================================================


class RecordingReporter:
    """Reporter that keeps everything it receives."""

    def __init__(self, name: str = "recording"):
        self.name = name
        self.events = []
        self.results = []

    def on_event(self, event):
        self.events.append(event)

    def on_finish(self, result):
        self.results.append(result)

    @property
    def kinds(self) -> List[str]:
        return [event.kind.value for event in self.events]


class FaultyReporter(RecordingReporter):
    """Reporter that raises on selected event sequence numbers and/or finish."""

    def __init__(
        self,
        name: str = "faulty",
        fail_on: Optional[List[int]] = None,
        fail_always: bool = False,
        fail_on_finish: bool = False,
    ):
        super().__init__(name)
        self.fail_on = set(fail_on or [])
        self.fail_always = fail_always
        self.fail_on_finish = fail_on_finish

    def on_event(self, event):
        super().on_event(event)
        if self.fail_always or event.sequence in self.fail_on:
            raise RuntimeError(f"reporter failure at event {event.sequence}")

    def on_finish(self, result):
        super().on_finish(result)
        if self.fail_on_finish:
            raise ValueError("reporter failure on finish")


@pytest.fixture
def recording_reporter():
    """A fresh RecordingReporter."""
    return RecordingReporter()


@pytest.fixture
def reporter_classes():
    """Reporter test doubles, for tests that need several instances."""
    return {"recording": RecordingReporter, "faulty": FaultyReporter}


# ============================================================================
# Fake Build Tool Fixtures
# ============================================================================


class FakeTool:
    """A Python script standing in for the build tool, run with sys.executable."""

    def __init__(self, script: Path):
        self.script = script

    @property
    def executable(self) -> str:
        return sys.executable

    def arguments(self, *extra: str) -> List[str]:
        return ["-u", str(self.script), *extra]


@pytest.fixture
def make_fake_tool(temp_dir):
    """Factory writing a fake build tool script from Python source."""

    def _make(source: str, name: str = "fake_tool.py") -> FakeTool:
        script = temp_dir / name
        script.write_text(textwrap.dedent(source), encoding="utf-8")
        return FakeTool(script)

    return _make


@pytest.fixture
def fixed_resolver(temp_dir):
    """An environment resolver with fixed answers."""
    from buildrelay.system import FixedEnvironmentResolver

    return FixedEnvironmentResolver(
        toolchain_root=temp_dir / "toolchain",
        binaries_path=temp_dir / "bin",
        sdks={"macosx14.0": ["macosx"]},
        test_mode=True,
        temp_dir=temp_dir,
    )


@pytest.fixture
def fast_config():
    """An AppConfig with short termination timeouts."""
    from buildrelay.models import AppConfig, TerminationConfig

    return AppConfig(
        termination=TerminationConfig(
            graceful_timeout=1.0, interrupt_timeout=0.5, force_timeout=0.5
        )
    )


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    original_config_path = Path(__file__).parent.parent / "conf" / "config.toml"

    yield  # Run the test

    from buildrelay.config import clear_config_cache, set_config_path

    clear_config_cache()
    set_config_path(original_config_path)
