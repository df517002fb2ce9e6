"""
Unit tests for build settings parsing and extraction.
"""

import sys
from unittest.mock import patch

import pytest

from buildrelay.parsing import (
    extract_build_settings,
    parse_build_settings,
    parse_build_settings_by_target,
)
from buildrelay.validation import BuildSettingsError

MULTI_TARGET_DUMP = """\
Command line invocation:
    /usr/bin/xcodebuild -showBuildSettings

Build settings for action build and target App:
    ACTION = build
    PRODUCT_NAME = App
    SDKROOT = /sdks/iPhoneOS.sdk

Build settings for action build and target "App Tests":
    PRODUCT_NAME = AppTests
    TEST_HOST = $(BUILT_PRODUCTS_DIR)/App.app/App
"""


@pytest.mark.unit
class TestParseBuildSettings:
    """Test cases for flat settings parsing."""

    def test_last_write_wins(self):
        assert parse_build_settings("FOO = bar\nBAZ=qux\nFOO = baz\n") == {
            "FOO": "baz",
            "BAZ": "qux",
        }

    def test_indentation_and_empty_values(self):
        settings = parse_build_settings("    EMPTY =\n\tPATH_LIKE = /a b/c \n")
        assert settings == {"EMPTY": "", "PATH_LIKE": "/a b/c"}

    def test_value_may_contain_equals(self):
        assert parse_build_settings("FLAGS = -DX=1 -DY=2") == {"FLAGS": "-DX=1 -DY=2"}

    def test_noise_lines_are_skipped(self):
        settings = parse_build_settings(MULTI_TARGET_DUMP)
        assert "Command line invocation" not in "".join(settings)
        assert settings["PRODUCT_NAME"] == "AppTests"
        assert settings["ACTION"] == "build"

    def test_empty_input(self):
        assert parse_build_settings("") == {}


@pytest.mark.unit
class TestParseBuildSettingsByTarget:
    """Test cases for per-target settings parsing."""

    def test_sections_are_split_by_target(self):
        targets = parse_build_settings_by_target(MULTI_TARGET_DUMP)

        assert list(targets) == ["App", "App Tests"]
        assert targets["App"]["PRODUCT_NAME"] == "App"
        assert targets["App Tests"]["TEST_HOST"] == "$(BUILT_PRODUCTS_DIR)/App.app/App"
        assert "ACTION" not in targets["App Tests"]

    def test_settings_before_any_header_are_ignored(self):
        assert parse_build_settings_by_target("ORPHAN = 1\n") == {}


@pytest.mark.unit
class TestExtractBuildSettings:
    """Test cases for running the build tool to dump its settings."""

    def test_appends_show_build_settings_flag(self):
        with patch(
            "buildrelay.parsing.build_settings.run_command",
            return_value=(0, "A = 1\n", ""),
        ) as mock_run:
            settings = extract_build_settings("/tool", ["-scheme", "App"])

        assert settings == {"A": "1"}
        command = mock_run.call_args[0][0]
        assert command == ["/tool", "-scheme", "App", "-showBuildSettings"]

    def test_flag_is_not_duplicated(self):
        with patch(
            "buildrelay.parsing.build_settings.run_command",
            return_value=(0, "", ""),
        ) as mock_run:
            extract_build_settings("/tool", ["-showBuildSettings"])

        assert mock_run.call_args[0][0].count("-showBuildSettings") == 1

    def test_failure_raises_build_settings_error(self):
        with patch(
            "buildrelay.parsing.build_settings.run_command",
            return_value=(65, "", "xcodebuild: error: no scheme\n"),
        ):
            with pytest.raises(BuildSettingsError) as exc_info:
                extract_build_settings("/tool", [])

        assert exc_info.value.exit_code == 65
        assert "no scheme" in str(exc_info.value)

    def test_with_real_process(self, temp_dir):
        script = temp_dir / "dump.py"
        script.write_text("print('SDKROOT = /sdk')\nprint('ARCHS = arm64')\n")

        settings = extract_build_settings(sys.executable, [str(script)])

        assert settings == {"SDKROOT": "/sdk", "ARCHS": "arm64"}

    def test_missing_executable(self, temp_dir):
        with pytest.raises(BuildSettingsError) as exc_info:
            extract_build_settings(str(temp_dir / "missing-tool"), [])
        assert exc_info.value.exit_code == -1
