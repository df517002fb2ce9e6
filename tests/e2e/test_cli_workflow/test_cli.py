"""
End-to-end tests for the buildrelay command-line interface.
"""

import json
import sys
from unittest.mock import patch

import polars as pl
import pytest

from buildrelay.cli import build_parser, main_cli
from buildrelay.models import EventKind, EventSequencer
from buildrelay.reporting import JsonStreamReporter

SHOWSDKS_OUTPUT = "\tmacOS 14.0 \t-sdk macosx14.0\n\tiOS 17.0 \t-sdk iphoneos17.0\n"


def run_cli(*argv):
    with pytest.raises(SystemExit) as exc_info:
        main_cli(list(argv))
    return exc_info.value.code


@pytest.mark.e2e
class TestRunCommand:
    """Test cases for `buildrelay run`."""

    def test_successful_build_streams_json(self, make_fake_tool, temp_dir, config_files):
        tool = make_fake_tool("""
            print("Step started: Compile")
            print("Step finished: Compile (0.5s) OK")
        """)
        events_file = temp_dir / "events.jsonl"

        code = run_cli(
            "-c", str(config_files["config"]),
            "run", "-r", f"json-stream:{events_file}",
            "--command", "build", "--title", "Demo",
            "--executable", tool.executable,
            "--", *tool.arguments(),
        )

        assert code == 0
        records = [json.loads(line) for line in events_file.read_text().splitlines()]
        assert [r["event"] for r in records] == [
            "begin-run", "begin-step", "end-step", "end-run", "result",
        ]
        assert records[0]["title"] == "Demo"
        assert records[3]["succeeded"] is True
        assert records[-1]["succeeded"] is True

    def test_failed_build_exits_one(self, make_fake_tool, temp_dir, capsys):
        tool = make_fake_tool("""
            import sys
            print("error: something broke")
            sys.exit(2)
        """)

        code = run_cli("run", "--executable", tool.executable, "--", *tool.arguments())

        assert code == 1
        out = capsys.readouterr().out
        assert "error: something broke" in out
        assert "=== build failed: error: something broke ===" in out

    def test_multiple_reporters_including_step_timing(self, make_fake_tool, temp_dir, capsys):
        tool = make_fake_tool("""
            print("Step started: A")
            print("Step finished: A (1.25s) OK")
            print("Step started: B")
            print("Step finished: B (2s) FAILED")
        """)
        timings = temp_dir / "timings.parquet"

        code = run_cli(
            "run", "-r", "plain", "-r", f"step-timing:{timings}",
            "--executable", tool.executable, "--", *tool.arguments(),
        )

        assert code == 0
        assert "<-- A OK (1.25s)" in capsys.readouterr().out
        df = pl.read_parquet(timings)
        assert df["name"].to_list() == ["A", "B"]
        assert df["duration_seconds"].to_list() == [1.25, 2.0]
        assert df["succeeded"].to_list() == [True, False]

    def test_missing_executable_exits_one(self, temp_dir, capsys):
        code = run_cli("run", "--executable", str(temp_dir / "missing"), "--", "-scheme", "App")

        assert code == 1
        assert "Could not launch" in capsys.readouterr().out

    def test_reporter_files_closed_when_run_is_abandoned(self, make_fake_tool, temp_dir):
        tool = make_fake_tool("pass")
        reporter = JsonStreamReporter(temp_dir / "events.jsonl")
        reporter.on_event(EventSequencer().make(EventKind.MESSAGE, {"text": "x", "raw": "x"}))

        with patch("buildrelay.cli.main.create_reporters", return_value=[reporter]), \
                patch("buildrelay.cli.main.BuildRunOrchestrator.run", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                main_cli(["run", "--executable", tool.executable, "--", *tool.arguments()])

        assert reporter.stream.closed

    def test_unknown_reporter_exits_one(self, make_fake_tool):
        tool = make_fake_tool("pass")
        code = run_cli("run", "-r", "xml", "--executable", tool.executable, "--", *tool.arguments())
        assert code == 1

    def test_invalid_config_exits_one(self, temp_dir):
        bad = temp_dir / "bad.toml"
        bad.write_text("[termination]\ngraceful_timeout = -5\n")
        assert run_cli("-c", str(bad), "sdks") == 1


@pytest.mark.e2e
class TestSettingsCommand:
    """Test cases for `buildrelay settings`."""

    def test_prints_settings(self, make_fake_tool, capsys):
        tool = make_fake_tool("""
            import sys
            assert sys.argv[-1] == "-showBuildSettings"
            print("Build settings for action build and target App:")
            print("    PRODUCT_NAME = App")
            print("    SDKROOT = /sdk")
        """)

        code = run_cli("settings", "--executable", tool.executable, "--", *tool.arguments())

        assert code == 0
        assert capsys.readouterr().out.splitlines() == ["PRODUCT_NAME = App", "SDKROOT = /sdk"]

    def test_failing_tool_exits_one(self, make_fake_tool):
        tool = make_fake_tool("import sys; sys.exit(66)")
        assert run_cli("settings", "--executable", tool.executable, "--", *tool.arguments()) == 1


@pytest.mark.e2e
class TestSdksCommand:
    """Test cases for `buildrelay sdks`."""

    def test_lists_sdks(self, capsys, monkeypatch):
        monkeypatch.setenv("DEVELOPER_DIR", "/dev")
        with patch(
            "buildrelay.system.environment.run_command",
            return_value=(0, SHOWSDKS_OUTPUT, ""),
        ):
            code = run_cli("sdks")

        assert code == 0
        assert capsys.readouterr().out.splitlines() == [
            "macosx14.0 (macosx)",
            "iphoneos17.0 (iphoneos)",
        ]

    def test_no_sdks(self, monkeypatch):
        monkeypatch.setenv("DEVELOPER_DIR", "/dev")
        with patch("buildrelay.system.environment.run_command", return_value=(1, "", "")):
            assert run_cli("sdks") == 1


@pytest.mark.e2e
class TestArgumentParsing:
    """Test cases for the argument parser itself."""

    def test_run_arguments_after_double_dash(self):
        args = build_parser().parse_args(
            ["-v", "run", "-r", "plain", "--", "-scheme", "App", "-configuration", "Debug"]
        )
        assert args.verbose
        assert args.reporters == ["plain"]
        assert args.command == "build"
        assert args.arguments == ["-scheme", "App", "-configuration", "Debug"]

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_script_entry_point(self):
        with patch.object(sys, "argv", ["buildrelay", "--help"]):
            with pytest.raises(SystemExit) as exc_info:
                main_cli()
        assert exc_info.value.code == 0
