"""
Command-line interface for buildrelay.

Subcommands:
    run       run the build tool and stream its events to reporters
    settings  print the build settings resolved by the build tool
    sdks      list the SDKs known to the toolchain

Logging goes to stderr; stdout belongs to reporters and command output.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..config import get_config, set_config_path
from ..models.config import AppConfig
from ..orchestration import BuildRunOrchestrator
from ..parsing import extract_build_settings
from ..reporting import create_reporters
from ..system import SystemEnvironmentResolver
from ..validation import BuildSettingsError, ValidationError, handle_cli_error

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildrelay",
        description="Run a build tool and relay its progress as structured events.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to a config.toml file (defaults to conf/config.toml).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="subcommand", required=True)

    run_parser = subparsers.add_parser("run", help="Run a build and report its events.")
    run_parser.add_argument(
        "-r",
        "--reporter",
        action="append",
        dest="reporters",
        metavar="SPEC",
        help="Reporter as name[:output], e.g. 'plain', 'json-stream:events.jsonl', "
        "'step-timing:timings.parquet'. May be repeated. Defaults to [reporters] default.",
    )
    run_parser.add_argument("--command", default="build", help="Name of the build action.")
    run_parser.add_argument("--title", help="Label of the run (defaults to the command).")
    run_parser.add_argument(
        "--executable", type=Path, help="Build tool to run instead of the toolchain's."
    )
    run_parser.add_argument("arguments", nargs="*", help="Arguments for the build tool (after --).")

    settings_parser = subparsers.add_parser("settings", help="Print resolved build settings.")
    settings_parser.add_argument(
        "--executable", type=Path, help="Build tool to query instead of the toolchain's."
    )
    settings_parser.add_argument("arguments", nargs="*", help="Arguments for the build tool (after --).")

    subparsers.add_parser("sdks", help="List available SDKs and their aliases.")
    return parser


def _load_config(config_path: Optional[Path]) -> AppConfig:
    if config_path is not None:
        set_config_path(config_path)
    try:
        return get_config()
    except (FileNotFoundError, ValidationError, ValueError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            include_traceback=False,
            logger=logger,
        )


def _close_reporters(reporters) -> None:
    # Output files stay open if a run is abandoned before on_finish.
    for reporter in reporters:
        close = getattr(reporter, "close", None)
        if close is not None:
            close()


def _run(args: argparse.Namespace, app_config: AppConfig) -> int:
    try:
        reporters = create_reporters(args.reporters or app_config.reporters.default)
    except ValueError as e:
        handle_cli_error(error=e, context="reporter selection", exit_code=1, logger=logger)

    orchestrator = BuildRunOrchestrator(
        reporters, config=app_config, executable=args.executable
    )

    def handle_signal(signum, frame):
        logger.warning(f"Signal {signal.strsignal(signum)} received. Stopping the build tool...")
        orchestrator.terminate()

    previous = {sig: signal.signal(sig, handle_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        result = orchestrator.run(args.arguments, args.command, args.title or args.command)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        _close_reporters(reporters)

    for fault in result.reporter_faults:
        logger.warning(
            f"Reporter '{fault.reporter_name}' faulted during {fault.phase}: "
            f"{fault.exception_type}: {fault.message}"
            + (f" ({fault.suppressed} more suppressed)" if fault.suppressed else "")
        )
    return 0 if result.success else 1


def _settings(args: argparse.Namespace, app_config: AppConfig) -> int:
    executable = args.executable or SystemEnvironmentResolver(app_config.launcher).resolve_tool_path()
    try:
        settings = extract_build_settings(str(executable), args.arguments)
    except BuildSettingsError as e:
        handle_cli_error(error=e, context="build settings extraction", exit_code=1, logger=logger)

    for key, value in settings.items():
        print(f"{key} = {value}")
    return 0


def _sdks(args: argparse.Namespace, app_config: AppConfig) -> int:
    sdks = SystemEnvironmentResolver(app_config.launcher).list_available_sdks()
    if not sdks:
        logger.error("No SDKs found")
        return 1
    for name, aliases in sdks.items():
        print(f"{name} ({', '.join(aliases)})" if aliases else name)
    return 0


_SUBCOMMANDS = {
    "run": _run,
    "settings": _settings,
    "sdks": _sdks,
}


def main_cli(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main command-line entry point.

    Raises:
        SystemExit: Always; 0 when the requested action succeeded, 1 otherwise.
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(args.verbose)

    app_config = _load_config(args.config)
    sys.exit(_SUBCOMMANDS[args.subcommand](args, app_config))


if __name__ == "__main__":
    main_cli()
