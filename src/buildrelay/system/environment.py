"""
Environment facts needed to construct build tool invocations.

The orchestrator never reads process-wide state directly; it asks an
EnvironmentResolver. SystemEnvironmentResolver answers from the real host,
FixedEnvironmentResolver returns canned values for tests and embedding.
"""

import logging
import os
import re
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Tuple, runtime_checkable

from ..models.config import LauncherConfig
from .commands import run_command

logger = logging.getLogger(__name__)

DEVELOPER_DIR_ENV = "DEVELOPER_DIR"
BINARIES_PATH_ENV = "BUILDRELAY_BINARIES_PATH"
TEST_MODE_ENV = "BUILDRELAY_UNDER_TEST"

_TRUTHY = {"1", "true", "yes", "on"}
_SDK_FLAG_RE = re.compile(r"-sdk\s+(?P<sdk>\S+)")
_SDK_VERSION_RE = re.compile(r"^(?P<base>.*?[A-Za-z])(?P<version>\d+(?:\.\d+)*)$")


@runtime_checkable
class EnvironmentResolver(Protocol):
    """Queries answered for the orchestrator. Implementations hold no run state."""

    def resolve_toolchain_root(self) -> Path: ...

    def resolve_binaries_path(self) -> Path: ...

    def allocate_temp_file(self, prefix: str) -> Path: ...

    def list_available_sdks(self) -> Dict[str, List[str]]: ...

    def is_test_mode(self) -> bool: ...


def absolute_executable_path() -> Path:
    """Absolute path of the program that is currently running."""
    if sys.argv and sys.argv[0] and sys.argv[0] != "-c":
        return Path(sys.argv[0]).resolve()
    return Path(sys.executable).resolve()


def allocate_temp_file(prefix: str, directory: Optional[Path] = None) -> Path:
    """
    Create a new, uniquely named, empty file and return its path.

    The file is created atomically, so concurrent callers never receive the
    same path.

    Raises:
        OSError: If the file cannot be created
    """
    fd, path = tempfile.mkstemp(prefix=prefix, dir=str(directory) if directory else None)
    os.close(fd)
    logger.debug(f"Allocated temp file {path}")
    return Path(path)


def _version_key(version: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in version.split("."))


def parse_sdk_listing(output: str) -> Dict[str, List[str]]:
    """Parse `-showsdks` output into a mapping of SDK name to aliases.

    The newest version of each SDK family also answers to the family name
    without a version, e.g. `iphoneos7.0` -> `["iphoneos"]`.

    Examples:
        >>> parse_sdk_listing("\\tiOS 6.1 \\t-sdk iphoneos6.1\\n\\tiOS 7.0 \\t-sdk iphoneos7.0\\n")
        {'iphoneos6.1': [], 'iphoneos7.0': ['iphoneos']}
    """
    sdks: Dict[str, List[str]] = {}
    newest: Dict[str, Tuple[Tuple[int, ...], str]] = {}

    for line in output.splitlines():
        match = _SDK_FLAG_RE.search(line)
        if not match:
            continue
        sdk = match.group("sdk")
        sdks.setdefault(sdk, [])

        versioned = _SDK_VERSION_RE.match(sdk)
        if not versioned:
            continue
        base, version = versioned.group("base"), versioned.group("version")
        key = _version_key(version)
        if base not in newest or key > newest[base][0]:
            newest[base] = (key, sdk)

    for base, (_, sdk) in newest.items():
        if base not in sdks:
            sdks[sdk].append(base)
    return sdks


class SystemEnvironmentResolver:
    """
    Resolves environment facts from the running host.

    Args:
        launcher_config: Supplies the tool path and fallback toolchain root
        environ: Environment to consult (defaults to os.environ)
    """

    def __init__(
        self,
        launcher_config: Optional[LauncherConfig] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.launcher_config = launcher_config or LauncherConfig()
        self.environ = environ if environ is not None else os.environ
        self._toolchain_root: Optional[Path] = None
        self._sdks: Optional[Dict[str, List[str]]] = None

    def resolve_toolchain_root(self) -> Path:
        if self._toolchain_root is None:
            self._toolchain_root = self._discover_toolchain_root()
        return self._toolchain_root

    def _discover_toolchain_root(self) -> Path:
        developer_dir = self.environ.get(DEVELOPER_DIR_ENV, "").strip()
        if developer_dir:
            logger.debug(f"Toolchain root from {DEVELOPER_DIR_ENV}: {developer_dir}")
            return Path(developer_dir)

        return_code, stdout, _ = run_command(["xcode-select", "--print-path"])
        selected = stdout.strip()
        if return_code == 0 and selected:
            logger.debug(f"Toolchain root from xcode-select: {selected}")
            return Path(selected)

        fallback = self.launcher_config.default_toolchain_root
        logger.info(f"Could not query the selected toolchain, falling back to {fallback}")
        return Path(fallback)

    def resolve_tool_path(self) -> Path:
        """Absolute path of the build tool inside the toolchain."""
        return self.resolve_toolchain_root() / self.launcher_config.tool_path

    def resolve_binaries_path(self) -> Path:
        override = self.environ.get(BINARIES_PATH_ENV, "").strip()
        if override:
            return Path(override)
        return absolute_executable_path().parent

    def allocate_temp_file(self, prefix: str) -> Path:
        return allocate_temp_file(prefix)

    def list_available_sdks(self) -> Dict[str, List[str]]:
        if self._sdks is None:
            tool = self.resolve_tool_path()
            return_code, stdout, stderr = run_command([str(tool), "-showsdks"])
            if return_code != 0:
                logger.warning(f"Listing SDKs with {tool} failed: {stderr.strip()}")
                return {}
            self._sdks = parse_sdk_listing(stdout)
            logger.debug(f"Found {len(self._sdks)} SDKs")
        return {name: list(aliases) for name, aliases in self._sdks.items()}

    def is_test_mode(self) -> bool:
        return self.environ.get(TEST_MODE_ENV, "").strip().lower() in _TRUTHY


@dataclass
class FixedEnvironmentResolver:
    """Resolver returning fixed answers; temp files go to `temp_dir`."""

    toolchain_root: Path = Path("/toolchain")
    binaries_path: Path = Path("/toolchain/bin")
    sdks: Dict[str, List[str]] = field(default_factory=dict)
    test_mode: bool = True
    temp_dir: Optional[Path] = None

    def resolve_toolchain_root(self) -> Path:
        return Path(self.toolchain_root)

    def resolve_binaries_path(self) -> Path:
        return Path(self.binaries_path)

    def allocate_temp_file(self, prefix: str) -> Path:
        return allocate_temp_file(prefix, self.temp_dir)

    def list_available_sdks(self) -> Dict[str, List[str]]:
        return {name: list(aliases) for name, aliases in self.sdks.items()}

    def is_test_mode(self) -> bool:
        return self.test_mode
