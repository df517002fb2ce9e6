"""
Build settings extraction.

Build tools can dump their resolved configuration (`-showBuildSettings`) as
`KEY = value` lines, grouped under one header per target. These helpers turn
that dump into dictionaries and run the one-shot invocation that produces it.
"""

import logging
import re
from typing import Dict, Mapping, Optional, Sequence

from ..system.commands import run_command
from ..validation import BuildSettingsError

logger = logging.getLogger(__name__)

_SETTING_RE = re.compile(r"^\s*(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=(?P<value>.*)$")
_TARGET_HEADER_RE = re.compile(
    r'^Build settings for action (?P<action>\S+) and target "?(?P<target>.+?)"?:\s*$'
)

SHOW_BUILD_SETTINGS_FLAG = "-showBuildSettings"


def parse_build_settings(raw_text: str) -> Dict[str, str]:
    """Parse `KEY = value` lines into a flat mapping.

    Whitespace around `=` and around the value is ignored. When a key
    appears more than once the last occurrence wins. Lines that are not
    settings (headers, blank lines, noise) are skipped.

    Examples:
        >>> parse_build_settings("FOO = bar\\nBAZ=qux\\nFOO = baz\\n")
        {'FOO': 'baz', 'BAZ': 'qux'}
    """
    settings: Dict[str, str] = {}
    skipped = 0
    for line in raw_text.splitlines():
        match = _SETTING_RE.match(line)
        if not match:
            if line.strip():
                skipped += 1
            continue
        settings[match.group("key")] = match.group("value").strip()

    if skipped:
        logger.debug(f"Skipped {skipped} non-setting lines while parsing build settings")
    return settings


def parse_build_settings_by_target(raw_text: str) -> Dict[str, Dict[str, str]]:
    """Parse a multi-target settings dump into one mapping per target.

    Sections start with `Build settings for action <action> and target <name>:`.
    Setting lines before the first header belong to no target and are skipped.
    """
    targets: Dict[str, Dict[str, str]] = {}
    current: Optional[Dict[str, str]] = None

    for line in raw_text.splitlines():
        header = _TARGET_HEADER_RE.match(line.strip())
        if header:
            current = targets.setdefault(header.group("target"), {})
            continue
        if current is None:
            continue
        match = _SETTING_RE.match(line)
        if match:
            current[match.group("key")] = match.group("value").strip()

    return targets


def extract_build_settings(
    executable: str,
    arguments: Sequence[str],
    cwd: Optional[str] = None,
    environment: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Run the build tool once with `-showBuildSettings` and parse its output.

    Args:
        executable: Absolute path of the build tool
        arguments: Arguments selecting the project, scheme, configuration...
        cwd: Working directory for the invocation
        environment: Environment for the invocation (inherits when None)

    Returns:
        Flat settings mapping (last target wins on duplicate keys)

    Raises:
        BuildSettingsError: If the tool cannot be run or exits non-zero
    """
    command = [executable, *arguments]
    if SHOW_BUILD_SETTINGS_FLAG not in arguments:
        command.append(SHOW_BUILD_SETTINGS_FLAG)

    return_code, stdout, stderr = run_command(command, cwd=cwd, env=environment)
    if return_code != 0:
        detail = (stderr or stdout).strip().splitlines()
        message = detail[-1] if detail else f"exit code {return_code}"
        raise BuildSettingsError(
            f"Could not read build settings from {executable}: {message}",
            exit_code=return_code,
            output=stdout + stderr,
        )

    settings = parse_build_settings(stdout)
    logger.info(f"Extracted {len(settings)} build settings from {executable}")
    return settings
