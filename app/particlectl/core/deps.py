"""Pre-flight check for external tools.

The front end needs git to fetch mkosi and a Python 3 interpreter to run
it. Each tool is looked up on PATH and asked for its version.
"""

import logging
import re
import subprocess

from particlectl.core.errors import DependencyError
from particlectl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# Tool name -> minimum version
REQUIRED_TOOLS: dict[str, str] = {
    "git": "2.0.0",
    "python3": "3.0.0",
}

_VERSION_RE = re.compile(r"\d+\.\d+\.\d+")


def _version_tuple(version: str) -> tuple[int, ...]:
    parts = []
    for part in version.split("."):
        digits = re.match(r"\d+", part)
        parts.append(int(digits.group()) if digits else 0)
    return tuple(parts)


def version_compare(installed: str, required: str) -> int:
    """Compare two dotted version strings.

    Missing components count as zero, so ``2.0`` equals ``2.0.0``.

    Returns:
        -1, 0 or 1 as ``installed`` is lower, equal or higher.
    """
    left = _version_tuple(installed)
    right = _version_tuple(required)
    width = max(len(left), len(right))
    left += (0,) * (width - len(left))
    right += (0,) * (width - len(right))
    return (left > right) - (left < right)


def get_tool_version(tool: str) -> str | None:
    """Return the first ``X.Y.Z`` in ``<tool> --version``, if any."""
    try:
        result = run_command([tool, "--version"], timeout=10.0)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("Could not query %s version: %s", tool, e)
        return None
    match = _VERSION_RE.search(result.output)
    return match.group() if match else None


def check_dependencies(required: dict[str, str] | None = None) -> dict[str, str]:
    """Verify that every required tool is installed and new enough.

    Args:
        required: Tool name to minimum version. Default: REQUIRED_TOOLS.

    Returns:
        Tool name to detected version.

    Raises:
        DependencyError: If a tool is missing, reports no version, or is
            older than required. All problems are listed in the message.
    """
    tools = required if required is not None else REQUIRED_TOOLS
    found: dict[str, str] = {}
    problems: list[str] = []

    for tool, minimum in tools.items():
        if not command_exists(tool):
            problems.append(f"{tool} (not installed)")
            continue
        version = get_tool_version(tool)
        if version is None:
            problems.append(f"{tool} (version unknown, need >= {minimum})")
            continue
        if version_compare(version, minimum) < 0:
            problems.append(f"{tool} (found {version}, need >= {minimum})")
            continue
        logger.debug("Found %s %s", tool, version)
        found[tool] = version

    if problems:
        msg = "Missing or outdated dependencies: " + ", ".join(problems)
        raise DependencyError(msg)
    return found
