"""Append-only execution log.

Each run appends a banner describing who started which command on which
machine. The file is plain text and is never rewritten.
"""

import getpass
import logging
import platform
import socket
from datetime import datetime
from pathlib import Path

from particlectl.core.paths import get_execution_log_path

logger = logging.getLogger(__name__)

BANNER_RULE = "=" * 47


def _host_info() -> str:
    """Return ``user@host`` with fallbacks for unusual environments."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "unknown-user"
    host = socket.gethostname() or "unknown-host"
    return f"{user}@{host}"


def format_execution_entry(command: list[str], now: datetime | None = None) -> str:
    """Build the banner written for one run.

    Args:
        command: Program name followed by its arguments.
        now: Timestamp to record. Defaults to the current local time.

    Returns:
        Multi-line banner ending with a newline.
    """
    timestamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    uname = platform.uname()
    system = f"{uname.system} {uname.node} {uname.release} {uname.version} {uname.machine}"
    lines = [
        BANNER_RULE,
        f"Build started: {timestamp}",
        f"Command: {' '.join(command)}",
        f"User: {_host_info()}",
        f"System: {system}",
        BANNER_RULE,
    ]
    return "\n".join(lines) + "\n"


def record_execution(command: list[str], path: Path | None = None) -> Path:
    """Append a banner for this run to the execution log.

    Args:
        command: Program name followed by its arguments.
        path: Log file path. Default: <project>/particleos-builds.log

    Returns:
        Path of the log that was written.

    Raises:
        OSError: If the file cannot be written.
    """
    log_path = path if path is not None else get_execution_log_path()
    with log_path.open(mode="a", encoding="utf-8") as f:
        f.write(format_execution_entry(command))
        f.flush()
    logger.debug("Recorded execution in %s", log_path)
    return log_path
