"""Subprocess helpers.

Two ways of running an external program: run_command() captures its
output for short calls such as ``git --version`` or ``mkosi genkey``, and
run_streaming() mirrors a long-running build to the terminal while
appending it to a log file.
"""

import logging
import os
import shutil
import signal
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of a finished command.

    Attributes:
        stdout: Decoded standard output.
        stderr: Decoded standard error.
        returncode: Exit status.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Whether the command exited with status 0."""
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout, or stderr when the command printed nothing on stdout."""
        return self.stdout or self.stderr


def run_command(
    args: list[str],
    *,
    timeout: float | None = 60.0,
    cwd: str | None = None,
) -> CommandResult:
    """Run a command to completion and capture what it prints.

    A non-zero exit is not an error here; callers inspect
    ``CommandResult.success``.

    Args:
        args: Program and arguments. No shell is involved.
        timeout: Seconds before the command is killed, None for no limit.
        cwd: Working directory, default the current one.

    Raises:
        subprocess.TimeoutExpired: If the timeout elapses.
        FileNotFoundError: If the program does not exist.
    """
    logger.debug("Running %s (cwd=%s)", args, cwd)
    completed = subprocess.run(
        args,
        capture_output=True,
        text=True,
        timeout=timeout,
        cwd=cwd,
    )
    return CommandResult(completed.stdout, completed.stderr, completed.returncode)


def command_exists(name: str) -> bool:
    """Return True if ``name`` resolves to an executable on PATH."""
    return shutil.which(name) is not None


def run_streaming(
    args: list[str],
    log_path: Path,
    *,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    stream: TextIO | None = None,
) -> int:
    """Run a command, echoing its combined output and appending it to a log.

    The child runs in its own session so that an interrupt can take down
    the whole process group. On KeyboardInterrupt the group is terminated
    and the interrupt is re-raised to the caller.

    Args:
        args: Command and arguments to execute.
        log_path: File the combined stdout/stderr is appended to.
        cwd: Working directory for the command.
        env: Additional environment variables (merged with current env).
        stream: Where output is echoed. Defaults to sys.stdout.

    Returns:
        Exit code of the command.

    Raises:
        FileNotFoundError: If command executable is not found.
        KeyboardInterrupt: If interrupted while the command runs.
    """
    out = stream if stream is not None else sys.stdout
    full_env = {**os.environ, **(env or {})}

    with log_path.open("a", encoding="utf-8", errors="replace") as log:
        process = subprocess.Popen(
            args,
            cwd=cwd,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            start_new_session=True,
        )
        try:
            for line in process.stdout or ():
                out.write(line)
                out.flush()
                log.write(line)
            return process.wait()
        except KeyboardInterrupt:
            terminate_process_group(process)
            raise


def terminate_process_group(process: subprocess.Popen[str], grace: float = 10.0) -> None:
    """Terminate a child started with ``start_new_session=True``.

    Sends SIGTERM to the group, escalating to SIGKILL after ``grace``
    seconds.
    """
    try:
        pgid = os.getpgid(process.pid)
    except ProcessLookupError:
        return

    logger.debug("Terminating process group %d", pgid)
    try:
        os.killpg(pgid, signal.SIGTERM)
        process.wait(timeout=grace)
    except ProcessLookupError:
        return
    except subprocess.TimeoutExpired:
        logger.warning("Process group %d ignored SIGTERM, killing it", pgid)
        os.killpg(pgid, signal.SIGKILL)
        process.wait()
