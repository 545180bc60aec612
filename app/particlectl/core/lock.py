"""Single-instance lock for a project directory.

A lock file holding the owner's PID keeps two builds from running in the
same directory. A lock whose owner is gone is treated as stale and
replaced.
"""

import logging
import os
from pathlib import Path

from particlectl.core.errors import LockError
from particlectl.core.paths import get_lock_path
from particlectl.utils.formatting import print_warning

logger = logging.getLogger(__name__)


def _pid_alive(pid: int) -> bool:
    """Check whether a process with ``pid`` exists."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to another user
        return True
    return True


def _read_pid(path: Path) -> int | None:
    """Read the PID stored in a lock file, or None if unreadable."""
    try:
        content = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    try:
        return int(content)
    except ValueError:
        return None


class BuildLock:
    """File-based mutex keyed on the project directory.

    Example:
        >>> lock = BuildLock()
        >>> lock.acquire()
        >>> try:
        ...     build()
        ... finally:
        ...     lock.release()
    """

    def __init__(self, path: Path | None = None, pid: int | None = None) -> None:
        """Initialize the lock.

        Args:
            path: Lock file path. Default: <project>/.particleos-build.lock
            pid: PID to record. Default: the current process.
        """
        self.path = path if path is not None else get_lock_path()
        self.pid = pid if pid is not None else os.getpid()
        self._held = False

    @property
    def held(self) -> bool:
        """Whether this instance currently owns the lock."""
        return self._held

    def acquire(self) -> None:
        """Take the lock, discarding a stale one.

        The lock file is created exclusively, so of two instances starting
        at the same moment only one gets it. A stale lock is removed and
        creation retried once.

        Raises:
            LockError: If a live process other than this one holds the lock,
                or another instance takes it while a stale one is replaced.
        """
        if self._create():
            return

        owner = _read_pid(self.path)
        if owner is not None and owner != self.pid and _pid_alive(owner):
            raise LockError(owner, self.path)
        print_warning("Found stale lock file from a previous run")
        logger.debug("Removing stale lock %s (pid %s)", self.path, owner)
        self.path.unlink(missing_ok=True)

        if not self._create():
            raise LockError(_read_pid(self.path), self.path)

    def _create(self) -> bool:
        """Create the lock file with our PID; False if it already exists."""
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(f"{self.pid}\n")
        self._held = True
        logger.debug("Acquired lock %s", self.path)
        return True

    def release(self) -> None:
        """Remove the lock file if this instance owns it."""
        if not self._held:
            return
        if _read_pid(self.path) == self.pid:
            self.path.unlink(missing_ok=True)
        self._held = False
        logger.debug("Released lock %s", self.path)
