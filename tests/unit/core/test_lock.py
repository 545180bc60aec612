"""Unit tests for the single-instance build lock."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from particlectl.core.errors import LockError
from particlectl.core.lock import BuildLock

# Above the default pid_max, so never a live process
DEAD_PID = 4_194_304 + 17


class TestBuildLock:
    """Tests for BuildLock."""

    def test_acquire_writes_pid(self, tmp_path: Path) -> None:
        """Acquiring writes the owner PID."""
        path = tmp_path / "build.lock"
        lock = BuildLock(path, pid=1234)
        lock.acquire()
        assert path.read_text() == "1234\n"
        assert lock.held

    def test_default_path(self, project_dir: Path) -> None:
        """The lock lives in the project directory by default."""
        lock = BuildLock()
        assert lock.path == project_dir / ".particleos-build.lock"
        assert lock.pid == os.getpid()

    def test_live_owner_blocks(self, tmp_path: Path) -> None:
        """A lock held by a running process cannot be taken."""
        path = tmp_path / "build.lock"
        owner = os.getppid()
        path.write_text(f"{owner}\n")

        with pytest.raises(LockError) as exc_info:
            BuildLock(path).acquire()

        assert exc_info.value.pid == owner
        assert exc_info.value.lock_path == path
        assert path.read_text() == f"{owner}\n"

    def test_stale_lock_replaced(self, tmp_path: Path) -> None:
        """A lock whose owner is gone is taken over."""
        path = tmp_path / "build.lock"
        path.write_text(f"{DEAD_PID}\n")

        lock = BuildLock(path)
        lock.acquire()

        assert path.read_text() == f"{os.getpid()}\n"

    def test_garbage_lock_replaced(self, tmp_path: Path) -> None:
        """An unreadable PID counts as stale."""
        path = tmp_path / "build.lock"
        path.write_text("not-a-pid")
        BuildLock(path).acquire()
        assert path.read_text() == f"{os.getpid()}\n"

    def test_own_pid_is_stale(self, tmp_path: Path) -> None:
        """A lock recording our own PID is left over from this process."""
        path = tmp_path / "build.lock"
        path.write_text(f"{os.getpid()}\n")
        BuildLock(path).acquire()
        assert path.exists()

    def test_release_removes_file(self, tmp_path: Path) -> None:
        """Release deletes the lock file."""
        path = tmp_path / "build.lock"
        lock = BuildLock(path)
        lock.acquire()
        lock.release()
        assert not path.exists()
        assert not lock.held

    def test_release_without_acquire(self, tmp_path: Path) -> None:
        """Release never removes a lock it does not hold."""
        path = tmp_path / "build.lock"
        path.write_text("42\n")
        BuildLock(path).release()
        assert path.exists()

    def test_release_keeps_foreign_lock(self, tmp_path: Path) -> None:
        """A lock rewritten by another owner survives release."""
        path = tmp_path / "build.lock"
        lock = BuildLock(path, pid=100)
        lock.acquire()
        path.write_text("200\n")
        lock.release()
        assert path.read_text() == "200\n"


class TestLockRace:
    """Tests for two instances starting at the same moment."""

    def test_second_instance_blocked(self, tmp_path: Path) -> None:
        """Of two instances only the first to create the file holds the lock."""
        path = tmp_path / "build.lock"
        first = BuildLock(path, pid=os.getppid())
        second = BuildLock(path)

        first.acquire()
        with pytest.raises(LockError):
            second.acquire()
        second.release()

        assert first.held
        assert not second.held
        assert path.read_text() == f"{os.getppid()}\n"

    def test_rival_wins_while_stale_lock_replaced(self, tmp_path: Path) -> None:
        """A lock created by another instance after stale removal is respected."""
        path = tmp_path / "build.lock"
        path.write_text(f"{DEAD_PID}\n")
        rival = os.getppid()
        real_open = os.open
        calls: list[str] = []

        def racing_open(file: str | os.PathLike[str], flags: int, mode: int = 0o777) -> int:
            calls.append(os.fspath(file))
            if len(calls) == 2:
                Path(file).write_text(f"{rival}\n")
            return real_open(file, flags, mode)

        lock = BuildLock(path)
        with (
            patch("particlectl.core.lock.os.open", side_effect=racing_open),
            pytest.raises(LockError) as exc_info,
        ):
            lock.acquire()

        assert exc_info.value.pid == rival
        assert not lock.held
        assert path.read_text() == f"{rival}\n"

    def test_unreadable_rival_lock(self, tmp_path: Path) -> None:
        """A rival lock without a readable PID still blocks."""
        path = tmp_path / "build.lock"
        path.write_text("garbage")
        real_open = os.open
        calls: list[int] = []

        def racing_open(file: str | os.PathLike[str], flags: int, mode: int = 0o777) -> int:
            calls.append(flags)
            if len(calls) == 2:
                Path(file).write_text("")
            return real_open(file, flags, mode)

        with (
            patch("particlectl.core.lock.os.open", side_effect=racing_open),
            pytest.raises(LockError, match="Another instance is already running"),
        ):
            BuildLock(path).acquire()
