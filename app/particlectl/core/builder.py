"""Build orchestration around mkosi.

Prepares what mkosi expects to find in the project directory (its own
checkout, secure boot keys, the root password file), translates a
BuildConfig into an mkosi command line and runs it with its output
streamed to the terminal and captured to a log.
"""

import logging
import os
import re
import shutil
import subprocess
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from tempfile import NamedTemporaryFile

from particlectl.core.errors import CollaboratorError, DependencyError
from particlectl.core.paths import (
    MKOSI_REPO_URL,
    OUTPUT_DIR_NAME,
    get_key_paths,
    get_mkosi_bin,
    get_mkosi_dir,
    get_output_dir,
    get_project_dir,
    get_root_password_path,
)
from particlectl.core.tempfiles import TempFileRegistry
from particlectl.models.config import MIN_PASSWORD_LENGTH, BuildConfig
from particlectl.utils.formatting import print_error, print_info, print_success, print_warning
from particlectl.utils.shell import run_command, run_streaming

logger = logging.getLogger(__name__)

Confirm = Callable[[str, bool], bool]

# Environment that keeps mkosi output colored when piped
COLOR_ENV: dict[str, str] = {
    "FORCE_COLOR": "1",
    "CLICOLOR_FORCE": "1",
    "SYSTEMD_COLORS": "1",
}

GENKEY_TIMEOUT = 300.0
GIT_TIMEOUT = 600.0

# Log marker -> diagnosis, checked in order
FAILURE_PATTERNS: tuple[tuple[str, str], ...] = (
    ("No space left on device", "Build failed due to insufficient disk space"),
    ("Could not resolve", "Build failed due to network connectivity issues"),
    ("Permission denied", "Build failed due to permission issues"),
    ("are too open", "Build failed due to insecure file permissions"),
)

# Markers whose matching line and the line after it are shown
_ECHO_CONTEXT_MARKERS = frozenset({"are too open"})

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")


@dataclass(frozen=True, slots=True)
class FailureDiagnosis:
    """Best-effort explanation of a failed build.

    Attributes:
        message: One-line diagnosis.
        context: Log lines worth showing alongside the diagnosis.
    """

    message: str
    context: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Outcome of a successful build.

    Attributes:
        command: mkosi command line that was run.
        duration: Wall-clock seconds spent in mkosi.
        images: Raw images found in the output directory.
    """

    command: tuple[str, ...]
    duration: float
    images: tuple[Path, ...]

    @property
    def duration_text(self) -> str:
        minutes, seconds = divmod(int(self.duration), 60)
        return f"{minutes} minutes and {seconds} seconds"


def setup_mkosi(mkosi_dir: Path | None = None) -> Path:
    """Clone mkosi, or update an existing checkout.

    A failed update only warns, since an older checkout still works.

    Args:
        mkosi_dir: Checkout location. Default: <project>/mkosi

    Returns:
        Path to the mkosi executable.

    Raises:
        CollaboratorError: If cloning fails.
        DependencyError: If the executable is missing afterwards.
    """
    directory = mkosi_dir if mkosi_dir is not None else get_mkosi_dir()

    if directory.is_dir():
        print_info("Updating mkosi repository...")
        try:
            result = run_command(["git", "pull"], timeout=GIT_TIMEOUT, cwd=str(directory))
        except subprocess.TimeoutExpired:
            print_warning("Timed out updating mkosi, continuing with the existing version")
        else:
            if result.success:
                print_success("mkosi repository updated")
            else:
                logger.debug("git pull failed: %s", result.stderr.strip())
                print_warning("Failed to update mkosi, continuing with the existing version")
    else:
        print_info(f"Cloning mkosi repository from {MKOSI_REPO_URL}...")
        try:
            result = run_command(
                ["git", "clone", MKOSI_REPO_URL, str(directory)],
                timeout=GIT_TIMEOUT,
            )
        except subprocess.TimeoutExpired as e:
            msg = "Timed out cloning the mkosi repository"
            raise CollaboratorError(msg) from e
        if not result.success:
            msg = f"Failed to clone mkosi repository: {result.stderr.strip()}"
            raise CollaboratorError(msg, returncode=result.returncode)
        print_success("mkosi repository cloned")

    mkosi_bin = get_mkosi_bin(directory)
    if not mkosi_bin.is_file() or not os.access(mkosi_bin, os.X_OK):
        msg = f"mkosi executable not found at {mkosi_bin}"
        raise DependencyError(msg)
    return mkosi_bin


def _write_private(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` atomically with mode 0600."""
    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            delete=False,
        ) as f:
            tmp_path = Path(f.name)
            os.chmod(f.name, 0o600)
            f.write(content)
        os.replace(tmp_path, path)
    except OSError:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise


def setup_root_password(
    config: BuildConfig,
    registry: TempFileRegistry,
    path: Path | None = None,
    confirm: Confirm | None = None,
) -> Path | None:
    """Write the root password file mkosi reads, or remove a stale one.

    Args:
        config: Configuration holding the password.
        registry: Registry the file is tracked in for removal.
        path: File location. Default: <project>/mkosi.rootpw
        confirm: Asked before using a password shorter than
            MIN_PASSWORD_LENGTH. When None, short passwords are used
            without asking.

    Returns:
        Path of the written file, or None when no password is used.

    Raises:
        CollaboratorError: If the file cannot be written.
    """
    password_path = path if path is not None else get_root_password_path()

    password = config.root_password.get_secret_value() if config.root_password else ""
    if not password:
        if password_path.exists():
            print_info("Removing existing root password configuration...")
            password_path.unlink(missing_ok=True)
        return None

    if len(password) < MIN_PASSWORD_LENGTH and confirm is not None:
        print_warning(
            f"Password is less than {MIN_PASSWORD_LENGTH} characters, "
            "which is not recommended for security"
        )
        if not confirm("Use this password anyway?", False):
            print_warning("Root password setup skipped, continuing without root password")
            return None

    print_info("Configuring root password...")
    try:
        _write_private(password_path, password + "\n")
    except OSError as e:
        msg = f"Failed to save root password file: {e}"
        raise CollaboratorError(msg) from e
    registry.track(password_path)
    print_success("Root password configured securely")
    return password_path


def _is_empty(path: Path) -> bool:
    return path.stat().st_size == 0


def _has_marker(path: Path, marker: str) -> bool:
    try:
        return marker in path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False


def setup_secure_boot_keys(
    mkosi_bin: Path,
    confirm: Confirm,
    key_path: Path | None = None,
    cert_path: Path | None = None,
) -> bool:
    """Make sure secure boot keys exist, generating them when missing.

    Existing keys are checked for PEM markers. Keys that are empty or look
    corrupted are backed up with a ``.bak`` suffix and regenerated if
    ``confirm`` agrees.

    Args:
        mkosi_bin: mkosi executable used for ``genkey``.
        confirm: Callback asking the user a yes/no question.
        key_path: Private key location. Default: <project>/mkosi.key
        cert_path: Certificate location. Default: <project>/mkosi.crt

    Returns:
        True if new keys were generated.

    Raises:
        CollaboratorError: If key generation fails, or if empty key files
            are kept.
    """
    default_key, default_cert = get_key_paths()
    key_file = key_path if key_path is not None else default_key
    cert_file = cert_path if cert_path is not None else default_cert

    if key_file.is_file() and cert_file.is_file():
        empty = _is_empty(key_file) or _is_empty(cert_file)
        if not empty and _has_marker(key_file, "PRIVATE KEY") and _has_marker(
            cert_file, "CERTIFICATE"
        ):
            print_info("Secure boot keys already exist and appear valid, skipping key generation")
            return False

        if empty:
            print_warning("Existing secure boot key files are empty")
        else:
            print_warning("Existing secure boot key files may be corrupted")
        if not confirm("Regenerate keys?", True):
            if empty:
                msg = f"Secure boot key files are empty, remove {key_file} and {cert_file}"
                raise CollaboratorError(msg)
            return False
        print_info("Backing up existing keys with .bak extension")
        for path in (key_file, cert_file):
            shutil.copy2(path, path.with_name(path.name + ".bak"))
            path.unlink()

    print_info("Generating secure boot keys...")
    try:
        result = run_command(
            [str(mkosi_bin), "genkey"],
            timeout=GENKEY_TIMEOUT,
            cwd=str(key_file.parent),
        )
    except subprocess.TimeoutExpired as e:
        msg = "Key generation timed out - check if you have enough entropy"
        raise CollaboratorError(msg) from e
    if not result.success:
        msg = f"Failed to generate secure boot keys: {result.stderr.strip()}"
        raise CollaboratorError(msg, returncode=result.returncode)
    if not key_file.is_file() or not cert_file.is_file():
        msg = "Key generation appeared to succeed but key files not found"
        raise CollaboratorError(msg)
    if _is_empty(key_file) or _is_empty(cert_file):
        msg = "Key generation produced empty key files"
        raise CollaboratorError(msg)
    print_success("Keys generated successfully")
    return True


def build_mkosi_args(config: BuildConfig) -> list[str]:
    """Translate a configuration into mkosi build arguments.

    The clean flag is included even when a separate clean pass runs.
    """
    args = ["-d", config.distribution]
    if config.profiles:
        args += ["--profile", config.profiles.joined()]
    if config.debug:
        args.append("--debug")
    if config.clean_mode.flag is not None:
        args.append(config.clean_mode.flag)
    if config.clean_build:
        args.append("-w")
    return args


def build_clean_args(config: BuildConfig) -> list[str] | None:
    """Arguments for the separate clean pass, or None if there is none."""
    if not config.clean_mode.separate_clean or config.clean_mode.flag is None:
        return None
    return [config.clean_mode.flag, "clean"]


def classify_failure(log_text: str) -> FailureDiagnosis | None:
    """Match a build log against known failure causes.

    Args:
        log_text: Captured build output.

    Returns:
        The first matching diagnosis, or None if nothing matched.
    """
    lines = [_ANSI_RE.sub("", line) for line in log_text.splitlines()]
    for marker, message in FAILURE_PATTERNS:
        for index, line in enumerate(lines):
            if marker not in line:
                continue
            context: tuple[str, ...] = ()
            if marker in _ECHO_CONTEXT_MARKERS:
                context = tuple(lines[index : index + 2])
            return FailureDiagnosis(message, context)
    return None


def preserve_log(log_path: Path, now: datetime | None = None) -> Path:
    """Copy a build log to ``mkosi-build-error-<timestamp>.log`` beside it."""
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    error_log = log_path.parent / f"mkosi-build-error-{stamp}.log"
    shutil.copyfile(log_path, error_log)
    return error_log


def find_output_images(output_dir: Path | None = None) -> list[Path]:
    """Return the ``.raw`` images in the mkosi output directory, sorted."""
    directory = output_dir if output_dir is not None else get_output_dir()
    if not directory.is_dir():
        return []
    return sorted(directory.glob("*.raw"))


def _fail(returncode: int, log_path: Path, what: str) -> CollaboratorError:
    error_log = preserve_log(log_path)
    diagnosis = classify_failure(log_path.read_text(encoding="utf-8", errors="replace"))
    return CollaboratorError(
        f"{what} failed with code {returncode} - error log saved to {error_log}",
        returncode=returncode,
        log_path=error_log,
        diagnosis=diagnosis.message if diagnosis else None,
        context=diagnosis.context if diagnosis else (),
    )


def run_build(
    config: BuildConfig,
    mkosi_bin: Path,
    registry: TempFileRegistry,
    project_dir: Path | None = None,
) -> BuildResult:
    """Run mkosi for ``config``, preceded by a clean pass if requested.

    Output of both passes is streamed to the terminal and appended to a
    temporary log tracked in ``registry``. On failure the log is copied to
    a timestamped file that survives cleanup.

    Args:
        config: Configuration to build.
        mkosi_bin: mkosi executable.
        registry: Registry for the temporary log.
        project_dir: Working directory for mkosi. Default: project dir.

    Returns:
        BuildResult for the successful build.

    Raises:
        CollaboratorError: If either pass exits non-zero or mkosi cannot
            be started.
        KeyboardInterrupt: If interrupted; the mkosi process group has
            been terminated by then.
    """
    cwd = project_dir if project_dir is not None else get_project_dir()
    log_path = registry.create("mkosi-build-log")
    print_info(f"Build log will be saved to {log_path}")

    clean_args = build_clean_args(config)
    if clean_args is not None:
        clean_command = [str(mkosi_bin), *clean_args]
        print_info(f"Executing clean operation with: {' '.join(clean_command)}")
        returncode = _stream(clean_command, log_path, cwd)
        if returncode != 0:
            raise _fail(returncode, log_path, "Clean operation")
        print_info("Clean operation completed, proceeding with build...")

    command = [str(mkosi_bin), *build_mkosi_args(config)]
    print_info(f"Building with: {' '.join(command)}")
    started = time.monotonic()
    returncode = _stream(command, log_path, cwd)
    duration = time.monotonic() - started

    if returncode != 0:
        raise _fail(returncode, log_path, "Build")

    return BuildResult(
        command=tuple(command),
        duration=duration,
        images=tuple(find_output_images(cwd / OUTPUT_DIR_NAME)),
    )


def _stream(command: list[str], log_path: Path, cwd: Path) -> int:
    try:
        return run_streaming(command, log_path, cwd=str(cwd), env=COLOR_ENV)
    except OSError as e:
        print_error(f"Failed to start mkosi: {e}")
        msg = f"Failed to start mkosi: {e}"
        raise CollaboratorError(msg) from e
