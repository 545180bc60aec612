"""Exception hierarchy for particlectl.

Every failure that ends a run is one of these. The CLI maps them to
messages and exit codes; library code only raises them.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from particlectl.core.validator import ValidationResult


class ParticleError(Exception):
    """Base exception for particlectl errors."""


class ConfigValidationError(ParticleError):
    """Raised when a value is not valid for its configuration axis.

    Attributes:
        result: The rejected validation result, including the catalog the
            value was checked against.
    """

    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        super().__init__(result.message)


class UsageError(ParticleError):
    """Raised for malformed command lines (unknown flag, missing value)."""


class DependencyError(ParticleError):
    """Raised when a required external tool is missing or too old."""


class LockError(ParticleError):
    """Raised when another instance holds the build lock.

    Attributes:
        pid: Process id recorded in the lock file, if readable.
        lock_path: Path to the lock file.
    """

    def __init__(self, pid: int | None, lock_path: Path) -> None:
        self.pid = pid
        self.lock_path = lock_path
        owner = f" (PID: {pid})" if pid is not None else ""
        super().__init__(f"Another instance{owner} is already running")


class CollaboratorError(ParticleError):
    """Raised when mkosi or one of its helpers fails.

    Attributes:
        returncode: Exit status of the failed command.
        log_path: Preserved copy of the build log, if one was kept.
        diagnosis: Best-effort classification of the failure.
        context: Log lines shown with the diagnosis.
    """

    def __init__(
        self,
        message: str,
        returncode: int = 1,
        log_path: Path | None = None,
        diagnosis: str | None = None,
        context: tuple[str, ...] = (),
    ) -> None:
        self.returncode = returncode
        self.log_path = log_path
        self.diagnosis = diagnosis
        self.context = context
        super().__init__(message)


class ConfigurationAborted(ParticleError):
    """Raised when the user interrupts interactive configuration."""
