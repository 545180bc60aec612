"""Tracking and removal of temporary files.

The root password file and the build log are registered here and removed
by cleanup(), which the CLI calls on every exit path. The lock file is
handled by BuildLock.
"""

import logging
import os
import tempfile
from pathlib import Path

from particlectl.utils.formatting import print_info, print_success, print_warning

logger = logging.getLogger(__name__)


class TempFileRegistry:
    """Creates owner-only temporary files and removes them on cleanup.

    Attributes:
        directory: Directory new temporary files are created in.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self._tracked: list[Path] = []

    @property
    def tracked(self) -> list[Path]:
        """Paths currently tracked for removal, in registration order."""
        return list(self._tracked)

    def track(self, path: Path) -> Path:
        """Register an existing path for removal at cleanup."""
        if path not in self._tracked:
            self._tracked.append(path)
        return path

    def create(self, prefix: str = "mkosi-tmp") -> Path:
        """Create an empty 0600 temporary file and track it.

        Args:
            prefix: File name prefix; a random suffix is appended.

        Returns:
            Path to the new file.

        Raises:
            OSError: If the file cannot be created.
        """
        fd, name = tempfile.mkstemp(prefix=f"{prefix}.", dir=self.directory)
        os.close(fd)
        path = Path(name)
        path.chmod(0o600)
        logger.debug("Created temporary file %s", path)
        return self.track(path)

    def cleanup(self, quiet: bool = False) -> bool:
        """Remove all tracked files.

        Missing files are ignored. Removal errors are reported but never
        raised, so cleanup always runs to completion.

        Args:
            quiet: Suppress the progress messages.

        Returns:
            True if every tracked file is gone.
        """
        if not quiet:
            print_info("Cleaning up temporary files...")

        failed = False
        while self._tracked:
            path = self._tracked.pop()
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Failed to remove %s: %s", path, e)
                print_warning(f"Failed to remove temporary file: {path}")
                failed = True

        if not quiet:
            if failed:
                print_warning("Cleanup completed with some errors")
            else:
                print_success("Cleanup completed successfully")
        return not failed
