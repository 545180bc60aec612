"""Build configuration model.

This module defines the BuildConfig record that the argument parser,
the interactive configurator and config persistence all mutate, and that
the build orchestrator finally reads. It also holds the small mutators
that keep its fields normalized and consistent.
"""

import logging
import os
import platform
from collections.abc import Callable
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    SecretStr,
    field_serializer,
    field_validator,
)

from particlectl.models.catalog import ARCH_ALIASES, DEFAULT_DISTRIBUTION, OBS_PROFILE
from particlectl.models.profiles import ProfileSet

logger = logging.getLogger(__name__)

# Shorter root passwords need explicit confirmation
MIN_PASSWORD_LENGTH = 8


class CleanMode(str, Enum):
    """How much mkosi should purge before building.

    The value is the flag string as written on the command line and in
    saved configuration files.
    """

    CACHE_ONLY = "-f"
    CACHE_AND_PACKAGES = "-ff"
    CACHE_ONLY_THEN_CLEAN = "-f clean"
    FULL_CLEAN = "-ff clean"
    NONE = ""

    @property
    def flag(self) -> str | None:
        """Cleanup flag passed to the build command, if any."""
        flag = self.value.split(" ", 1)[0]
        return flag or None

    @property
    def separate_clean(self) -> bool:
        """Whether a ``mkosi <flag> clean`` pass runs before the build."""
        return self.value.endswith(" clean")

    @property
    def label(self) -> str:
        """Human-readable description of the mode."""
        return _CLEAN_LABELS[self]

    @classmethod
    def from_flags(cls, flag: str, follow_up: str | None = None) -> "CleanMode":
        """Resolve a cleanup flag and optional ``clean`` token to a mode.

        Args:
            flag: ``-f`` or ``-ff``.
            follow_up: The token after the flag; only ``"clean"`` matters.

        Raises:
            ValueError: If ``flag`` is not a cleanup flag.
        """
        value = f"{flag} clean" if follow_up == "clean" else flag
        return cls(value)


_CLEAN_LABELS: dict[CleanMode, str] = {
    CleanMode.CACHE_ONLY: "Clean image cache only [-f]",
    CleanMode.CACHE_AND_PACKAGES: "Clean image cache & all packages [-ff]",
    CleanMode.CACHE_ONLY_THEN_CLEAN: "Clean image cache, then full clean [-f clean]",
    CleanMode.FULL_CLEAN: "Full clean [-ff clean]",
    CleanMode.NONE: "No cleaning option",
}


def normalize_architecture(value: str) -> str:
    """Convert an architecture alias to its canonical name.

    Unknown values are returned unchanged, so the function is idempotent.

    Args:
        value: Architecture name or alias (e.g. ``"amd64"``).

    Returns:
        Canonical architecture name (e.g. ``"x86_64"``).
    """
    canonical = ARCH_ALIASES.get(value, value)
    if canonical != value:
        logger.debug("Converting architecture alias '%s' to '%s'", value, canonical)
    return canonical


def default_architecture() -> str:
    """Return the host architecture in canonical form."""
    return normalize_architecture(platform.machine() or "x86_64")


class BuildConfig(BaseModel):
    """Resolved configuration for one image build.

    Attributes:
        architecture: Canonical target architecture.
        distribution: Distribution key from the catalog.
        profiles: Ordered set of mkosi profiles (may be empty).
        root_password: Optional root password for the image. Never saved
            to the configuration file and never printed.
        debug: Pass ``--debug`` to mkosi and enable debug logging.
        interactive: Run the interactive configurator. Per-run flag, not
            saved to the configuration file.
        force_confirm: Ask for confirmation before a non-interactive build.
            Per-run flag, not saved to the configuration file.
        clean_build: Pass ``-w`` to mkosi.
        clean_mode: Cache cleanup requested of mkosi.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        extra="forbid",
    )

    architecture: Annotated[str, Field(default_factory=default_architecture)]
    distribution: str = DEFAULT_DISTRIBUTION
    profiles: Annotated[ProfileSet, Field(default_factory=ProfileSet)]
    root_password: SecretStr | None = None
    debug: bool = False
    interactive: bool = False
    force_confirm: bool = False
    clean_build: bool = False
    clean_mode: CleanMode = CleanMode.CACHE_ONLY

    # Position obs occupied before it was last toggled off
    _obs_slot: int | None = PrivateAttr(default=None)

    @field_validator("architecture", mode="after")
    @classmethod
    def _canonical_architecture(cls, value: str) -> str:
        return normalize_architecture(value)

    @field_validator("profiles", mode="before")
    @classmethod
    def _coerce_profiles(cls, value: Any) -> ProfileSet:
        if isinstance(value, ProfileSet):
            return value
        if isinstance(value, str):
            return ProfileSet.parse(value)
        if isinstance(value, list | tuple):
            return ProfileSet(str(item) for item in value)
        msg = f"profiles must be a string or a list of strings, got {type(value).__name__}"
        raise ValueError(msg)

    @field_serializer("profiles")
    def _serialize_profiles(self, value: ProfileSet) -> str:
        return value.joined()

    @property
    def obs_enabled(self) -> bool:
        """Whether the obs profile is part of the build."""
        return OBS_PROFILE in self.profiles

    @property
    def has_root_password(self) -> bool:
        """Whether a non-empty root password is configured."""
        return self.root_password is not None and bool(self.root_password.get_secret_value())

    def toggle_obs(self, enabled: bool) -> None:
        """Add or remove the obs profile.

        Idempotent in both directions. Removing obs remembers where it sat,
        so enabling it again restores the exact previous profile order.

        Args:
            enabled: True to include obs, False to drop it.
        """
        if enabled:
            if not self.obs_enabled:
                self.profiles = self.profiles.with_profile(OBS_PROFILE, self._obs_slot)
            self._obs_slot = None
        elif self.obs_enabled:
            self._obs_slot = self.profiles.index(OBS_PROFILE)
            self.profiles = self.profiles.without(OBS_PROFILE)

    def set_root_password(self, password: str | None) -> None:
        """Set or clear the root password; blank clears it."""
        self.root_password = SecretStr(password) if password else None

    def __eq__(self, other: object) -> bool:
        # Field values only; the remembered obs slot is not configuration
        if not isinstance(other, BuildConfig):
            return NotImplemented
        return self.__dict__ == other.__dict__


ObsProbe = Callable[[], bool]


def detect_default_obs() -> bool:
    """Decide from host state whether OBS packages should be used.

    ``PARTICLEOS_OBS`` may be set to ``yes`` or ``no``; anything else
    (including unset) keeps the default of using OBS packages.
    """
    value = os.environ.get("PARTICLEOS_OBS", "").strip().lower()
    if value in ("no", "n", "false", "0"):
        return False
    return True


def auto_detect_obs(config: BuildConfig, probe: ObsProbe = detect_default_obs) -> bool | None:
    """Pick the obs default when the user did not mention it.

    Only call this for non-interactive runs. If obs is already part of the
    profiles the configuration is left alone.

    Args:
        config: Configuration to update in place.
        probe: Host probe deciding the default.

    Returns:
        The detected value, or None if obs was already selected.
    """
    if config.obs_enabled:
        return None
    detected = probe()
    config.toggle_obs(detected)
    return detected
