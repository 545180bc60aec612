"""Option catalog for image configuration.

Static, ordered tables of the values accepted for each configuration axis.
Order is significant: it is the display order and the preference order
shown to the user, not an alphabetical one.
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class OptionEntry:
    """A single selectable value with a human-readable description.

    Attributes:
        key: Exact value passed on to mkosi.
        description: Short description shown next to the key.
    """

    key: str
    description: str


@dataclass(frozen=True, slots=True)
class ProfileRecommendation:
    """Base profile a profile should normally be combined with.

    Attributes:
        recommended_base: Profile key that should accompany the profile.
        note: Description shown when recommending the combination.
    """

    recommended_base: str
    note: str


class Axis(str, Enum):
    """Configuration axes validated against a catalog."""

    ARCHITECTURE = "architecture"
    DISTRIBUTION = "distribution"
    PROFILE = "profile"


ARCHITECTURES: tuple[OptionEntry, ...] = (
    OptionEntry("x86_64", "64-bit Intel/AMD architecture"),
    OptionEntry("aarch64", "64-bit ARM architecture"),
    OptionEntry("ppc64-le", "64-bit PowerPC little-endian"),
    OptionEntry("s390x", "64-bit IBM System z"),
    OptionEntry("arm", "32-bit ARM architecture"),
    OptionEntry("i386", "32-bit Intel/AMD architecture"),
    OptionEntry("mips64el", "64-bit MIPS little-endian"),
    OptionEntry("mipsel", "32-bit MIPS little-endian"),
)

# Subset shown in the interactive architecture stage
COMMON_ARCHITECTURES: tuple[OptionEntry, ...] = ARCHITECTURES[:2]

DISTRIBUTIONS: tuple[OptionEntry, ...] = (
    OptionEntry("fedora", "Fedora Linux"),
    OptionEntry("arch", "Arch Linux"),
    OptionEntry("debian", "Debian Linux"),
)

PROFILES: tuple[OptionEntry, ...] = (
    OptionEntry("desktop", "Desktop base profile"),
    OptionEntry("gnome", "GNOME Desktop environment"),
    OptionEntry("kde", "KDE Desktop environment"),
    OptionEntry("obs", "OBS packages for systemd"),
)

ARCH_ALIASES: dict[str, str] = {
    "arm64": "aarch64",
    "arm32": "arm",
    "x86-64": "x86_64",
    "x86": "i386",
    "amd64": "x86_64",
    "ppc64el": "ppc64-le",
    "armhf": "arm",
}

# Profiles that are discouraged from standing alone
PROFILE_RECOMMENDATIONS: dict[str, ProfileRecommendation] = {
    "gnome": ProfileRecommendation(
        "desktop", "GNOME Desktop environment (recommended with desktop)"
    ),
    "kde": ProfileRecommendation("desktop", "KDE Desktop environment (recommended with desktop)"),
}

RECOMMENDED_COMBINATIONS: tuple[OptionEntry, ...] = (
    OptionEntry("desktop,gnome", "GNOME Desktop (recommended)"),
    OptionEntry("desktop,kde", "KDE Desktop (recommended)"),
)

OBS_PROFILE = "obs"
DESKTOP_PROFILE = "desktop"
DEFAULT_DISTRIBUTION = "fedora"

CATALOGS: dict[Axis, tuple[OptionEntry, ...]] = {
    Axis.ARCHITECTURE: ARCHITECTURES,
    Axis.DISTRIBUTION: DISTRIBUTIONS,
    Axis.PROFILE: PROFILES,
}


def get_catalog(axis: Axis) -> tuple[OptionEntry, ...]:
    """Return the ordered catalog for an axis."""
    return CATALOGS[axis]


def catalog_keys(axis: Axis) -> tuple[str, ...]:
    """Return the catalog keys for an axis in display order."""
    return tuple(entry.key for entry in CATALOGS[axis])


def find_entry(axis: Axis, key: str) -> OptionEntry | None:
    """Look up a catalog entry by exact key.

    Args:
        axis: Axis whose catalog is searched.
        key: Key to look up. Matching is case-sensitive.

    Returns:
        The matching entry, or None if the key is not listed.
    """
    for entry in CATALOGS[axis]:
        if entry.key == key:
            return entry
    return None


def addons_for(base: str) -> list[str]:
    """Return profiles that recommend ``base``, in catalog order."""
    return [
        entry.key
        for entry in PROFILES
        if entry.key in PROFILE_RECOMMENDATIONS
        and PROFILE_RECOMMENDATIONS[entry.key].recommended_base == base
    ]
