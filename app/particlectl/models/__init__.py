"""Data models for particlectl.

This module exports the option catalog, the profile set and the build
configuration record.
"""

from particlectl.models.catalog import (
    ARCH_ALIASES,
    ARCHITECTURES,
    COMMON_ARCHITECTURES,
    DEFAULT_DISTRIBUTION,
    DISTRIBUTIONS,
    PROFILE_RECOMMENDATIONS,
    PROFILES,
    RECOMMENDED_COMBINATIONS,
    Axis,
    OptionEntry,
    ProfileRecommendation,
)
from particlectl.models.config import (
    BuildConfig,
    CleanMode,
    auto_detect_obs,
    default_architecture,
    detect_default_obs,
    normalize_architecture,
)
from particlectl.models.profiles import ProfileSet

__all__ = [
    "ARCH_ALIASES",
    "ARCHITECTURES",
    "COMMON_ARCHITECTURES",
    "DEFAULT_DISTRIBUTION",
    "DISTRIBUTIONS",
    "PROFILE_RECOMMENDATIONS",
    "PROFILES",
    "RECOMMENDED_COMBINATIONS",
    "Axis",
    "BuildConfig",
    "CleanMode",
    "OptionEntry",
    "ProfileRecommendation",
    "ProfileSet",
    "auto_detect_obs",
    "default_architecture",
    "detect_default_obs",
    "normalize_architecture",
]
