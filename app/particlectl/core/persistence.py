"""Saving and loading build configurations.

Configurations are stored as shell-style ``KEY="value"`` assignments, one
per line, so the file stays readable and can be sourced by shell scripts.
Values holding shell-special characters are single-quoted instead.
The root password is never written here.

Loading is forgiving: every field is re-validated, and a field that fails
is reset to its default with a warning instead of aborting the run.
"""

import logging
import os
import re
import shlex
from datetime import datetime
from pathlib import Path
from tempfile import NamedTemporaryFile

from particlectl.core.errors import ParticleError
from particlectl.core.paths import get_default_config_path
from particlectl.core.validator import (
    Verdict,
    validate_architecture,
    validate_distribution,
    validate_profiles,
)
from particlectl.models.catalog import DEFAULT_DISTRIBUTION
from particlectl.models.config import BuildConfig, CleanMode, default_architecture
from particlectl.models.profiles import ProfileSet
from particlectl.utils.formatting import print_info, print_warning

logger = logging.getLogger(__name__)

# Keys in the order they are written
CONFIG_KEYS = (
    "ARCHITECTURE",
    "DISTRIBUTION",
    "PROFILE",
    "DEBUG_MODE",
    "CLEAN_MKOSI",
    "CLEAN_BUILD",
    "OBS_REPOS",
)

_TRUE_VALUES = frozenset({"true", "yes", "1"})
_FALSE_VALUES = frozenset({"false", "no", "0"})

# Values free of characters a shell expands inside double quotes
_DOUBLE_QUOTE_SAFE = re.compile(r'[^"\\$`]*')


class ConfigFileError(ParticleError):
    """Raised when a configuration file cannot be written."""


def _quote(value: str) -> str:
    """Quote a value so that both a shell and shlex read it back unchanged."""
    if _DOUBLE_QUOTE_SAFE.fullmatch(value):
        return f'"{value}"'
    return shlex.quote(value)


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def serialize_config(config: BuildConfig, now: datetime | None = None) -> str:
    """Render a configuration as shell assignments.

    Args:
        config: Configuration to render. The root password is skipped.
        now: Timestamp for the header comment.

    Returns:
        File content ending with a newline.
    """
    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    values = {
        "ARCHITECTURE": _quote(config.architecture),
        "DISTRIBUTION": _quote(config.distribution),
        "PROFILE": _quote(config.profiles.joined()),
        "DEBUG_MODE": _format_bool(config.debug),
        "CLEAN_MKOSI": _quote(config.clean_mode.value),
        "CLEAN_BUILD": _format_bool(config.clean_build),
        "OBS_REPOS": _format_bool(config.obs_enabled),
    }
    lines = [f"# ParticleOS build configuration saved on {stamp}"]
    lines.extend(f"{key}={values[key]}" for key in CONFIG_KEYS)
    return "\n".join(lines) + "\n"


def save_config(config: BuildConfig, path: Path | None = None) -> Path:
    """Write a configuration file readable only by its owner.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: Configuration to save.
        path: Destination. Default: <project>/particleos-config.conf

    Returns:
        Path where the configuration was saved.

    Raises:
        ConfigFileError: If the file cannot be written.
    """
    config_path = path or get_default_config_path()
    content = serialize_config(config)

    tmp_path: Path | None = None
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            os.chmod(f.name, 0o600)
            f.write(content)
        os.replace(tmp_path, config_path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        msg = f"Failed to write configuration: {e}"
        raise ConfigFileError(msg) from e

    logger.debug("Saved configuration to %s", config_path)
    return config_path


def parse_config_text(text: str) -> dict[str, str]:
    """Parse shell-style assignments into a dictionary.

    Comment lines, blank lines and lines without ``=`` are ignored. Values
    may be double-quoted, single-quoted or bare. A leading ``export`` is
    tolerated. Unparseable lines are skipped with a warning.

    Args:
        text: File content.

    Returns:
        Mapping of key to unquoted value; later assignments win.
    """
    values: dict[str, str] = {}
    for line_num, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        key, sep, raw_value = line.partition("=")
        if not sep:
            continue
        try:
            parts = shlex.split(raw_value, comments=True)
        except ValueError as e:
            logger.warning("Skipping unparseable config line %d: %s", line_num, e)
            print_warning(f"Skipping unparseable config line {line_num}: {raw_line}")
            continue
        values[key.strip()] = " ".join(parts)
    return values


def _parse_bool(value: str) -> bool | None:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def apply_config_values(values: dict[str, str], config: BuildConfig) -> list[str]:
    """Validate loaded values and apply them to ``config`` in place.

    Keys that are absent leave the current value untouched. Keys that fail
    validation are reset to their default.

    Args:
        values: Parsed key/value pairs.
        config: Configuration to update.

    Returns:
        Warning messages, one per field that was reset.
    """
    warnings: list[str] = []

    if "ARCHITECTURE" in values:
        result = validate_architecture(values["ARCHITECTURE"])
        if result.accepted:
            config.architecture = result.value
            if result.verdict == Verdict.UNLISTED:
                warnings.append(result.message)
        else:
            fallback = default_architecture()
            config.architecture = fallback
            warnings.append(f"Invalid architecture in config file, using default: {fallback}")

    if "DISTRIBUTION" in values:
        result = validate_distribution(values["DISTRIBUTION"])
        if result.accepted:
            config.distribution = result.value
        else:
            config.distribution = DEFAULT_DISTRIBUTION
            warnings.append(
                f"Invalid distribution in config file, using default: {DEFAULT_DISTRIBUTION}"
            )

    if "PROFILE" in values:
        result = validate_profiles(values["PROFILE"])
        if result.accepted:
            config.profiles = ProfileSet.parse(result.value)
        else:
            config.profiles = ProfileSet()
            warnings.append("Invalid profile in config file, using default: [None]")

    if "DEBUG_MODE" in values:
        debug = _parse_bool(values["DEBUG_MODE"])
        config.debug = bool(debug)
        if debug is None:
            warnings.append("Invalid DEBUG_MODE in config file, using default: false")

    if "CLEAN_MKOSI" in values:
        try:
            config.clean_mode = CleanMode(values["CLEAN_MKOSI"])
        except ValueError:
            config.clean_mode = CleanMode.CACHE_ONLY
            warnings.append("Invalid CLEAN_MKOSI in config file, using default: -f")

    if "CLEAN_BUILD" in values:
        clean_build = _parse_bool(values["CLEAN_BUILD"])
        config.clean_build = bool(clean_build)
        if clean_build is None:
            warnings.append("Invalid CLEAN_BUILD in config file, using default: false")

    if "OBS_REPOS" in values:
        obs = _parse_bool(values["OBS_REPOS"])
        if obs is None:
            warnings.append("Invalid OBS_REPOS in config file, keeping profile setting")
        else:
            config.toggle_obs(obs)

    return warnings


def load_config(config: BuildConfig, path: Path | None = None) -> bool:
    """Load a configuration file into ``config``.

    Never raises for bad content: a missing or unreadable file leaves the
    configuration unchanged, and bad fields are reset to defaults. Each
    problem is reported as a warning.

    Args:
        config: Configuration to update in place.
        path: File to read. Default: <project>/particleos-config.conf

    Returns:
        True if the file was read, False if it could not be.
    """
    config_path = path or get_default_config_path()
    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        print_warning(f"Configuration file not found: {config_path}")
        return False
    except OSError as e:
        logger.warning("Failed to read configuration %s: %s", config_path, e)
        print_warning(f"Could not read configuration file {config_path}: {e}")
        return False

    print_info(f"Loading configuration from: {config_path}")
    for message in apply_config_values(parse_config_text(text), config):
        print_warning(message)
    return True
