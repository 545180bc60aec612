"""Color theme for particlectl output.

The bundled ``data/theme.toml`` defines every color. A user file at
``~/.config/particlectl/theme.toml`` may override any subset of them; if
the merged result does not validate, the built-in defaults are used.

Note: this module must not import particlectl.utils.formatting, whose
consoles are built from the theme loaded here.
"""

import logging
import re
import sys
import tomllib
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from particlectl.core.paths import get_user_theme_path

logger = logging.getLogger(__name__)

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")

# Rich style name -> template over ThemeColors field names
STYLE_TEMPLATES: dict[str, str] = {
    "text": "{text}",
    "muted": "{muted}",
    "header": "bold {header}",
    "bold_header": "bold {header}",
    "section": "bold {section}",
    "border": "{border}",
    "success": "{success}",
    "warning": "{warning}",
    "error": "bold {error}",
    "info": "{info}",
    "selected": "{selected}",
    "default_option": "{default_option}",
    "option.key": "bold {text}",
}


class ThemeColors(BaseModel):
    """Hex colors used by the console styles.

    Values are ``#RGB`` or ``#RRGGBB``. Unknown keys are rejected so that
    typos in a user theme are reported instead of silently ignored.
    """

    model_config = ConfigDict(extra="forbid")

    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#3b82f6"
    section: str = "#c678dd"
    border: str = "#29526d"
    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"
    # Markers next to catalog entries
    selected: str = "#03b971"
    default_option: str = "#f5b332"

    @field_validator("*", mode="before")
    @classmethod
    def _check_hex(cls, value: object, info: Any) -> str:
        name = info.field_name
        if not isinstance(value, str):
            msg = f"{name}: color must be a string"
            raise ValueError(msg)
        color = value.strip()
        if not color.startswith("#"):
            msg = f"{name}: color must start with '#'"
            raise ValueError(msg)
        digits = color[1:]
        if len(digits) not in (3, 6):
            msg = f"{name}: color must be #RGB or #RRGGBB format"
            raise ValueError(msg)
        if not _HEX_DIGITS.fullmatch(digits):
            msg = f"{name}: invalid hex color '{color}'"
            raise ValueError(msg)
        return color


def get_bundled_theme_path() -> Path:
    """Return the path of the theme file shipped with the package."""
    return Path(str(resources.files("particlectl.data").joinpath("theme.toml")))


def read_theme_file(path: Path) -> dict[str, str] | None:
    """Read the ``[colors]`` table of a theme file.

    Non-string values are dropped. Parse errors are reported on stderr,
    since the themed consoles do not exist yet.

    Args:
        path: TOML file to read.

    Returns:
        Color name to value, or None if the file is missing or unusable.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except tomllib.TOMLDecodeError as e:
        logger.warning("Failed to parse theme %s: %s", path, e)
        print(f"Warning: Failed to parse {path}: {e}", file=sys.stderr)
        return None
    except OSError as e:
        logger.warning("Failed to read theme %s: %s", path, e)
        return None

    table = data.get("colors", {})
    if not isinstance(table, dict):
        logger.warning("Ignoring theme %s: 'colors' is not a table", path)
        return None
    return {str(key): value for key, value in table.items() if isinstance(value, str)}


def load_theme(user_path: Path | None = None) -> ThemeColors:
    """Merge the bundled theme with the user's overrides.

    Args:
        user_path: Override file. Default: ~/.config/particlectl/theme.toml

    Returns:
        Validated colors; the model defaults if validation fails.
    """
    colors = read_theme_file(get_bundled_theme_path())
    if colors is None:
        logger.error("Bundled theme is missing or broken, using built-in colors")
        colors = {}

    override_path = user_path if user_path is not None else get_user_theme_path()
    overrides = read_theme_file(override_path)
    if overrides:
        logger.debug("Applying %d theme overrides from %s", len(overrides), override_path)
        colors = {**colors, **overrides}

    try:
        return ThemeColors(**colors)
    except ValidationError as e:
        logger.warning("Invalid theme, using defaults: %s", e)
        print(f"Warning: Invalid theme configuration: {e}", file=sys.stderr)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Build the Rich theme for ``colors`` (loaded from disk if omitted)."""
    values = (colors if colors is not None else load_theme()).model_dump()
    return Theme({name: template.format(**values) for name, template in STYLE_TEMPLATES.items()})


@lru_cache(maxsize=1)
def get_theme() -> Theme:
    """Return the process-wide Rich theme, loading it on first use."""
    return get_rich_theme()
