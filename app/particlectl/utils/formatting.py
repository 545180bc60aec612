"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys
from collections.abc import Iterable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from particlectl.core.theme import get_theme
from particlectl.models.catalog import OptionEntry
from particlectl.models.config import BuildConfig


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def print_header(message: str) -> None:
    """Print a top-level header underlined to its own width."""
    console.print()
    console.print(f"[header]{message}[/]")
    console.print(f"[header]{'═' * len(message)}[/]")


def print_section(title: str, description: str | None = None) -> None:
    """Print a configuration section title with optional description."""
    console.print()
    console.print(f"[section]{title}[/]")
    if description:
        console.print(description)


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]→[/] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]✓ {message}[/]")


def format_option_line(
    entry: OptionEntry,
    selected: bool = False,
    default: bool = False,
) -> str:
    """Format a catalog entry as ``key - description`` with state markers.

    Args:
        entry: Catalog entry to format.
        selected: Mark the entry as the current selection.
        default: Mark the entry as the default value.

    Returns:
        Line with Rich markup.
    """
    line = f"  [option.key]{escape(entry.key)}[/] - {escape(entry.description)}"
    if selected:
        line += " [selected](selected)[/]"
    if default:
        line += " [default_option](default)[/]"
    return line


def print_options(
    entries: Iterable[OptionEntry],
    selected: Iterable[str] = (),
    default: str | None = None,
) -> None:
    """Print catalog entries in catalog order with state markers."""
    chosen = set(selected)
    for entry in entries:
        console.print(format_option_line(entry, entry.key in chosen, entry.key == default))


def format_config_rows(config: BuildConfig) -> list[tuple[str, str]]:
    """Format a configuration as (label, value) rows.

    The root password is reduced to ``[Set]`` / ``[Not Set]`` and an empty
    profile list to ``[None]``.
    """
    return [
        ("Architecture", escape(config.architecture)),
        ("Distribution", escape(config.distribution)),
        ("Profile", escape(config.profiles.joined()) or "[None]"),
        ("OBS Packages", "Enabled" if config.obs_enabled else "Disabled"),
        ("Root Password", "[Set]" if config.has_root_password else "[Not Set]"),
        ("Debug Mode", "Enabled" if config.debug else "Disabled"),
        ("Cache Cleanup", escape(config.clean_mode.label)),
        ("Clean Build (-w)", "Enabled" if config.clean_build else "Disabled"),
    ]


def create_config_table(config: BuildConfig, title: str = "Build Configuration") -> Table:
    """Create a two-column table summarizing a configuration.

    Args:
        config: Configuration to summarize.
        title: Table title.

    Returns:
        Rich Table ready to print.
    """
    table = Table(
        title=title,
        show_header=False,
        border_style="border",
        title_style="bold_header",
    )
    table.add_column("Setting", style="section", no_wrap=True)
    table.add_column("Value", style="text")
    for label, value in format_config_rows(config):
        table.add_row(label, value)
    return table


def print_config_summary(config: BuildConfig) -> None:
    """Print the configuration summary table."""
    console.print()
    console.print(create_config_table(config))
