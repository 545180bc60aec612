"""Shared Rich display functions for the command line.

Help text, error reports and the post-build summary. Option lists and the
configuration table live in particlectl.utils.formatting because the
interactive configurator uses them as well.
"""

from pathlib import Path

from rich.markup import escape

from particlectl.core.builder import BuildResult
from particlectl.core.errors import CollaboratorError, ConfigValidationError
from particlectl.utils.formatting import (
    console,
    err_console,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
)

PARTICLEOS_URL = "https://github.com/systemd/particleos"

# (flags, description) rows per help section
_MKOSI_OPTIONS: tuple[tuple[str, str], ...] = (
    ("--arch [ARCH]", "Architecture (x86_64, aarch64, etc.)"),
    ("--dist [DIST], -d", "Distribution (fedora, arch, debian)"),
    ("--profile [PROFILE]", "Profile (desktop,gnome; desktop,kde; obs)"),
    ("--root-password [PASS]", "Set root password for mkosi to load"),
    ("--debug", "Show debug output during the mkosi build"),
    ("-f [clean]", "Clean image cache before build"),
    ("-ff [clean]", "Clean image and package cache before build"),
    ("-w", "Clean build directory before build"),
)

_SCRIPT_CONTROL: tuple[tuple[str, str], ...] = (
    ("--interactive, -i", "Interactive configuration mode"),
    ("--fullscreen, -fs", "Run in full-screen terminal mode"),
    ("--confirm, -c", "Force confirmation prompt before build"),
    ("--save-config [FILE]", "Save current configuration to file"),
    ("--load-config [FILE]", "Load configuration from file"),
    ("--help, -h", "Show this help message"),
)

_EXAMPLES: tuple[tuple[str, str], ...] = (
    ("", "Run in interactive mode"),
    ("-d fedora --profile desktop,gnome", ""),
    ("--arch=x86_64 -d=arch --profile desktop,kde --debug", ""),
)


def print_help(prog: str = "particlectl") -> None:
    """Print usage, grouped into mkosi options and tool control."""
    console.print("[bold_header]ParticleOS Build Tool[/]")
    console.print()
    console.print("A tool to configure and build Linux images using mkosi.")
    console.print()
    console.print("[section]Usage[/]")
    console.print(f"  {prog} \\[options]")
    for title, rows in (("Mkosi Options", _MKOSI_OPTIONS), ("Script Control", _SCRIPT_CONTROL)):
        console.print()
        console.print(f"[section]{title}[/]")
        for flags, description in rows:
            padded = f"{flags:<26}"
            console.print(f"  [option.key]{escape(padded)}[/] {description}")
    console.print()
    console.print("[section]Examples[/]")
    for args, description in _EXAMPLES:
        command = f"{prog} {args}".rstrip()
        console.print(f"  {command:<22} {description}".rstrip())


def print_usage_hint() -> None:
    """Point the user at --help after a usage error."""
    err_console.print("Use [option.key]--help[/] to see available options.")


def print_validation_error(error: ConfigValidationError) -> None:
    """Print a rejected value together with the valid options for its axis."""
    result = error.result
    print_error(escape(result.message))
    err_console.print(f"Valid {result.axis.value} options:")
    for entry in result.options:
        err_console.print(f"  [option.key]{escape(entry.key)}[/] - {escape(entry.description)}")


def print_build_failure(error: CollaboratorError) -> None:
    """Print a failed build with its diagnosis and the matching log lines."""
    print_error(escape(str(error)))
    if error.log_path is None:
        return
    print_info("Analyzing build failure...")
    if error.diagnosis is None:
        print_info(f"No known failure pattern found, see {error.log_path}")
        return
    print_error(error.diagnosis)
    for line in error.context:
        err_console.print(escape(line), highlight=False)


def _format_size(path: Path) -> str:
    size = float(path.stat().st_size)
    for unit in ("B", "K", "M"):
        if size < 1024:
            return f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}G"


def print_build_result(result: BuildResult) -> None:
    """Print the success message and the produced images."""
    print_success(f"mkosi build completed successfully in {result.duration_text}!")
    if not result.images:
        print_warning("Build appeared to succeed but no .raw image file was found")
        return
    print_info("Output images:")
    for image in result.images:
        console.print(f"  {escape(str(image))} [muted]({_format_size(image)})[/]")


def print_next_steps() -> None:
    """Print how to write the image to a drive or boot it in a VM."""
    print_header("Next Steps")
    console.print("To install your ParticleOS image to a USB drive, use:")
    console.print("  [info]mkosi/bin/mkosi burn /dev/sdX[/]")
    console.print("  [warning](Replace sdX with your actual USB device)[/]")
    console.print()
    console.print("To boot the image in a VM, use:")
    console.print("  [info]mkosi/bin/mkosi vm[/]")
    console.print()
    console.print(f"For more information, visit: [info]{PARTICLEOS_URL}[/]")
