"""Main CLI application entry point.

Defines the Typer application. The command accepts the tool's flat flag
grammar verbatim; Typer hands the raw tokens to particlectl.core.args.
"""

import logging
import os
import signal
from types import FrameType

import typer
from rich.logging import RichHandler
from rich.markup import escape

from particlectl.cli.display import (
    print_build_failure,
    print_build_result,
    print_help,
    print_next_steps,
    print_usage_hint,
    print_validation_error,
)
from particlectl.cli.prompter import TyperPrompter
from particlectl.core.args import ParsedArgs, parse_args, redact_tokens, wants_interactive
from particlectl.core.builder import (
    run_build,
    setup_mkosi,
    setup_root_password,
    setup_secure_boot_keys,
)
from particlectl.core.configurator import InteractiveConfigurator
from particlectl.core.deps import check_dependencies
from particlectl.core.errors import (
    CollaboratorError,
    ConfigurationAborted,
    ConfigValidationError,
    DependencyError,
    LockError,
    UsageError,
)
from particlectl.core.history import record_execution
from particlectl.core.lock import BuildLock
from particlectl.core.paths import get_project_dir
from particlectl.core.persistence import ConfigFileError, save_config
from particlectl.core.tempfiles import TempFileRegistry
from particlectl.models.config import BuildConfig, auto_detect_obs
from particlectl.utils.formatting import (
    console,
    err_console,
    print_config_summary,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
)

logger = logging.getLogger(__name__)

PROG_NAME = "particlectl"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

app = typer.Typer(
    name=PROG_NAME,
    help="Configure and build ParticleOS images with mkosi.",
    rich_markup_mode="rich",
    add_completion=False,
)


@app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
    add_help_option=False,
)
def main(ctx: typer.Context) -> None:
    """particlectl - Configure and build ParticleOS images with mkosi.

    Run without arguments for interactive configuration, or pass mkosi
    options directly. Use --help for the full option list.
    """
    raise typer.Exit(code=run(list(ctx.args)))


def _raise_interrupt(signum: int, frame: FrameType | None) -> None:
    raise KeyboardInterrupt


def _report_interrupt() -> None:
    err_console.print()
    print_warning("Interrupted, stopping")


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _confirm_root(prompter: TyperPrompter) -> bool:
    """Warn when running as root; return False if the user backs out."""
    if os.geteuid() != 0:
        return True
    print_warning("This tool is running with root privileges")
    print_warning("mkosi will use run0 for operations that require elevated privileges")
    if prompter.confirm("Continue running as root?", default=False):
        return True
    print_info("Exiting so the tool can be run without root access")
    return False


def run(tokens: list[str]) -> int:
    """Run the tool for ``tokens`` and return the exit code.

    The lock is held and temporary files are tracked for the whole run;
    both are released on every exit path, interrupts included.
    """
    prompter = TyperPrompter()
    try:
        if not _confirm_root(prompter):
            return EXIT_OK
    except KeyboardInterrupt:
        _report_interrupt()
        return EXIT_INTERRUPTED

    lock = BuildLock()
    try:
        lock.acquire()
    except LockError as e:
        print_error(str(e))
        print_info(f"If this is incorrect, remove {e.lock_path}")
        return EXIT_FAILURE

    registry = TempFileRegistry(get_project_dir())
    previous_handler = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        return _run_locked(tokens, registry, prompter)
    except KeyboardInterrupt:
        _report_interrupt()
        return EXIT_INTERRUPTED
    finally:
        signal.signal(signal.SIGTERM, previous_handler)
        registry.cleanup(quiet=not registry.tracked)
        lock.release()


def _run_locked(tokens: list[str], registry: TempFileRegistry, prompter: TyperPrompter) -> int:
    try:
        record_execution([PROG_NAME, *redact_tokens(tokens)])
    except OSError as e:
        print_warning(f"Could not write execution log: {e}")

    try:
        check_dependencies()
    except DependencyError as e:
        print_error(str(e))
        return EXIT_FAILURE

    try:
        parsed = parse_args(tokens, BuildConfig())
    except UsageError as e:
        print_error(escape(str(e)))
        print_usage_hint()
        return EXIT_FAILURE
    except ConfigValidationError as e:
        print_validation_error(e)
        return EXIT_FAILURE

    if parsed.show_help:
        print_help(PROG_NAME)
        return EXIT_OK

    config = parsed.config
    _configure_logging(config.debug)

    if not _write_saves(parsed):
        return EXIT_FAILURE

    if parsed.fullscreen:
        console.clear()

    interactive = wants_interactive(tokens, parsed)
    if interactive:
        config.interactive = True
        try:
            InteractiveConfigurator(config, prompter).run()
        except ConfigurationAborted:
            err_console.print()
            print_warning("Configuration cancelled, nothing was built")
            return EXIT_INTERRUPTED
    else:
        if not parsed.obs_explicit and auto_detect_obs(config):
            print_info("Auto-detected: Adding obs profile based on system configuration")
        print_config_summary(config)
        if config.force_confirm and not prompter.confirm("Proceed with build?", default=False):
            print_info("Build cancelled")
            return EXIT_OK

    return _build(config, registry, prompter, interactive)


def _write_saves(parsed: ParsedArgs) -> bool:
    for path, snapshot in parsed.saves:
        try:
            saved = save_config(snapshot, path)
        except ConfigFileError as e:
            print_error(str(e))
            return False
        print_success(f"Configuration saved to {saved}")
    return True


def _build(
    config: BuildConfig,
    registry: TempFileRegistry,
    prompter: TyperPrompter,
    interactive: bool,
) -> int:
    try:
        print_header("Setting up mkosi")
        mkosi_bin = setup_mkosi()
        setup_secure_boot_keys(mkosi_bin, prompter.confirm)
        # Interactive passwords were already confirmed by the configurator
        setup_root_password(config, registry, confirm=None if interactive else prompter.confirm)
        print_header("Building ParticleOS Image with mkosi")
        result = run_build(config, mkosi_bin, registry)
    except DependencyError as e:
        print_error(str(e))
        return EXIT_FAILURE
    except CollaboratorError as e:
        print_build_failure(e)
        return EXIT_FAILURE

    print_build_result(result)
    print_next_steps()
    return EXIT_OK


if __name__ == "__main__":
    app()
