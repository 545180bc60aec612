"""Command-line grammar.

The grammar is flat and order-sensitive (``-ff clean``, ``-d=fedora``,
``--save-config`` with an optional file), which is why tokens are scanned
here rather than declared as Typer options. The scan works on a copy of
the configuration so a failed parse leaves the caller's configuration
untouched.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from particlectl.core.errors import UsageError
from particlectl.core.persistence import load_config
from particlectl.core.validator import (
    ValidationResult,
    Verdict,
    validate_architecture,
    validate_distribution,
    validate_profiles,
)
from particlectl.models.catalog import OBS_PROFILE
from particlectl.models.config import BuildConfig, CleanMode
from particlectl.models.profiles import ProfileSet
from particlectl.utils.formatting import print_info, print_warning

logger = logging.getLogger(__name__)

FULLSCREEN_FLAGS = frozenset({"-fs", "--fullscreen"})

# Flags that require a value, either inline (--flag=value) or as the next token
_VALUE_FLAGS = frozenset({"--arch", "--dist", "-d", "--profile", "--root-password"})

# Flags whose value is optional (a following non-flag token is taken as a file)
_OPTIONAL_VALUE_FLAGS = frozenset({"--save-config", "--load-config"})

_CLEAN_FLAGS = frozenset({"-f", "-ff"})

REDACTED = "********"


@dataclass(slots=True)
class ParsedArgs:
    """Outcome of a successful parse.

    Attributes:
        config: Configuration with every flag applied.
        fullscreen: Clear the screen before interactive configuration.
        show_help: ``--help`` was given; scanning stopped there.
        saves: Pending ``--save-config`` requests as (path, snapshot)
            pairs. A None path means the default location.
        obs_explicit: The obs packaging choice came from the user, either
            through ``--profile`` or a loaded configuration file.
    """

    config: BuildConfig
    fullscreen: bool = False
    show_help: bool = False
    saves: list[tuple[Path | None, BuildConfig]] = field(default_factory=list)
    obs_explicit: bool = False


def _split_flag(token: str) -> tuple[str, str | None]:
    """Split ``--flag=value`` into its parts; other tokens have no inline value."""
    if token.startswith("--") or token.startswith("-d="):
        name, sep, value = token.partition("=")
        if sep:
            return name, value
    return token, None


def _report(result: ValidationResult) -> str:
    """Print notices for accepted values and return the value to store."""
    result.raise_for_verdict()
    if result.verdict == Verdict.NORMALIZED:
        print_info(result.message)
    elif result.verdict == Verdict.UNLISTED:
        print_warning(result.message)
    return result.value


class _TokenStream:
    """Cursor over the raw argument tokens."""

    def __init__(self, tokens: list[str]) -> None:
        self._tokens = tokens
        self._pos = 0

    def __bool__(self) -> bool:
        return self._pos < len(self._tokens)

    def next(self) -> str:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def peek(self) -> str | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def take_value(self, flag: str) -> str:
        """Consume the value of ``flag`` from the next token."""
        value = self.peek()
        if value is None or value.startswith("-"):
            msg = f"Missing argument for {flag}"
            raise UsageError(msg)
        self._pos += 1
        return value

    def take_optional(self) -> str | None:
        """Consume the next token if it is not a flag."""
        value = self.peek()
        if value is None or value.startswith("-"):
            return None
        self._pos += 1
        return value


def parse_args(tokens: list[str], config: BuildConfig) -> ParsedArgs:
    """Apply command-line tokens to a copy of ``config``.

    Args:
        tokens: Raw arguments, without the program name.
        config: Starting configuration. Never modified.

    Returns:
        ParsedArgs holding the updated copy.

    Raises:
        UsageError: For an unknown flag, a stray positional argument or a
            missing flag value.
        ConfigValidationError: For a value rejected by the validator.
    """
    parsed = ParsedArgs(config=config.model_copy(deep=True))
    work = parsed.config
    stream = _TokenStream(list(tokens))

    while stream:
        token = stream.next()
        flag, inline = _split_flag(token)

        if flag in ("--help", "-h"):
            parsed.show_help = True
            break

        if flag in _VALUE_FLAGS:
            value = inline if inline is not None else stream.take_value(flag)
            _apply_value(flag, value, parsed)
        elif flag in _OPTIONAL_VALUE_FLAGS:
            value = inline if inline is not None else stream.take_optional()
            path = Path(value) if value else None
            if flag == "--save-config":
                parsed.saves.append((path, work.model_copy(deep=True)))
            elif load_config(work, path):
                parsed.obs_explicit = True
        elif inline is not None:
            msg = f"Unknown option: {token}"
            raise UsageError(msg)
        elif flag in _CLEAN_FLAGS:
            follow_up = "clean" if stream.peek() == "clean" else None
            if follow_up:
                stream.next()
            work.clean_mode = CleanMode.from_flags(flag, follow_up)
        elif flag == "-w":
            work.clean_build = True
        elif flag == "--debug":
            work.debug = True
        elif flag in ("--interactive", "-i"):
            work.interactive = True
        elif flag in ("--confirm", "-c"):
            work.force_confirm = True
        elif flag in FULLSCREEN_FLAGS:
            parsed.fullscreen = True
        elif flag.startswith("-"):
            msg = f"Unknown option: {token}"
            raise UsageError(msg)
        else:
            msg = f"Unexpected argument: {token}"
            raise UsageError(msg)

    logger.debug(
        "Parsed arguments %s into %s",
        redact_tokens(tokens),
        work.model_dump(exclude={"root_password"}),
    )
    return parsed


def redact_tokens(tokens: list[str]) -> list[str]:
    """Return ``tokens`` with root password values masked for logging."""
    redacted: list[str] = []
    mask_next = False
    for token in tokens:
        if mask_next:
            redacted.append(REDACTED)
            mask_next = False
            continue
        flag, inline = _split_flag(token)
        if flag == "--root-password":
            if inline is None:
                mask_next = True
                redacted.append(token)
            else:
                redacted.append(f"{flag}={REDACTED}")
            continue
        redacted.append(token)
    return redacted


def _apply_value(flag: str, value: str, parsed: ParsedArgs) -> None:
    """Validate and store the value of a value-taking flag."""
    work = parsed.config
    if flag == "--arch":
        work.architecture = _report(validate_architecture(value))
    elif flag in ("--dist", "-d"):
        work.distribution = _report(validate_distribution(value))
    elif flag == "--profile":
        profiles = ProfileSet.parse(_report(validate_profiles(value)))
        work.profiles = profiles
        if OBS_PROFILE in profiles:
            parsed.obs_explicit = True
    elif flag == "--root-password":
        work.set_root_password(value)


def wants_interactive(tokens: list[str], parsed: ParsedArgs) -> bool:
    """Decide whether to run the interactive configurator.

    Interactive mode is used when asked for, when no arguments were given,
    or when the only arguments select fullscreen display.
    """
    if parsed.config.interactive:
        return True
    return all(token in FULLSCREEN_FLAGS for token in tokens)
