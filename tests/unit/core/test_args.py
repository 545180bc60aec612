"""Unit tests for command-line parsing."""

from pathlib import Path

import pytest
from particlectl.core.args import REDACTED, parse_args, redact_tokens, wants_interactive
from particlectl.core.errors import ConfigValidationError, UsageError
from particlectl.models.catalog import Axis
from particlectl.models.config import BuildConfig, CleanMode
from particlectl.models.profiles import ProfileSet


class TestParseArgs:
    """Tests for parse_args."""

    def test_full_non_interactive_line(self, config: BuildConfig) -> None:
        """Alias, separate value and list flags combine."""
        parsed = parse_args(
            ["--arch=amd64", "--dist", "fedora", "--profile", "desktop,gnome"],
            config,
        )
        assert parsed.config.architecture == "x86_64"
        assert parsed.config.distribution == "fedora"
        assert list(parsed.config.profiles) == ["desktop", "gnome"]

    def test_short_dist_forms(self, config: BuildConfig) -> None:
        """-d accepts both a separate and an inline value."""
        assert parse_args(["-d", "arch"], config).config.distribution == "arch"
        assert parse_args(["-d=debian"], config).config.distribution == "debian"

    def test_caller_config_untouched(self, config: BuildConfig) -> None:
        """Parsing works on a copy."""
        parse_args(["--dist", "arch", "--profile", "kde"], config)
        assert config.distribution == "fedora"
        assert config.profiles == ProfileSet()

    def test_caller_config_untouched_on_failure(self, config: BuildConfig) -> None:
        """A failing parse leaves the input alone."""
        with pytest.raises(ConfigValidationError):
            parse_args(["--dist", "arch", "--profile", "bogus"], config)
        assert config.distribution == "fedora"

    def test_invalid_profile_rejected(self, config: BuildConfig) -> None:
        """Unknown profiles raise with the profile catalog attached."""
        with pytest.raises(ConfigValidationError) as exc_info:
            parse_args(["--profile", "bogus"], config)
        assert exc_info.value.result.axis == Axis.PROFILE
        assert exc_info.value.result.invalid == ("bogus",)

    def test_invalid_distribution_rejected(self, config: BuildConfig) -> None:
        """Unknown distributions are fatal."""
        with pytest.raises(ConfigValidationError):
            parse_args(["--dist=gentoo"], config)

    def test_unlisted_architecture_accepted(self, config: BuildConfig) -> None:
        """Architectures mkosi may know are passed through."""
        assert parse_args(["--arch", "riscv64"], config).config.architecture == "riscv64"

    def test_missing_value_before_flag(self, config: BuildConfig) -> None:
        """A value flag followed by another flag is a usage error."""
        with pytest.raises(UsageError, match="Missing argument for --arch"):
            parse_args(["--arch", "--debug"], config)

    def test_missing_value_at_end(self, config: BuildConfig) -> None:
        """A value flag at the end is a usage error."""
        with pytest.raises(UsageError, match="Missing argument for -d"):
            parse_args(["-d"], config)

    def test_unknown_option(self, config: BuildConfig) -> None:
        """Unknown flags are usage errors."""
        with pytest.raises(UsageError, match="Unknown option: --bogus"):
            parse_args(["--bogus"], config)

    def test_unknown_inline_option(self, config: BuildConfig) -> None:
        """Inline values on boolean flags are usage errors."""
        with pytest.raises(UsageError, match="Unknown option: --debug=yes"):
            parse_args(["--debug=yes"], config)

    def test_unexpected_positional(self, config: BuildConfig) -> None:
        """Positional arguments are usage errors."""
        with pytest.raises(UsageError, match="Unexpected argument: build"):
            parse_args(["build"], config)

    @pytest.mark.parametrize(
        ("tokens", "mode"),
        [
            (["-f"], CleanMode.CACHE_ONLY),
            (["-ff"], CleanMode.CACHE_AND_PACKAGES),
            (["-f", "clean"], CleanMode.CACHE_ONLY_THEN_CLEAN),
            (["-ff", "clean"], CleanMode.FULL_CLEAN),
        ],
    )
    def test_clean_flags(self, config: BuildConfig, tokens: list[str], mode: CleanMode) -> None:
        """-f and -ff consume an optional clean token."""
        assert parse_args(tokens, config).config.clean_mode == mode

    def test_clean_token_only_after_clean_flag(self, config: BuildConfig) -> None:
        """A bare clean token is a stray argument."""
        with pytest.raises(UsageError, match="Unexpected argument: clean"):
            parse_args(["-w", "clean"], config)

    def test_boolean_flags(self, config: BuildConfig) -> None:
        """Boolean flags set their fields."""
        parsed = parse_args(["--debug", "-w", "-c", "-i", "-fs"], config)
        assert parsed.config.debug
        assert parsed.config.clean_build
        assert parsed.config.force_confirm
        assert parsed.config.interactive
        assert parsed.fullscreen

    def test_root_password(self, config: BuildConfig) -> None:
        """--root-password stores a secret."""
        parsed = parse_args(["--root-password=correct-horse"], config)
        assert parsed.config.root_password is not None
        assert parsed.config.root_password.get_secret_value() == "correct-horse"

    def test_last_occurrence_wins(self, config: BuildConfig) -> None:
        """Repeated flags keep the last value."""
        parsed = parse_args(["-d", "arch", "--dist", "debian", "-ff", "-f"], config)
        assert parsed.config.distribution == "debian"
        assert parsed.config.clean_mode == CleanMode.CACHE_ONLY

    def test_help_stops_scanning(self, config: BuildConfig) -> None:
        """Nothing after --help is parsed."""
        parsed = parse_args(["--debug", "--help", "--bogus"], config)
        assert parsed.show_help
        assert parsed.config.debug

    def test_obs_explicit_from_profile(self, config: BuildConfig) -> None:
        """Naming obs in --profile marks the choice as explicit."""
        assert parse_args(["--profile", "desktop,obs"], config).obs_explicit
        assert not parse_args(["--profile", "desktop"], config).obs_explicit

    def test_save_config_snapshot_at_position(self, config: BuildConfig) -> None:
        """--save-config records the state seen so far."""
        parsed = parse_args(
            ["-d", "arch", "--save-config", "out.conf", "-d", "debian"],
            config,
        )
        assert len(parsed.saves) == 1
        path, snapshot = parsed.saves[0]
        assert path == Path("out.conf")
        assert snapshot.distribution == "arch"
        assert parsed.config.distribution == "debian"

    def test_save_config_default_path(self, config: BuildConfig) -> None:
        """Without a file --save-config uses the default location."""
        parsed = parse_args(["--save-config", "--debug"], config)
        assert parsed.saves[0][0] is None
        assert parsed.config.debug

    def test_save_config_inline_path(self, config: BuildConfig) -> None:
        """--save-config=FILE names the file inline."""
        parsed = parse_args(["--save-config=my.conf"], config)
        assert parsed.saves[0][0] == Path("my.conf")

    def test_load_config_then_override(self, config: BuildConfig, tmp_path: Path) -> None:
        """Flags after --load-config override loaded values."""
        saved = tmp_path / "saved.conf"
        saved.write_text('DISTRIBUTION="arch"\nPROFILE="desktop,kde"\nDEBUG_MODE=true\n')

        parsed = parse_args(["--load-config", str(saved), "-d", "debian"], config)

        assert parsed.config.distribution == "debian"
        assert parsed.config.profiles.joined() == "desktop,kde"
        assert parsed.config.debug
        assert parsed.obs_explicit

    def test_load_missing_config_warns(self, config: BuildConfig, tmp_path: Path) -> None:
        """A missing config file is not fatal."""
        parsed = parse_args(["--load-config", str(tmp_path / "absent.conf")], config)
        assert parsed.config.distribution == "fedora"
        assert not parsed.obs_explicit


class TestWantsInteractive:
    """Tests for the interactive mode decision."""

    def test_no_arguments(self, config: BuildConfig) -> None:
        """No arguments means interactive."""
        assert wants_interactive([], parse_args([], config))

    def test_only_fullscreen(self, config: BuildConfig) -> None:
        """Fullscreen alone still means interactive."""
        assert wants_interactive(["-fs"], parse_args(["-fs"], config))

    def test_explicit_flag(self, config: BuildConfig) -> None:
        """--interactive forces interactive mode."""
        tokens = ["-d", "arch", "-i"]
        assert wants_interactive(tokens, parse_args(tokens, config))

    def test_other_arguments(self, config: BuildConfig) -> None:
        """Any build option means non-interactive."""
        tokens = ["-fs", "--debug"]
        assert not wants_interactive(tokens, parse_args(tokens, config))


class TestRedactTokens:
    """Tests for masking passwords before logging."""

    def test_separate_value(self) -> None:
        """The token after --root-password is masked."""
        assert redact_tokens(["-d", "arch", "--root-password", "hunter22", "-w"]) == [
            "-d",
            "arch",
            "--root-password",
            REDACTED,
            "-w",
        ]

    def test_inline_value(self) -> None:
        """Inline values are masked in place."""
        assert redact_tokens(["--root-password=hunter22"]) == [f"--root-password={REDACTED}"]

    def test_nothing_to_mask(self) -> None:
        """Other tokens pass through unchanged."""
        assert redact_tokens(["--profile", "desktop"]) == ["--profile", "desktop"]
