"""Unit tests for console formatting helpers."""

import io

import pytest
from particlectl.core.theme import get_theme
from particlectl.models.catalog import DISTRIBUTIONS, OptionEntry
from particlectl.models.config import BuildConfig, CleanMode
from particlectl.utils.formatting import (
    create_config_table,
    format_config_rows,
    format_option_line,
)
from rich.console import Console


@pytest.fixture
def plain_console() -> Console:
    """Console writing uncolored text to a buffer."""
    return Console(file=io.StringIO(), theme=get_theme(), color_system=None, width=100)


class TestFormatOptionLine:
    """Tests for format_option_line."""

    def test_plain_entry(self) -> None:
        """Entries render as key - description."""
        line = format_option_line(OptionEntry("fedora", "Fedora Linux"))
        assert line == "  [option.key]fedora[/] - Fedora Linux"

    def test_markers(self, plain_console: Console) -> None:
        """Selected and default markers are appended in that order."""
        plain_console.print(format_option_line(DISTRIBUTIONS[0], selected=True, default=True))
        output = plain_console.file.getvalue()  # type: ignore[attr-defined]
        assert output.rstrip() == "  fedora - Fedora Linux (selected) (default)"

    def test_markup_in_key_escaped(self, plain_console: Console) -> None:
        """Bracketed keys are printed literally."""
        plain_console.print(format_option_line(OptionEntry("[none]", "No profile")))
        assert "[none] - No profile" in plain_console.file.getvalue()  # type: ignore[attr-defined]


class TestConfigSummary:
    """Tests for the configuration summary rows."""

    def test_defaults(self, config: BuildConfig) -> None:
        """Empty values get placeholders."""
        rows = dict(format_config_rows(config))
        assert rows["Architecture"] == "x86_64"
        assert rows["Profile"] == "[None]"
        assert rows["OBS Packages"] == "Disabled"
        assert rows["Root Password"] == "[Not Set]"
        assert rows["Cache Cleanup"] == "Clean image cache only [-f]"

    def test_password_masked(self, config: BuildConfig, plain_console: Console) -> None:
        """The password itself never appears in the summary."""
        config.set_root_password("s3cret-value")
        config.profiles = "desktop,obs"
        config.clean_mode = CleanMode.NONE

        plain_console.print(create_config_table(config))
        output = plain_console.file.getvalue()  # type: ignore[attr-defined]

        assert "s3cret-value" not in output
        assert "[Set]" in output
        assert "desktop,obs" in output
        assert "Enabled" in output
        assert "No cleaning option" in output
