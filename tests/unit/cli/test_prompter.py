"""Unit tests for the terminal prompter."""

from unittest.mock import MagicMock, patch

import pytest
import typer
from particlectl.cli.prompter import TyperPrompter


class TestTyperPrompter:
    """Tests for TyperPrompter."""

    @patch("particlectl.cli.prompter.typer.prompt", return_value="arch")
    def test_ask(self, mock_prompt: MagicMock) -> None:
        """ask shows the default only when there is one."""
        assert TyperPrompter().ask("Enter distribution", "fedora") == "arch"
        mock_prompt.assert_called_once_with(
            "Enter distribution", default="fedora", show_default=True
        )

    @patch("particlectl.cli.prompter.typer.prompt", return_value="")
    def test_ask_without_default(self, mock_prompt: MagicMock) -> None:
        """An empty default is accepted but not shown."""
        TyperPrompter().ask("Enter profile")
        assert mock_prompt.call_args.kwargs == {"default": "", "show_default": False}

    @patch("particlectl.cli.prompter.typer.prompt", return_value="secret")
    def test_ask_secret_hides_input(self, mock_prompt: MagicMock) -> None:
        """Secrets are read without echo."""
        assert TyperPrompter().ask_secret("Enter a root password") == "secret"
        assert mock_prompt.call_args.kwargs["hide_input"] is True

    @patch("particlectl.cli.prompter.typer.confirm", return_value=True)
    def test_confirm(self, mock_confirm: MagicMock) -> None:
        """confirm passes the default through."""
        assert TyperPrompter().confirm("Proceed?", default=True)
        mock_confirm.assert_called_once_with("Proceed?", default=True)

    @patch("particlectl.cli.prompter.typer.confirm", side_effect=typer.Abort())
    def test_abort_becomes_interrupt(self, mock_confirm: MagicMock) -> None:
        """Ctrl-C or end of input at a prompt raises KeyboardInterrupt."""
        with pytest.raises(KeyboardInterrupt):
            TyperPrompter().confirm("Proceed?")

    @patch("particlectl.cli.prompter.typer.prompt", side_effect=typer.Abort())
    def test_abort_at_secret_prompt(self, mock_prompt: MagicMock) -> None:
        """Secret prompts convert an abort the same way."""
        with pytest.raises(KeyboardInterrupt):
            TyperPrompter().ask_secret("Enter a root password")
