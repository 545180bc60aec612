"""Terminal prompter backed by Typer's prompt helpers."""

from collections.abc import Callable
from typing import TypeVar

import typer

T = TypeVar("T")


def _interruptible(prompt: Callable[[], T]) -> T:
    try:
        return prompt()
    except typer.Abort as e:
        raise KeyboardInterrupt from e


class TyperPrompter:
    """Reads answers from the terminal.

    Ctrl-C or end of input at any prompt raises KeyboardInterrupt, so
    callers handle it like any other interrupt.
    """

    def ask(self, text: str, default: str = "") -> str:
        return _interruptible(
            lambda: typer.prompt(text, default=default, show_default=bool(default))
        )

    def ask_secret(self, text: str) -> str:
        return _interruptible(
            lambda: typer.prompt(text, default="", show_default=False, hide_input=True)
        )

    def confirm(self, text: str, default: bool = False) -> bool:
        return _interruptible(lambda: typer.confirm(text, default=default))
