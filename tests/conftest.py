"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections import deque
from collections.abc import Iterable
from pathlib import Path

import pytest
from particlectl.models.config import BuildConfig


class ScriptedPrompter:
    """Prompter that replays a fixed list of answers.

    ``ask`` and ``ask_secret`` consume strings, ``confirm`` consumes
    booleans. A missing answer raises KeyboardInterrupt, like a user
    pressing Ctrl-C at the prompt.
    """

    def __init__(
        self,
        answers: Iterable[str] = (),
        confirms: Iterable[bool] = (),
        secrets: Iterable[str] = (),
    ) -> None:
        self.answers = deque(answers)
        self.confirms = deque(confirms)
        self.secrets = deque(secrets)
        self.questions: list[str] = []

    def ask(self, text: str, default: str = "") -> str:
        self.questions.append(text)
        if not self.answers:
            raise KeyboardInterrupt
        return self.answers.popleft()

    def ask_secret(self, text: str) -> str:
        self.questions.append(text)
        if not self.secrets:
            raise KeyboardInterrupt
        return self.secrets.popleft()

    def confirm(self, text: str, default: bool = False) -> bool:
        self.questions.append(text)
        if not self.confirms:
            raise KeyboardInterrupt
        return self.confirms.popleft()


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Project directory redirected to a temporary path."""
    directory = tmp_path / "project"
    directory.mkdir()
    monkeypatch.setenv("PARTICLECTL_PROJECT_DIR", str(directory))
    return directory


@pytest.fixture
def config() -> BuildConfig:
    """Build configuration with a fixed host architecture."""
    return BuildConfig(architecture="x86_64")


@pytest.fixture
def sample_build_log() -> str:
    """Excerpt of a failed mkosi build log."""
    return """‣ Building default image
‣  Installing Fedora Linux
Error: Failed to download metadata for repo 'fedora'
Curl error (6): Could not resolve host: mirrors.fedoraproject.org
‣ Build failed"""


@pytest.fixture
def prompter_factory() -> type[ScriptedPrompter]:
    """Factory for prompters replaying scripted answers."""
    return ScriptedPrompter
