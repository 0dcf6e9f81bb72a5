"""Shared fixtures for the wc-envc test suite."""

from __future__ import annotations

import logging
from typing import List, Sequence

import pytest

from wc_envc.core.config import EnvcConfig, KdfConfig
from wc_envc.core.crypto import EncryptionEngine
from wc_envc.core.memory import Secret
from wc_envc.core.errors import OperationCancelled

# Argon2's minimum cost keeps the suite fast
FAST_KDF = KdfConfig(time_cost=1, memory_cost=8, parallelism=1)

PASSWORD = "correct horse battery staple"


class ScriptedPrompter:
    """
    Prompter that answers from queues and records everything it is told.

    An exhausted queue behaves like a closed terminal.
    """

    def __init__(
        self,
        interactive: bool = True,
        confirms: Sequence[bool] = (),
        secrets: Sequence[str] = (),
        choices: Sequence[int] = (),
        multi_choices: Sequence[List[int]] = (),
    ) -> None:
        self._interactive = interactive
        self.confirms = list(confirms)
        self.secrets = list(secrets)
        self.choices = list(choices)
        self.multi_choices = list(multi_choices)
        self.messages: List[tuple[str, str]] = []
        self.questions: List[str] = []

    @property
    def interactive(self) -> bool:
        return self._interactive

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def confirm(self, message: str, default: bool = False) -> bool:
        self.questions.append(message)
        if not self._interactive:
            return default
        if not self.confirms:
            raise OperationCancelled()
        return self.confirms.pop(0)

    def secret(self, message: str) -> str:
        self.questions.append(message)
        if not self.secrets:
            raise OperationCancelled()
        return self.secrets.pop(0)

    def choose(self, message: str, options: Sequence[str], default: int = 0) -> int:
        self.questions.append(message)
        if not self.choices:
            raise OperationCancelled()
        return self.choices.pop(0)

    def choose_many(self, message: str, options: Sequence[str]) -> List[int]:
        self.questions.append(message)
        if not self.multi_choices:
            raise OperationCancelled()
        return self.multi_choices.pop(0)

    def said(self, kind: str) -> List[str]:
        return [text for level, text in self.messages if level == kind]


class FakeStdin:
    """Minimal stand-in for sys.stdin."""

    def __init__(self, text: str = "", tty: bool = False) -> None:
        self._lines = text.splitlines(keepends=True)
        self._tty = tty

    def isatty(self) -> bool:
        return self._tty

    def readline(self) -> str:
        return self._lines.pop(0) if self._lines else ""


@pytest.fixture(autouse=True)
def fast_config(monkeypatch):
    """Process-wide config with a cheap KDF and no WC_ENVC_* leakage."""
    monkeypatch.delenv("WC_ENVC_PASSWORD", raising=False)
    EnvcConfig.reset_instance()
    EnvcConfig._instance = EnvcConfig(kdf=FAST_KDF)
    yield EnvcConfig._instance
    EnvcConfig.reset_instance()


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    before, level = set(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def engine():
    return EncryptionEngine(FAST_KDF)


@pytest.fixture
def key(engine):
    with engine.derive_key(Secret(PASSWORD)) as derived:
        yield derived


@pytest.fixture
def other_key(engine):
    with engine.derive_key(Secret("a different password")) as derived:
        yield derived


@pytest.fixture
def prompter():
    return ScriptedPrompter()
