"""
Operator I/O Boundary
=====================

Everything the workflow says to, or asks of, the operator goes through a
``Prompter``. The terminal implementation renders colored messages and
reads keystrokes; tests substitute a scripted one. The session state
machine never touches stdin/stdout directly.
"""

from __future__ import annotations

import getpass
import sys
from typing import List, Protocol, Sequence, TextIO

from wc_envc.core.errors import OperationCancelled


class Prompter(Protocol):
    """Operator I/O used by the resolver, the batch and the session."""

    @property
    def interactive(self) -> bool: ...

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def confirm(self, message: str, default: bool = False) -> bool: ...

    def secret(self, message: str) -> str: ...

    def choose(self, message: str, options: Sequence[str], default: int = 0) -> int: ...

    def choose_many(self, message: str, options: Sequence[str]) -> List[int]: ...


# ---------------------------------------------------------------------------
# Color output helpers
# ---------------------------------------------------------------------------


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def colored(text: str, color: str, enabled: bool = True) -> str:
    """Return colored text for terminal output."""
    return f"{color}{text}{Colors.RESET}" if enabled else text


class TerminalPrompter:
    """
    Prompter backed by the process's terminal.

    Passwords are read with ``getpass`` (no echo). When stdin is not a
    terminal, confirmations fall back to their default and any attempt
    to read a choice or a password raises OperationCancelled.
    """

    def __init__(
        self,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        color: bool | None = None,
    ) -> None:
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._stderr = stderr or sys.stderr
        self._color = self._stdout.isatty() if color is None else color

    @property
    def interactive(self) -> bool:
        return self._stdin.isatty()

    # -- messages ----------------------------------------------------------

    def info(self, message: str) -> None:
        print(colored(f"ℹ {message}", Colors.CYAN, self._color), file=self._stdout)

    def success(self, message: str) -> None:
        print(colored(f"✓ {message}", Colors.GREEN, self._color), file=self._stdout)

    def warning(self, message: str) -> None:
        print(colored(f"⚠ Warning: {message}", Colors.YELLOW, self._color), file=self._stdout)

    def error(self, message: str) -> None:
        print(colored(f"✗ Error: {message}", Colors.RED, self._color), file=self._stderr)

    # -- questions ---------------------------------------------------------

    def _ask(self, prompt: str) -> str:
        if not self.interactive:
            raise OperationCancelled("Cannot prompt: no terminal attached")
        self._stdout.write(prompt)
        self._stdout.flush()
        line = self._stdin.readline()
        if not line:
            raise OperationCancelled()
        return line.strip()

    def confirm(self, message: str, default: bool = False) -> bool:
        if not self.interactive:
            return default
        hint = "[Y/n]" if default else "[y/N]"
        while True:
            answer = self._ask(f"{message} {hint} ").lower()
            if not answer:
                return default
            if answer in ("y", "yes"):
                return True
            if answer in ("n", "no"):
                return False
            self.warning("Please answer y or n")

    def secret(self, message: str) -> str:
        if not self.interactive:
            raise OperationCancelled("Cannot prompt for a password: no terminal attached")
        try:
            return getpass.getpass(f"{message}: ", stream=self._stdout)
        except EOFError as e:
            raise OperationCancelled() from e

    def choose(self, message: str, options: Sequence[str], default: int = 0) -> int:
        for number, option in enumerate(options, start=1):
            print(f"  {number}) {option}", file=self._stdout)
        while True:
            answer = self._ask(f"{message} [{default + 1}]: ")
            if not answer:
                return default
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return int(answer) - 1
            self.warning(f"Enter a number between 1 and {len(options)}")

    def choose_many(self, message: str, options: Sequence[str]) -> List[int]:
        for number, option in enumerate(options, start=1):
            print(f"  {number}) {option}", file=self._stdout)
        while True:
            answer = self._ask(f"{message} (e.g. 1,3): ")
            picks = answer.replace(",", " ").split()
            if all(p.isdigit() and 1 <= int(p) <= len(options) for p in picks):
                # Menu order, duplicates dropped
                return sorted({int(p) - 1 for p in picks})
            self.warning(f"Enter numbers between 1 and {len(options)}")
