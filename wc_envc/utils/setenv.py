"""
Persistent Environment Variables
================================

Exports the assignments of a plain env file into the user's persistent
environment:

- Windows: ``setx KEY VALUE`` (user environment, new terminals only)
- Others: ``export KEY="VALUE"`` appended to ``~/.zshrc`` when the login
  shell is zsh, ``~/.bashrc`` otherwise
"""

from __future__ import annotations

import logging
import os
import platform
import subprocess
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Tuple

from wc_envc.core.envfile import EnvFile
from wc_envc.core.errors import EnvcError, NoVariablesError, OperationCancelled
from wc_envc.workflow.prompts import Prompter

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 20


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def parse_variables(env_file: EnvFile) -> List[Tuple[str, str]]:
    """(key, value) pairs with values trimmed and one pair of quotes removed."""
    return [(a.key, _unquote(a.value.strip())) for a in env_file.assignments]


def shell_config_path(environ: Mapping[str, str]) -> Path:
    home = environ.get("HOME")
    if not home:
        raise EnvcError("HOME is not set; cannot locate the shell config file")
    name = ".zshrc" if "zsh" in environ.get("SHELL", "") else ".bashrc"
    return Path(home) / name


def _shell_quote(value: str) -> str:
    escaped = value
    for char in ("\\", '"', "$", "`"):
        escaped = escaped.replace(char, "\\" + char)
    return f'"{escaped}"'


class EnvironmentExporter:
    """Persist variables for the current platform."""

    def __init__(
        self,
        system: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self._system = (system or platform.system()).lower()
        self._environ = os.environ if environ is None else environ
        self._runner = runner

    @property
    def target_description(self) -> str:
        if self._system == "windows":
            return "User Environment Variables (requires restart to take effect)"
        return str(shell_config_path(self._environ))

    def persist(self, key: str, value: str) -> None:
        """
        Raises:
            EnvcError: If the variable could not be persisted
        """
        if self._system == "windows":
            result = self._runner(["setx", key, value], capture_output=True, text=True, check=False)
            if result.returncode != 0:
                raise EnvcError(f"Failed to set {key}: {result.stderr.strip()}")
            return

        config_file = shell_config_path(self._environ)
        try:
            with config_file.open("a", encoding="utf-8") as fh:
                fh.write(f"export {key}={_shell_quote(value)}\n")
        except OSError as e:
            raise EnvcError(f"Failed to set {key}: {e.strerror or e}") from e


def export_file(
    path: Path,
    prompter: Prompter,
    assume_yes: bool = False,
    exporter: Optional[EnvironmentExporter] = None,
) -> int:
    """
    Persist every variable of ``path``.

    Returns:
        Exit status: 0 when all variables were set, 1 otherwise

    Raises:
        InputNotFoundError, NoVariablesError, OperationCancelled
    """
    exporter = exporter or EnvironmentExporter()
    variables = parse_variables(EnvFile.read(path))
    if not variables:
        raise NoVariablesError(f"No environment variables found in {path}")

    prompter.info(f"Will set {len(variables)} environment variable(s):")
    for key, value in variables:
        preview = value if len(value) <= PREVIEW_LENGTH else value[:PREVIEW_LENGTH] + "..."
        prompter.info(f"  • {key} = {preview}")

    if not assume_yes:
        prompter.info(f"Variables will be added to: {exporter.target_description}")
        if not prompter.confirm("Proceed?", default=True):
            raise OperationCancelled()

    failed: List[str] = []
    for key, value in variables:
        try:
            exporter.persist(key, value)
        except EnvcError as e:
            prompter.error(e.message)
            failed.append(key)
        else:
            prompter.success(key)

    set_count = len(variables) - len(failed)
    if failed:
        prompter.warning(f"Set {set_count} of {len(variables)} variable(s). {len(failed)} failed.")
        return 1

    prompter.success(f"Done! Set {set_count} variable(s) permanently")
    logger.info("Exported %d variable(s) from %s", set_count, path)
    return 0
