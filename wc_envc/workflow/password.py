"""
Password Resolution
===================

Obtains the single password used for a whole invocation.

Sources, highest priority first:
    1. explicit argument (``-p/--password``)
    2. the ``WC_ENVC_PASSWORD`` environment variable (empty counts as unset)
    3. one line piped on stdin, when stdin is not a terminal
    4. an interactive masked prompt (entered twice when encrypting)

The password is never logged or echoed. Only its source is.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Mapping, Optional, TextIO

from wc_envc.core.config import EnvcConfig
from wc_envc.core.crypto.engine import Direction
from wc_envc.core.errors import EmptyPasswordError, PasswordError, PasswordMismatchError
from wc_envc.core.memory import Secret
from wc_envc.workflow.prompts import Prompter

logger = logging.getLogger(__name__)


class PasswordResolver:
    """
    Resolve the invocation password from the highest-priority source.

    Usage:
        resolver = PasswordResolver(prompter)
        with resolver.resolve(Direction.ENCRYPT) as secret:
            ...
    """

    def __init__(
        self,
        prompter: Prompter,
        config: Optional[EnvcConfig] = None,
        environ: Optional[Mapping[str, str]] = None,
        stdin: Optional[TextIO] = None,
    ) -> None:
        self._prompter = prompter
        self._config = config or EnvcConfig.get_instance()
        self._environ = os.environ if environ is None else environ
        self._stdin = stdin or sys.stdin

    def resolve(self, direction: Direction, explicit: Optional[str] = None) -> Secret:
        """
        Return the password as a Secret owned by the caller.

        Args:
            direction: Encrypt asks for confirmation at the prompt
            explicit: Password given on the command line, if any

        Raises:
            EmptyPasswordError: Empty explicit or piped password, or the
                prompt received only empty entries
            PasswordMismatchError: Encrypt confirmation never matched
        """
        if explicit is not None:
            if not explicit:
                raise EmptyPasswordError()
            logger.info("Using password from command-line argument")
            return Secret(explicit, source="argument")

        env_var = self._config.app.password_env_var
        from_env = self._environ.get(env_var)
        if from_env:
            logger.info("Using password from environment variable %s", env_var)
            self._prompter.info(f"Using password from {env_var}")
            return Secret(from_env, source="environment")

        if not self._stdin.isatty():
            return self._read_piped()

        return self._prompt(direction)

    def _read_piped(self) -> Secret:
        line = self._stdin.readline()
        # Only the line terminator is removed; spaces are part of the password
        if line.endswith("\r\n"):
            line = line[:-2]
        elif line.endswith(("\n", "\r")):
            line = line[:-1]
        if not line:
            raise EmptyPasswordError("No password provided on standard input")
        logger.info("Using password from standard input")
        return Secret(line, source="stdin")

    def _prompt(self, direction: Direction) -> Secret:
        attempts = self._config.prompts.max_attempts
        last_error: PasswordError = EmptyPasswordError()
        label = "encryption" if direction is Direction.ENCRYPT else "decryption"

        for attempt in range(1, attempts + 1):
            entered = self._prompter.secret(f"Enter {label} password")
            if not entered:
                last_error = EmptyPasswordError()
                self._prompter.error(last_error.message)
                continue

            secret = Secret(entered, source="prompt")
            if direction is Direction.ENCRYPT:
                with Secret(self._prompter.secret("Confirm password"), source="prompt") as confirmation:
                    matched = secret.matches(confirmation)
                if not matched:
                    secret.wipe()
                    last_error = PasswordMismatchError()
                    self._prompter.error("Passwords do not match, please try again")
                    continue

            logger.info("Using password from interactive prompt (attempt %d)", attempt)
            return secret

        logger.warning("No valid password after %d attempt(s)", attempts)
        raise last_error
