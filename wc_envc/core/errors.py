"""
Error Taxonomy
==============

Every failure the tool reports to an operator derives from ``EnvcError``.

Each error carries a short, specific message (wrong password vs. invalid
format vs. missing file) that is safe to print. Messages never contain
password material or decrypted values.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional


class EnvcError(Exception):
    """Base class for all wc-envc errors."""

    default_message = "Operation failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0])


class OperationCancelled(EnvcError):
    """The operator declined a confirmation or chose to quit."""

    default_message = "Operation cancelled"


class ConfigError(EnvcError):
    """A WC_ENVC_* override could not be applied."""

    default_message = "Invalid configuration"


# ---------------------------------------------------------------------------
# Password errors (fatal to the whole run)
# ---------------------------------------------------------------------------


class PasswordError(EnvcError):
    default_message = "No usable password"


class EmptyPasswordError(PasswordError):
    default_message = "Password cannot be empty"


class PasswordMismatchError(PasswordError):
    default_message = "Passwords do not match"


# ---------------------------------------------------------------------------
# File access errors
# ---------------------------------------------------------------------------


class FileAccessError(EnvcError):
    """Base class for errors tied to a specific path."""

    def __init__(self, path: Path | str, message: Optional[str] = None) -> None:
        self.path = Path(path)
        super().__init__(message or self._describe(self.path))

    def _describe(self, path: Path) -> str:
        return f"Cannot access {path}"


class InputNotFoundError(FileAccessError):
    def _describe(self, path: Path) -> str:
        return f"File not found: {path}"


class OutputExistsError(FileAccessError):
    def _describe(self, path: Path) -> str:
        return f"Output file {path} already exists (use --yes to overwrite)"


class UnreadableFileError(FileAccessError):
    def _describe(self, path: Path) -> str:
        return f"File {path} is not valid UTF-8 text"


# ---------------------------------------------------------------------------
# Decryption errors
# ---------------------------------------------------------------------------


class DecryptError(EnvcError):
    default_message = "Decryption failed"


class InvalidEncodingError(DecryptError):
    default_message = "Value is not valid Base64"


class WrongPasswordOrCorruptError(DecryptError):
    default_message = "Wrong password or corrupted encrypted data"


# ---------------------------------------------------------------------------
# Pre-flight validation errors
# ---------------------------------------------------------------------------


class ValidationError(EnvcError):
    default_message = "File failed validation"


class NoVariablesError(ValidationError):
    default_message = "File contains no environment variables"


class AppearsUnencryptedError(ValidationError):
    default_message = "This file appears to be unencrypted"


class NotEncryptedOrCorruptError(ValidationError):
    default_message = "File is not encrypted or is corrupted"

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self.keys = tuple(keys)
        message = None
        if self.keys:
            shown = ", ".join(self.keys[:5])
            if len(self.keys) > 5:
                shown += f" (+{len(self.keys) - 5} more)"
            message = f"File is not encrypted or is corrupted (invalid values: {shown})"
        super().__init__(message)


class AppearsAlreadyEncryptedError(ValidationError):
    default_message = "File appears to be already encrypted with this password"
