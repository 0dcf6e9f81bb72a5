"""
Path Utilities
==============

Finding candidate env files and naming their outputs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Final, List

from wc_envc.core.crypto.engine import Direction
from wc_envc.core.envfile import EnvFile
from wc_envc.core.errors import EnvcError

# Suffixes that mark an encrypted env file
ENCRYPTED_SUFFIXES: Final[tuple[str, ...]] = (".enc", ".encrypted")

DEFAULT_PLAIN_NAME: Final[str] = ".env"
DEFAULT_ENCRYPTED_NAME: Final[str] = ".env.enc"


def is_plain_env_file(filename: str) -> bool:
    """``.env``, ``.env.local``, ... but not ``.env.enc``."""
    return filename.startswith(".env") and not filename.endswith(ENCRYPTED_SUFFIXES)


def is_encrypted_env_file(filename: str) -> bool:
    """``.env.enc``, ``.env.local.enc``, ``.env.encrypted``, ..."""
    return ".env" in filename and filename.endswith(ENCRYPTED_SUFFIXES)


def find_env_files(directory: Path, direction: Direction) -> List[Path]:
    """
    List candidate files directly inside ``directory``.

    Encrypt looks for plain env files, decrypt for encrypted ones.
    Sorted by name for a stable menu order.
    """
    matches = is_plain_env_file if direction is Direction.ENCRYPT else is_encrypted_env_file
    try:
        entries = list(directory.iterdir())
    except OSError:
        return []
    return sorted(p for p in entries if p.is_file() and matches(p.name))


def default_input_name(direction: Direction) -> Path:
    return Path(DEFAULT_PLAIN_NAME if direction is Direction.ENCRYPT else DEFAULT_ENCRYPTED_NAME)


def default_output_name(input_path: Path, direction: Direction) -> Path:
    """
    ``.env`` -> ``.env.enc`` when encrypting; ``.env.local.enc`` ->
    ``.env.local`` when decrypting.
    """
    if direction is Direction.ENCRYPT:
        return input_path.with_name(input_path.name + ".enc")

    name = input_path.name
    for suffix in ENCRYPTED_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return input_path.with_name(name[: -len(suffix)])
    raise EnvcError(
        f"Cannot derive an output name for {input_path}; use -o/--output"
    )


def count_variables(path: Path) -> int:
    """Number of assignment lines, or 0 if the file cannot be read."""
    try:
        return EnvFile.read(path).variable_count
    except (EnvcError, OSError):
        return 0
