"""
.gitignore helpers
==================

After encrypting, the plaintext sources should not be committed. These
helpers find which of them ``.gitignore`` does not list yet and append
them under a comment header.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Final, Iterable, List

from wc_envc.core.envfile import atomic_write_text

logger = logging.getLogger(__name__)

GITIGNORE_HEADER: Final[str] = "# Plain .env files (secrets - do not commit)"


def _read(gitignore: Path) -> str:
    return gitignore.read_text(encoding="utf-8") if gitignore.is_file() else ""


def missing_entries(names: Iterable[str], gitignore: Path) -> List[str]:
    """Names not present as an exact (trimmed) line of ``gitignore``."""
    listed = {line.strip() for line in _read(gitignore).splitlines()}
    missing: List[str] = []
    for name in names:
        if name not in listed and name not in missing:
            missing.append(name)
    return missing


def append_entries(names: Iterable[str], gitignore: Path) -> List[str]:
    """
    Append missing names to ``gitignore`` (created if absent).

    Returns:
        The names actually added
    """
    missing = missing_entries(names, gitignore)
    if not missing:
        return []

    existing = _read(gitignore)
    if existing and not existing.endswith("\n"):
        existing += "\n"
    block = "\n" + GITIGNORE_HEADER + "\n" + "".join(f"{name}\n" for name in missing)
    atomic_write_text(gitignore, existing + block)

    logger.info("Added %d entr(ies) to %s", len(missing), gitignore)
    return missing
