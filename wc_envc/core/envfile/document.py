"""
Env File Document
=================

Reads an env file into ordered, classified lines and writes it back.

Byte fidelity:
- Files are read as UTF-8 with newline translation disabled, so each
  line keeps its own terminator (``\\n``, ``\\r\\n``, ``\\r`` or none
  for an unterminated last line) and gets it back on output.
- A leading UTF-8 byte order mark is set aside before classification,
  so the first assignment is recognized, and written back on output.
- Output goes to a temporary file next to the destination, is fsynced,
  then renamed over the destination with ``os.replace``. The destination
  is never observable half-written, and an interrupt leaves it untouched.
"""

from __future__ import annotations

import io
import logging
import os
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Sequence

from wc_envc.core.envfile.lines import Assignment, Line, LineCodec
from wc_envc.core.errors import InputNotFoundError, UnreadableFileError

logger = logging.getLogger(__name__)

BOM = "\ufeff"


def _split_terminator(line: str) -> tuple[str, str]:
    if line.endswith("\r\n"):
        return line[:-2], "\r\n"
    if line.endswith(("\n", "\r")):
        return line[:-1], line[-1]
    return line, ""


@dataclass(frozen=True)
class EnvFile:
    """
    A file path plus its ordered lines.

    ``endings[i]`` is the terminator that followed ``lines[i]``.
    """

    path: Path
    lines: List[Line]
    endings: List[str]
    bom: bool = False

    @classmethod
    def parse(cls, text: str, path: Path | str = "<memory>") -> EnvFile:
        bom = text.startswith(BOM)
        if bom:
            text = text[len(BOM):]

        lines: List[Line] = []
        endings: List[str] = []
        for chunk in io.StringIO(text, newline=""):
            body, ending = _split_terminator(chunk)
            lines.append(LineCodec.classify(body))
            endings.append(ending)
        return cls(path=Path(path), lines=lines, endings=endings, bom=bom)

    @classmethod
    def read(cls, path: Path | str) -> EnvFile:
        """
        Read and classify a file.

        Raises:
            InputNotFoundError: If the path does not exist or is not a file
            UnreadableFileError: If the content is not UTF-8 text
        """
        path = Path(path)
        if not path.is_file():
            raise InputNotFoundError(path)

        try:
            with path.open("r", encoding="utf-8", newline="") as fh:
                text = fh.read()
        except UnicodeDecodeError as e:
            raise UnreadableFileError(path) from e

        return cls.parse(text, path)

    def with_lines(self, lines: Sequence[Line]) -> EnvFile:
        """Return a copy with replaced lines (same count, same terminators)."""
        if len(lines) != len(self.lines):
            raise ValueError("Line count must be preserved")
        return EnvFile(path=self.path, lines=list(lines), endings=list(self.endings), bom=self.bom)

    @property
    def assignments(self) -> Iterator[Assignment]:
        return (line for line in self.lines if isinstance(line, Assignment))

    @property
    def variable_count(self) -> int:
        return sum(1 for _ in self.assignments)

    def render(self) -> str:
        return (BOM if self.bom else "") + "".join(line.raw + ending for line, ending in zip(self.lines, self.endings))

    def write_atomic(self, output_path: Path | str) -> Path:
        """Serialize to ``output_path`` via temp file and atomic rename."""
        output_path = Path(output_path)
        atomic_write_text(output_path, self.render())
        return output_path

    def __repr__(self) -> str:
        return f"EnvFile(path={str(self.path)!r}, lines={len(self.lines)})"


def atomic_write_text(path: Path, text: str) -> None:
    """
    Write text to ``path`` atomically.

    The temporary file lives in the destination directory so the final
    ``os.replace`` never crosses filesystems. New files are created
    owner-only (0600); an existing destination keeps its permissions.
    On any failure, including KeyboardInterrupt, the temporary file is
    removed and the destination is left as it was.
    """
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())

        if path.exists():
            os.chmod(tmp_path, stat.S_IMODE(path.stat().st_mode))

        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    logger.debug("Wrote %s atomically", path)
