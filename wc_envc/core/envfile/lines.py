"""
Line Classification and Value Transform
=======================================

Every line of an env file is exactly one of four kinds:

    Blank       empty or whitespace-only        kept verbatim
    Comment     first non-blank char is ``#``   kept verbatim
    Assignment  ``IDENT=REST`` at column 0      VALUE transformed
    Malformed   anything else                   kept verbatim

IDENT is a bare identifier (``[A-Za-z_][A-Za-z0-9_]*``). REST is everything
after the first ``=``. Lines such as ``export KEY=value``, ``KEY = value``
or ``1KEY=value`` are Malformed on purpose and pass through untouched.

Only the VALUE of an Assignment is ever encrypted or decrypted. It is
trimmed first and the surrounding whitespace is not restored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Union, assert_never

from wc_envc.core.crypto.engine import DerivedKey, Direction, EncryptionEngine
from wc_envc.core.errors import InvalidEncodingError, WrongPasswordOrCorruptError

if TYPE_CHECKING:
    from wc_envc.core.envfile.document import EnvFile

_ASSIGNMENT_RE: Final[re.Pattern[str]] = re.compile(
    r"(?P<key>[A-Za-z_][A-Za-z0-9_]*)=(?P<value>.*)", re.DOTALL
)


@dataclass(frozen=True, slots=True)
class Blank:
    raw: str


@dataclass(frozen=True, slots=True)
class Comment:
    raw: str


@dataclass(frozen=True, slots=True)
class Malformed:
    raw: str


@dataclass(frozen=True, slots=True)
class Assignment:
    key: str
    value: str
    raw: str

    @classmethod
    def build(cls, key: str, value: str) -> Assignment:
        return cls(key=key, value=value, raw=f"{key}={value}")

    def __repr__(self) -> str:
        # Values may be plaintext secrets
        return f"Assignment(key={self.key!r})"


Line = Union[Blank, Comment, Assignment, Malformed]


class LineCodec:
    """
    Classifies lines and applies the engine to Assignment values.

    Usage:
        codec = LineCodec(engine)
        line = codec.classify("DB_HOST=localhost")
        encrypted = codec.transform(line, Direction.ENCRYPT, key)
    """

    __slots__ = ("_engine",)

    def __init__(self, engine: EncryptionEngine) -> None:
        self._engine = engine

    @property
    def engine(self) -> EncryptionEngine:
        return self._engine

    @staticmethod
    def classify(raw_line: str) -> Line:
        """
        Classify one line (without its line terminator).
        """
        stripped = raw_line.strip()
        if not stripped:
            return Blank(raw_line)
        if stripped.startswith("#"):
            return Comment(raw_line)

        match = _ASSIGNMENT_RE.fullmatch(raw_line)
        if match is None:
            return Malformed(raw_line)
        return Assignment(key=match["key"], value=match["value"], raw=raw_line)

    def transform(self, line: Line, direction: Direction, key: DerivedKey) -> Line:
        """
        Transform a single line.

        Blank, Comment and Malformed lines are returned unchanged.

        Raises:
            InvalidEncodingError: Decrypting a value that is not Base64
            WrongPasswordOrCorruptError: Decrypting a value that fails
                authentication
        """
        if isinstance(line, (Blank, Comment, Malformed)):
            return line
        elif isinstance(line, Assignment):
            value = line.value.strip()
            if direction is Direction.ENCRYPT:
                return Assignment.build(line.key, self._engine.encrypt_value(value, key))
            try:
                return Assignment.build(line.key, self._engine.decrypt_value(value, key))
            except InvalidEncodingError as e:
                raise InvalidEncodingError(f"Value of {line.key} is not valid Base64") from e
            except WrongPasswordOrCorruptError as e:
                raise WrongPasswordOrCorruptError(
                    f"Cannot decrypt {line.key}: wrong password or corrupted data"
                ) from e
        else:
            assert_never(line)

    def transform_file(self, env_file: EnvFile, direction: Direction, key: DerivedKey) -> EnvFile:
        """
        Transform every line of a file into a new EnvFile.

        All-or-nothing: the first failing line raises and no partial
        result is returned.
        """
        return env_file.with_lines(
            [self.transform(line, direction, key) for line in env_file.lines]
        )
