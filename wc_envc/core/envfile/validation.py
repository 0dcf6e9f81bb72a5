"""
Pre-flight Validation
=====================

Checks run on a parsed file before a single value is transformed.

Decrypt (abort on any failure):
    1. The file must contain at least one assignment.
    2. Every value must look like an encrypted value (strict Base64,
       long enough for nonce + tag). None looking encrypted means the
       file is plain; some not looking encrypted means a mixed or
       damaged file.
    3. One representative value is trial-decrypted so that a wrong
       password is reported before any work is done.

Encrypt (never aborts here):
    If every value already decrypts under the current key the file was
    almost certainly encrypted before; a warning is returned and the
    caller decides whether to continue.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List

from wc_envc.core.crypto.engine import DerivedKey, Direction, EncryptionEngine
from wc_envc.core.envfile.document import EnvFile
from wc_envc.core.errors import (
    AppearsUnencryptedError,
    InvalidEncodingError,
    NoVariablesError,
    NotEncryptedOrCorruptError,
    WrongPasswordOrCorruptError,
)

logger = logging.getLogger(__name__)


class ValidationWarning(Enum):
    APPEARS_ALREADY_ENCRYPTED = "appears_already_encrypted"


def precheck(
    env_file: EnvFile,
    direction: Direction,
    engine: EncryptionEngine,
    key: DerivedKey,
) -> List[ValidationWarning]:
    """
    Validate a file for the given direction.

    Returns:
        Non-fatal warnings (empty when the file is clean)

    Raises:
        NoVariablesError, AppearsUnencryptedError,
        NotEncryptedOrCorruptError, WrongPasswordOrCorruptError
    """
    if direction is Direction.DECRYPT:
        _check_decryptable(env_file, engine, key)
        return []
    return _check_encryptable(env_file, engine, key)


def _check_decryptable(env_file: EnvFile, engine: EncryptionEngine, key: DerivedKey) -> None:
    assignments = list(env_file.assignments)
    if not assignments:
        raise NoVariablesError(f"{env_file.path} contains no environment variables")

    invalid = [a.key for a in assignments if not engine.looks_encrypted(a.value)]
    if len(invalid) == len(assignments):
        raise AppearsUnencryptedError(f"{env_file.path} appears to be unencrypted")
    if invalid:
        raise NotEncryptedOrCorruptError(invalid)

    sample = assignments[0]
    try:
        engine.decrypt_value(sample.value, key)
    except (InvalidEncodingError, WrongPasswordOrCorruptError) as e:
        raise WrongPasswordOrCorruptError(
            f"Cannot decrypt {env_file.path}: wrong password or corrupted data"
        ) from e

    logger.debug("%s passed decrypt pre-check (%d values)", env_file.path, len(assignments))


def _check_encryptable(env_file: EnvFile, engine: EncryptionEngine, key: DerivedKey) -> List[ValidationWarning]:
    assignments = list(env_file.assignments)
    if not assignments:
        return []

    if all(engine.looks_encrypted(a.value) and engine.can_decrypt(a.value, key) for a in assignments):
        logger.warning("%s appears to be already encrypted", env_file.path)
        return [ValidationWarning.APPEARS_ALREADY_ENCRYPTED]
    return []
