"""
Key Derivation Functions
========================

Password-to-key derivation for value encryption.

The derived key must be a pure function of the password: two runs on
different machines, with no shared state, must arrive at the same key.
A fixed, versioned application salt is therefore used instead of a
random per-file salt. Argon2id's memory hardness is what makes offline
guessing expensive.
"""

from __future__ import annotations

import hashlib
from typing import Final

from argon2.low_level import Type, hash_secret_raw

from wc_envc.core.config import KdfConfig

KEY_LENGTH: Final[int] = 32  # 256 bits for AES-256

# Changing this invalidates every file ever encrypted
APPLICATION_SALT: Final[bytes] = hashlib.sha256(b"wc-envc/value-key/v1").digest()[:16]


def derive_key_argon2(
    password: bytes,
    params: KdfConfig,
    salt: bytes = APPLICATION_SALT,
    length: int = KEY_LENGTH,
) -> bytes:
    """
    Derive a key from password bytes using Argon2id.

    Args:
        password: Password bytes (UTF-8)
        params: Argon2 cost parameters
        salt: Salt (at least 8 bytes); defaults to the application salt
        length: Output key length

    Returns:
        Derived key bytes

    Raises:
        ValueError: If the password is empty
    """
    if not password:
        raise ValueError("Cannot derive a key from an empty password")

    return hash_secret_raw(
        secret=password,
        salt=salt,
        time_cost=params.time_cost,
        memory_cost=params.memory_cost,
        parallelism=params.parallelism,
        hash_len=length,
        type=Type.ID,
    )
