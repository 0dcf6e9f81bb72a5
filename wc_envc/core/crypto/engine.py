"""
Value Encryption Engine
=======================

Encrypts and decrypts individual VALUE strings.

Wire format of an encrypted value:

    base64( nonce[12] || ciphertext || tag[16] )

Standard Base64 alphabet, padded, no line breaks. The nonce is fresh for
every call, so the same plaintext never encrypts to the same text twice.
Decryption either returns the exact original plaintext or raises; a wrong
password is detected by the GCM tag, never by guessing at the output.
"""

from __future__ import annotations

import base64
import binascii
import logging
from enum import Enum
from typing import Final, Optional

from cryptography.exceptions import InvalidTag

from wc_envc.core.config import EnvcConfig, KdfConfig
from wc_envc.core.crypto.aes_gcm import AES_NONCE_SIZE, AES_TAG_SIZE, AesGcmCipher, AesGcmResult
from wc_envc.core.crypto.kdf import derive_key_argon2
from wc_envc.core.errors import EmptyPasswordError, InvalidEncodingError, WrongPasswordOrCorruptError
from wc_envc.core.memory import SecureBuffer, Secret

logger = logging.getLogger(__name__)

VALUE_AAD: Final[bytes] = b"wc-envc:value:v1"
MIN_ENCRYPTED_LENGTH: Final[int] = AES_NONCE_SIZE + AES_TAG_SIZE


class Direction(Enum):
    """Which way a file is being transformed."""

    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"

    @property
    def verb(self) -> str:
        return "Encrypting" if self is Direction.ENCRYPT else "Decrypting"

    @property
    def past(self) -> str:
        return "Encrypted" if self is Direction.ENCRYPT else "Decrypted"


class DerivedKey:
    """A 256-bit value key held in wipeable memory."""

    __slots__ = ("_buffer",)

    def __init__(self, material: bytes) -> None:
        self._buffer = SecureBuffer.from_bytes(material)

    @property
    def material(self) -> bytes:
        return self._buffer.data

    @property
    def is_wiped(self) -> bool:
        return self._buffer.is_wiped

    def wipe(self) -> None:
        self._buffer.wipe()

    def __enter__(self) -> DerivedKey:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return "DerivedKey(WIPED)" if self.is_wiped else "DerivedKey(len=32)"


def _b64decode_strict(text: str) -> bytes:
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise InvalidEncodingError() from e


class EncryptionEngine:
    """
    Password-derived, value-level AES-256-GCM encryption.

    Usage:
        engine = EncryptionEngine()
        with engine.derive_key(secret) as key:
            token = engine.encrypt_value("localhost", key)
            assert engine.decrypt_value(token, key) == "localhost"
    """

    __slots__ = ("_kdf", "_cipher")

    def __init__(self, kdf: Optional[KdfConfig] = None) -> None:
        self._kdf = kdf or EnvcConfig.get_instance().kdf
        self._cipher = AesGcmCipher()

    def derive_key(self, password: Secret) -> DerivedKey:
        """
        Derive the value key from the password.

        Deterministic: the same password always yields the same key.

        Raises:
            EmptyPasswordError: If the password is empty
        """
        if len(password) == 0:
            raise EmptyPasswordError()

        logger.debug(
            "Deriving key with Argon2id (t=%d, m=%d KiB, p=%d)",
            self._kdf.time_cost, self._kdf.memory_cost, self._kdf.parallelism,
        )
        return DerivedKey(derive_key_argon2(password.expose(), self._kdf))

    def encrypt_value(self, plaintext: str, key: DerivedKey) -> str:
        """
        Encrypt a single value.

        Args:
            plaintext: The value to encrypt, already trimmed
            key: Derived value key

        Returns:
            Base64 text carrying nonce, ciphertext and tag
        """
        result = self._cipher.encrypt(plaintext.encode("utf-8"), key.material, aad=VALUE_AAD)
        return base64.b64encode(result.to_bytes()).decode("ascii")

    def decrypt_value(self, ciphertext_text: str, key: DerivedKey) -> str:
        """
        Decrypt a single value.

        Args:
            ciphertext_text: Base64 text produced by encrypt_value
            key: Derived value key

        Returns:
            The original plaintext

        Raises:
            InvalidEncodingError: If the text is not valid Base64
            WrongPasswordOrCorruptError: If authentication fails (wrong
                password, truncated or tampered data)
        """
        raw = _b64decode_strict(ciphertext_text.strip())

        try:
            packed = AesGcmResult.from_bytes(raw)
            plaintext = self._cipher.decrypt(packed.ciphertext, packed.nonce, key.material, aad=VALUE_AAD)
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError) as e:
            # UnicodeDecodeError is a ValueError
            raise WrongPasswordOrCorruptError() from e

    @staticmethod
    def looks_encrypted(text: str) -> bool:
        """
        Check whether text is structurally an encrypted value.

        Valid strict Base64 that decodes to at least a nonce and a tag.
        Says nothing about which password was used.
        """
        candidate = text.strip()
        if not candidate:
            return False
        try:
            raw = _b64decode_strict(candidate)
        except InvalidEncodingError:
            return False
        return len(raw) >= MIN_ENCRYPTED_LENGTH

    def can_decrypt(self, text: str, key: DerivedKey) -> bool:
        """Return True if ``text`` decrypts under ``key``."""
        try:
            self.decrypt_value(text, key)
        except (InvalidEncodingError, WrongPasswordOrCorruptError):
            return False
        return True
