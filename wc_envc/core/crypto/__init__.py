"""
Cryptographic Core
==================

Password-derived AES-256-GCM encryption of individual values.

Architecture:
    1. Argon2id: deterministic password-to-key derivation
    2. AES-256-GCM: authenticated encryption, fresh nonce per value
    3. Base64: text-safe encoding of ``nonce || ciphertext || tag``

WARNING: This module handles sensitive cryptographic material.
"""

from wc_envc.core.crypto.aes_gcm import AesGcmCipher, AesGcmResult
from wc_envc.core.crypto.engine import DerivedKey, Direction, EncryptionEngine

__all__ = [
    "AesGcmCipher",
    "AesGcmResult",
    "DerivedKey",
    "Direction",
    "EncryptionEngine",
]
