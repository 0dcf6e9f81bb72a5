"""
wc-envc - Encrypt/decrypt .env files
====================================

Encrypts the value of every KEY=value line of a .env file while leaving
keys, comments, blank lines and line endings untouched, so the encrypted
file stays diff-friendly and can be committed.

Security Notice:
- No passwords or plaintext values are logged
- Fail-closed: a file either decrypts completely or not at all
- Outputs are written atomically
"""

__version__ = "0.1.0"

from wc_envc.core.config import EnvcConfig
from wc_envc.core.crypto import EncryptionEngine

__all__ = ["EnvcConfig", "EncryptionEngine", "__version__"]
