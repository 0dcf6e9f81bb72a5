"""
Memory Security Module
======================

Provides secure memory handling for the password and derived key.

Components:
- secure_memory.py: SecureBuffer, Secret and MemoryGuard
- zeroization.py: Memory wiping and exit-path utilities

WARNING:
- Python's memory model doesn't guarantee secure erasure
- These are best-effort mitigations
"""

from wc_envc.core.memory.secure_memory import (
    SecureBuffer,
    Secret,
    MemoryGuard,
)
from wc_envc.core.memory.zeroization import (
    secure_zero,
    terminate_on_sigterm,
)

__all__ = [
    "SecureBuffer",
    "Secret",
    "MemoryGuard",
    "secure_zero",
    "terminate_on_sigterm",
]
