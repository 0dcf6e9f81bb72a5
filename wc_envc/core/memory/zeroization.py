"""
Memory Zeroization Utilities
============================

Provides explicit memory zeroization and exit-path guarantees.

Key Concepts:
- Zeroization: Overwriting memory with zeros/patterns
- Guard: Automatic cleanup on scope exit
- Termination: SIGTERM is turned into SystemExit so ``finally`` blocks
  (and therefore zeroization) still run
"""

from __future__ import annotations

import ctypes
import signal
import sys
from contextlib import contextmanager
from typing import Any, Final, Iterator


# Exit status conventionally used for SIGTERM (128 + 15)
SIGTERM_EXIT_CODE: Final[int] = 143


def secure_zero(data: bytearray) -> None:
    """
    Securely zero a byte buffer.

    Uses ctypes for direct memory access, overwriting zeros, ones and
    zeros again.

    Args:
        data: Mutable byte buffer to zero

    Security Notes:
        - This is best-effort; Python may have copies
        - Call immediately after use, before GC
        - Buffer must be mutable (bytearray, not bytes)
    """
    size = len(data)
    if size == 0:
        return

    addr = ctypes.addressof((ctypes.c_char * size).from_buffer(data))
    ctypes.memset(addr, 0, size)
    ctypes.memset(addr, 0xFF, size)
    ctypes.memset(addr, 0, size)


@contextmanager
def terminate_on_sigterm() -> Iterator[None]:
    """
    Convert SIGTERM into ``SystemExit`` for the duration of the block.

    Python's default SIGTERM disposition kills the process without
    unwinding, which would skip every ``finally``. Raising SystemExit
    instead lets secrets be wiped and temporary files be removed.
    The previous handler is restored on exit.
    """
    def _handler(signum: int, frame: Any) -> None:
        sys.exit(SIGTERM_EXIT_CODE)

    installed = True
    try:
        previous = signal.signal(signal.SIGTERM, _handler)
    except ValueError:
        # Not the main thread; signals cannot be installed here
        installed = False

    try:
        yield
    finally:
        if installed:
            signal.signal(signal.SIGTERM, previous)
