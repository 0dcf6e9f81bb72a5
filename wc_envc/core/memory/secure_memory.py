"""
Secure Memory Buffers
=====================

Provides secure memory buffer implementations that minimize
the exposure of the password and derived key in memory.

Security Properties:
- Explicit zeroization (don't rely on Python GC)
- Memory locking where supported (prevent swapping)
- Automatic cleanup on context exit
- Exception-safe operation

Limitations:
- Python's memory model copies data internally
- Strings handed to us by argparse, getpass or os.environ cannot be wiped
- Best-effort security, not guaranteed
"""

from __future__ import annotations

import ctypes
import hmac
import platform
from typing import Final, List, Protocol

from wc_envc.core.memory.zeroization import secure_zero


# Platform detection
IS_WINDOWS: Final[bool] = platform.system() == "Windows"
IS_LINUX: Final[bool] = platform.system() == "Linux"
IS_MACOS: Final[bool] = platform.system() == "Darwin"

# Memory constants
MIN_BUFFER_SIZE: Final[int] = 32
MAX_BUFFER_SIZE: Final[int] = 64 * 1024


def _libc() -> ctypes.CDLL:
    return ctypes.CDLL("libc.so.6" if IS_LINUX else "libc.dylib", use_errno=True)


def _mlock(address: int, size: int) -> bool:
    """
    Lock memory pages to prevent swapping.

    Returns True if successful, False otherwise.
    """
    try:
        if IS_WINDOWS:
            kernel32 = ctypes.windll.kernel32
            return bool(kernel32.VirtualLock(ctypes.c_void_p(address), ctypes.c_size_t(size)))
        elif IS_LINUX or IS_MACOS:
            return _libc().mlock(ctypes.c_void_p(address), ctypes.c_size_t(size)) == 0
    except (OSError, AttributeError):
        pass
    return False


def _munlock(address: int, size: int) -> bool:
    """Unlock memory pages."""
    try:
        if IS_WINDOWS:
            kernel32 = ctypes.windll.kernel32
            return bool(kernel32.VirtualUnlock(ctypes.c_void_p(address), ctypes.c_size_t(size)))
        elif IS_LINUX or IS_MACOS:
            return _libc().munlock(ctypes.c_void_p(address), ctypes.c_size_t(size)) == 0
    except (OSError, AttributeError):
        pass
    return False


class Wipeable(Protocol):
    def wipe(self) -> None: ...


class SecureBuffer:
    """
    Secure byte buffer with explicit zeroization.

    Provides a mutable byte buffer that is explicitly zeroed
    when no longer needed, rather than relying on Python's
    garbage collector.

    Usage:
        with SecureBuffer.from_bytes(key_material) as buf:
            use_key(buf.data)
        # Buffer is now zeroed

    Security Notes:
        - Always use the context manager or call wipe() explicitly
        - .data returns a copy; keep its lifetime short
    """

    __slots__ = ("_buffer", "_size", "_wiped", "_locked", "_length", "__weakref__")

    def __init__(self, size: int = MIN_BUFFER_SIZE, lock_memory: bool = True) -> None:
        """
        Initialize a zero-filled secure buffer.

        Args:
            size: Buffer capacity in bytes
            lock_memory: Try to lock memory (prevent swapping)
        """
        if size < MIN_BUFFER_SIZE:
            size = MIN_BUFFER_SIZE
        if size > MAX_BUFFER_SIZE:
            raise ValueError(f"Buffer too large (max {MAX_BUFFER_SIZE})")

        self._size = size
        self._buffer = bytearray(size)
        self._wiped = False
        self._locked = False
        self._length = 0

        if lock_memory:
            self._locked = _mlock(self._address(), size)

    @classmethod
    def from_bytes(cls, data: bytes | bytearray, lock_memory: bool = True) -> SecureBuffer:
        """
        Create a SecureBuffer holding a copy of ``data``.

        The original data is NOT wiped - caller is responsible.
        """
        buf = cls(size=max(len(data), MIN_BUFFER_SIZE), lock_memory=lock_memory)
        buf._buffer[:len(data)] = data
        buf._length = len(data)
        return buf

    def _address(self) -> int:
        return ctypes.addressof((ctypes.c_char * self._size).from_buffer(self._buffer))

    @property
    def data(self) -> bytes:
        """
        Buffer content as immutable bytes (only the written portion).

        Warning: This creates a copy.
        """
        if self._wiped:
            raise ValueError("Buffer has been wiped")
        return bytes(self._buffer[:self._length])

    @property
    def is_wiped(self) -> bool:
        return self._wiped

    @property
    def is_locked(self) -> bool:
        return self._locked

    def wipe(self) -> None:
        """Securely wipe the buffer and unlock its pages. Idempotent."""
        if self._wiped:
            return

        secure_zero(self._buffer)

        if self._locked:
            _munlock(self._address(), self._size)
            self._locked = False

        self._length = 0
        self._wiped = True

    def __enter__(self) -> SecureBuffer:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __del__(self) -> None:
        # Interpreter shutdown may have torn down ctypes already
        try:
            self.wipe()
        except Exception:
            pass

    def __len__(self) -> int:
        return self._length

    def __repr__(self) -> str:
        if self._wiped:
            return "SecureBuffer(WIPED)"
        return f"SecureBuffer(size={self._size}, locked={self._locked})"


class Secret:
    """
    The password for one invocation.

    Stores the password as UTF-8 bytes in a SecureBuffer and is wiped
    when the owning scope exits, on success, error or interrupt alike.

    Usage:
        with Secret("my_password") as secret:
            key = engine.derive_key(secret)
        # Password bytes are now zeroed
    """

    __slots__ = ("_buffer", "source")

    def __init__(self, value: str | bytes, source: str = "argument") -> None:
        """
        Args:
            value: The password
            source: Where the password came from (for log messages only)
        """
        data = value.encode("utf-8") if isinstance(value, str) else value
        self._buffer = SecureBuffer.from_bytes(data)
        self.source = source

    def expose(self) -> bytes:
        """Return the password bytes. The caller must not retain them."""
        return self._buffer.data

    def matches(self, other: Secret) -> bool:
        """Constant-time equality with another Secret."""
        return hmac.compare_digest(self.expose(), other.expose())

    @property
    def is_wiped(self) -> bool:
        return self._buffer.is_wiped

    def wipe(self) -> None:
        self._buffer.wipe()

    def __len__(self) -> int:
        return len(self._buffer)

    def __enter__(self) -> Secret:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        """Safe representation - never show value."""
        if self._buffer.is_wiped:
            return "Secret(WIPED)"
        return f"Secret(source={self.source!r})"

    def __str__(self) -> str:
        return "********"


class MemoryGuard:
    """
    RAII-style guard for secure memory.

    Ensures that every tracked object is wiped even if an exception
    (or KeyboardInterrupt) escapes the block.

    Usage:
        with MemoryGuard() as guard:
            secret = guard.track(resolver.resolve(direction))
            key = guard.track(engine.derive_key(secret))
        # Both wiped on exit
    """

    __slots__ = ("_tracked",)

    def __init__(self) -> None:
        self._tracked: List[Wipeable] = []

    def track(self, obj):
        """Track an object with a wipe() method; returns it for convenience."""
        self._tracked.append(obj)
        return obj

    def wipe_all(self) -> None:
        """Wipe all tracked objects, most recent first."""
        while self._tracked:
            self._tracked.pop().wipe()

    def __enter__(self) -> MemoryGuard:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe_all()
