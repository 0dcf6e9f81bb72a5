"""
Env File Handling
=================

Line classification, value transform, file I/O and pre-flight checks.

Components:
- lines.py: Line variants and LineCodec
- document.py: EnvFile read/render and atomic writes
- validation.py: precheck heuristics
"""

from wc_envc.core.envfile.lines import (
    Assignment,
    Blank,
    Comment,
    Line,
    LineCodec,
    Malformed,
)
from wc_envc.core.envfile.document import EnvFile, atomic_write_text
from wc_envc.core.envfile.validation import ValidationWarning, precheck

__all__ = [
    "Assignment",
    "Blank",
    "Comment",
    "Line",
    "LineCodec",
    "Malformed",
    "EnvFile",
    "atomic_write_text",
    "ValidationWarning",
    "precheck",
]
