"""
Core module - configuration, logging, errors, crypto and env file handling.
"""

from wc_envc.core.config import EnvcConfig
from wc_envc.core.errors import EnvcError
from wc_envc.core.logging import SecureLogFilter

__all__ = ["EnvcConfig", "EnvcError", "SecureLogFilter"]
