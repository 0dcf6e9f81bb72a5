"""
Configuration Module
====================

Provides immutable, environment-aware configuration with safe defaults.

Features:
- Immutable configuration after initialization
- Environment variable override support (``WC_ENVC_`` prefix)
- No secrets in configuration, sensitive keys are never read
- OS-aware path handling
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional

from wc_envc.core.errors import ConfigError


ENV_PREFIX: Final[str] = "WC_ENVC"
PASSWORD_ENV_VAR: Final[str] = "WC_ENVC_PASSWORD"

# Keys that must never be treated as configuration
_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "credential", "salt",
})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / "wc-envc" / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / "wc-envc"
    else:  # Linux and others
        return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / "wc-envc" / "logs"


@dataclass(frozen=True, slots=True)
class KdfConfig:
    """Argon2id parameters for password-to-key derivation."""

    time_cost: int = 3
    memory_cost: int = 65536  # KiB (64 MiB)
    parallelism: int = 4

    def __post_init__(self) -> None:
        if self.time_cost < 1:
            raise ValueError("KDF time cost must be at least 1")
        if self.parallelism < 1:
            raise ValueError("KDF parallelism must be at least 1")
        # Argon2 requires at least 8 KiB per lane
        if self.memory_cost < 8 * self.parallelism:
            raise ValueError(
                f"KDF memory cost must be at least {8 * self.parallelism} KiB"
            )


@dataclass(frozen=True, slots=True)
class PromptConfig:
    """Interactive prompt behavior."""

    max_attempts: int = 3

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "WARNING"
    log_dir: Path = field(default_factory=_get_default_log_dir)
    max_file_size_bytes: int = 1024 * 1024  # 1 MB
    backup_count: int = 3
    enable_console: bool = True
    enable_file: bool = False

    def __post_init__(self) -> None:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")


@dataclass(frozen=True, slots=True)
class AppConfig:
    app_name: str = "wc-envc"
    version: str = "0.1.0"
    password_env_var: str = PASSWORD_ENV_VAR


class EnvcConfig:
    """
    Centralized, immutable configuration with environment override support.

    Usage:
        config = EnvcConfig.load()
        attempts = config.prompts.max_attempts
        memory = config.kdf.memory_cost
    """

    __slots__ = ("_kdf", "_prompts", "_logging", "_app", "_frozen")

    _instance: Optional[EnvcConfig] = None

    def __init__(
        self,
        kdf: Optional[KdfConfig] = None,
        prompts: Optional[PromptConfig] = None,
        logging: Optional[LoggingConfig] = None,
        app: Optional[AppConfig] = None,
    ) -> None:
        """Initialize configuration. Use EnvcConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_kdf", kdf or KdfConfig())
        object.__setattr__(self, "_prompts", prompts or PromptConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_app", app or AppConfig())
        object.__setattr__(self, "_frozen", True)

    @property
    def kdf(self) -> KdfConfig:
        return self._kdf

    @property
    def prompts(self) -> PromptConfig:
        return self._prompts

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def app(self) -> AppConfig:
        return self._app

    @classmethod
    def load(cls, env_prefix: str = ENV_PREFIX) -> EnvcConfig:
        """
        Load configuration with environment variable overrides.

        Environment variables are prefixed with ``WC_ENVC_`` and use double
        underscores for nested values.

        Examples:
            WC_ENVC_LOGGING__LEVEL=DEBUG
            WC_ENVC_KDF__MEMORY_COST=131072
            WC_ENVC_PROMPTS__MAX_ATTEMPTS=5

        Args:
            env_prefix: Prefix for environment variables

        Returns:
            Configured EnvcConfig instance

        Raises:
            ConfigError: If an override is not a valid value
        """
        env_overrides = cls._parse_env_overrides(env_prefix)
        try:
            return cls._from_overrides(env_overrides)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration override: {e}") from e

    @classmethod
    def _from_overrides(cls, env_overrides: dict[str, str]) -> EnvcConfig:
        kdf_kwargs: dict[str, Any] = {}
        for name in ("time_cost", "memory_cost", "parallelism"):
            if f"kdf.{name}" in env_overrides:
                kdf_kwargs[name] = int(env_overrides[f"kdf.{name}"])

        prompts_kwargs: dict[str, Any] = {}
        if "prompts.max_attempts" in env_overrides:
            prompts_kwargs["max_attempts"] = int(
                env_overrides["prompts.max_attempts"]
            )

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"].upper()
        if "logging.log_dir" in env_overrides:
            logging_kwargs["log_dir"] = Path(env_overrides["logging.log_dir"])
        if "logging.enable_console" in env_overrides:
            logging_kwargs["enable_console"] = env_overrides["logging.enable_console"].lower() == "true"
        if "logging.enable_file" in env_overrides:
            logging_kwargs["enable_file"] = env_overrides["logging.enable_file"].lower() == "true"

        return cls(
            kdf=KdfConfig(**kdf_kwargs) if kdf_kwargs else None,
            prompts=PromptConfig(**prompts_kwargs) if prompts_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # WC_ENVC_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                # The password variable shares the prefix but is not config
                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> EnvcConfig:
        """Get or create the process-wide configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def __repr__(self) -> str:
        return f"EnvcConfig(app={self._app.app_name}, kdf={self._kdf})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("EnvcConfig is immutable after initialization")
        super().__setattr__(name, value)
