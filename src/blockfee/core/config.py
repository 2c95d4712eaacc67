"""
blockfee Configuration

Environment-driven settings for the ambient stack (logging and metrics).
The model artifacts and the model selection threshold are fixed by the
trained models and are not read from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_bool(env_var: str, default: bool) -> bool:
    value = os.getenv(env_var, "").strip().lower()
    if not value:
        return default
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{env_var} must be a boolean flag, got {value!r}")


def metrics_enabled_from_env() -> bool:
    """Read ``BLOCKFEE_METRICS_ENABLED`` alone, without validating the logging settings."""
    return _get_bool("BLOCKFEE_METRICS_ENABLED", True)


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    log_file: Optional[str] = None
    environment: str = "production"
    metrics_enabled: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from ``BLOCKFEE_*`` environment variables."""
        log_level = os.getenv("BLOCKFEE_LOG_LEVEL", "INFO").strip().upper()
        if log_level not in _VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"BLOCKFEE_LOG_LEVEL must be one of {', '.join(_VALID_LOG_LEVELS)}, got {log_level!r}"
            )

        return cls(
            log_level=log_level,
            log_file=os.getenv("BLOCKFEE_LOG_FILE", "").strip() or None,
            environment=os.getenv("BLOCKFEE_ENVIRONMENT", "production").strip() or "production",
            metrics_enabled=metrics_enabled_from_env(),
        )


def get_settings() -> Settings:
    return Settings.from_env()


__all__ = ["ConfigurationError", "Settings", "get_settings", "metrics_enabled_from_env"]
