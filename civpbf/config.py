"""
Configuration - Runtime settings read from the environment.

    CIVPBF_ENV            development | production (default development)
    CIVPBF_LOCK_TIMEOUT   seconds to wait for a session lock (default 5)
    CIVPBF_MAX_RETRIES    attempts on a version conflict (default 3)
    CIVPBF_LOG_LEVEL      logging level name (default INFO)
    CIVPBF_SEED           seed for deck shuffles, unset for a random seed
    ALLOWED_ORIGINS       comma separated CORS origins (default *)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping
import logging
import os

from .engine_core.errors import ConfigurationError

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    env: str = "development"
    lock_timeout: float = 5.0
    max_retries: int = 3
    log_level: str = "INFO"
    seed: int | None = None
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        environ = os.environ if environ is None else environ
        seed = environ.get("CIVPBF_SEED")
        return cls(
            env=environ.get("CIVPBF_ENV", "development"),
            lock_timeout=_number(environ, "CIVPBF_LOCK_TIMEOUT", 5.0, float),
            max_retries=_number(environ, "CIVPBF_MAX_RETRIES", 3, int),
            log_level=environ.get("CIVPBF_LOG_LEVEL", "INFO").upper(),
            seed=_number(environ, "CIVPBF_SEED", None, int) if seed else None,
            allowed_origins=[
                origin.strip()
                for origin in environ.get("ALLOWED_ORIGINS", "*").split(",")
                if origin.strip()
            ],
        )

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def _number(environ: Mapping[str, str], name: str, default, kind):
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = kind(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative")
    return value


def configure_logging(settings: Settings):
    """Set up root logging once, at process start."""
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level {settings.log_level!r}")
    logging.basicConfig(level=level, format=LOG_FORMAT)
