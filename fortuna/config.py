from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError
from .libcrypto import LIBCRYPTO_ENV
from .primitives import BACKENDS
from .storage import DEFAULT_SEED_PATH

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class FortunaConfig:
    backend: str = "libcrypto"
    libcrypto_path: Optional[str] = None
    seed_path: str = DEFAULT_SEED_PATH
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ConfigError(f"Unknown backend {self.backend!r}; expected one of {', '.join(BACKENDS)}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level {self.log_level!r}")
        if not self.seed_path:
            raise ConfigError("Seed path must not be empty")

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level.upper())


def load_config(environ: Optional[Mapping[str, str]] = None, **overrides: Optional[str]) -> FortunaConfig:
    """Build a config from ``FORTUNA_*`` variables; non-None ``overrides`` win."""
    env = os.environ if environ is None else environ
    values = {
        "backend": env.get("FORTUNA_BACKEND", "libcrypto"),
        "libcrypto_path": env.get(LIBCRYPTO_ENV) or None,
        "seed_path": env.get("FORTUNA_SEED_PATH", DEFAULT_SEED_PATH),
        "log_level": env.get("FORTUNA_LOG_LEVEL", "WARNING"),
    }
    for name, value in overrides.items():
        if name not in values:
            raise ConfigError(f"Unknown config field {name!r}")
        if value is not None:
            values[name] = value
    return FortunaConfig(**values)
