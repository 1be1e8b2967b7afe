"""
Layered environment configuration.

Later sources override earlier ones:
1) `env.example` (committed, safe placeholders)
2) `env.local` (optional, MUST NOT be committed)
3) Process environment (highest priority)
"""

import os
from pathlib import Path

from dotenv import dotenv_values
from loguru import logger

PROJECT_ROOT = Path(__file__).resolve().parents[2]
ENV_FILES = ("env.example", "env.local")

TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


class EnvironConfig:
    """Process-wide view over the env files and os.environ."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._values = cls._collect(PROJECT_ROOT)
            cls._instance = instance
        return cls._instance

    @staticmethod
    def _collect(root: Path) -> dict[str, str | None]:
        values: dict[str, str | None] = {}
        for name in ENV_FILES:
            path = root / name
            if path.exists():
                values.update(dotenv_values(path))
                logger.info("Loaded environment variables from {}", path)
        values.update(os.environ)
        return values

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self._values.get(key)
        return default if value is None else value

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Read a 'true'/'false' style flag; unset or blank gives default."""
        value = (self._values.get(key) or "").strip()
        if not value:
            return default
        return value.lower() in TRUE_VALUES


# Global configuration instance
config = EnvironConfig()
