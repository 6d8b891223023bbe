"""Environment-driven defaults for the duplicate remover."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from constants import DEFAULT_BATCH_SIZE, DEFAULT_ORDER_FILE, DEFAULT_TABLE, DEFAULT_TAGS_FILE

from .errors import ConfigurationError

# Load environment variables from a .env file if present.
load_dotenv()


@dataclass(frozen=True, slots=True)
class Settings:
    """Defaults that command-line flags may override."""

    table: str = DEFAULT_TABLE
    order_file: Path = Path(DEFAULT_ORDER_FILE)
    tags_file: Path = Path(DEFAULT_TAGS_FILE)
    batch_size: int = DEFAULT_BATCH_SIZE
    log_level: str = "INFO"

    @staticmethod
    def _str_env(key: str) -> str | None:
        raw = os.getenv(key)
        if raw is None:
            return None
        stripped = raw.strip()
        return stripped or None

    @classmethod
    def from_env(cls) -> Settings:
        """Load configuration values from the environment."""
        raw_batch = cls._str_env("SMDUPE_BATCH_SIZE")
        try:
            batch_size = int(raw_batch) if raw_batch else DEFAULT_BATCH_SIZE
        except ValueError as exc:
            raise ConfigurationError(f"SMDUPE_BATCH_SIZE must be an integer, got {raw_batch!r}") from exc
        if batch_size <= 0:
            raise ConfigurationError("SMDUPE_BATCH_SIZE must be > 0")

        order_file = cls._str_env("SMDUPE_ORDER_FILE") or DEFAULT_ORDER_FILE
        tags_file = cls._str_env("SMDUPE_TAGS_FILE") or DEFAULT_TAGS_FILE
        return cls(
            table=cls._str_env("SMDUPE_TABLE") or DEFAULT_TABLE,
            order_file=Path(order_file).expanduser(),
            tags_file=Path(tags_file).expanduser(),
            batch_size=batch_size,
            log_level=(cls._str_env("SMDUPE_LOG_LEVEL") or "INFO").upper(),
        )
