from __future__ import annotations

from pathlib import Path


class CleanupError(Exception):
    """Base class for fatal conditions raised during a cleanup run."""


class ConfigurationError(CleanupError):
    """Invalid options or config-file contents; raised before any store is touched."""


class StoreIOError(CleanupError):
    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"{message}: {self.path}")


class StoreQueryError(CleanupError):
    """A query or transaction failed; the in-flight transaction has been rolled back."""

    def __init__(self, store: str, phase: str, message: str) -> None:
        self.store = store
        self.phase = phase
        super().__init__(f"[{store}] {phase} failed: {message}")
