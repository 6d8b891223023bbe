from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from .display import ProgressDisplay

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", *, verbose: bool = False) -> int:
    """Configure root logging for a cleanup run and return the effective level."""
    resolved = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolved)
    return resolved


class ProgressAwareHandler(logging.Handler):
    """Clear the progress line before a record is emitted and redraw it afterwards."""

    def __init__(self, inner: logging.Handler, progress: ProgressDisplay) -> None:
        super().__init__(inner.level)
        self._inner = inner
        self._progress = progress
        for filter_obj in inner.filters:
            self.addFilter(filter_obj)

    def emit(self, record: logging.LogRecord) -> None:
        self._progress.pause()
        try:
            self._inner.handle(record)
        finally:
            self._progress.resume()

    def setFormatter(self, formatter: logging.Formatter | None) -> None:
        self._inner.setFormatter(formatter)

    def flush(self) -> None:
        self._inner.flush()


@contextmanager
def progress_logging(
    progress: ProgressDisplay,
    logger: logging.Logger | None = None,
) -> Iterator[ProgressDisplay]:
    """Temporarily wrap ``logger``'s handlers so log lines do not garble a TTY progress bar."""
    target = logger or logging.getLogger()
    if not progress.requires_log_cooperation:
        yield progress
        return
    original = list(target.handlers)
    target.handlers = [ProgressAwareHandler(handler, progress) for handler in original]
    try:
        yield progress
    finally:
        target.handlers = original
