from __future__ import annotations

import logging
import sys
import time
from typing import TextIO


class ProgressDisplay:
    """Render a lightweight CLI progress bar for batched deletions."""

    def __init__(
        self,
        *,
        enabled: bool,
        total_records: int,
        label: str = "removing",
        refresh_interval: float = 0.5,
        stream: TextIO | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._enabled = enabled
        self._total_records = total_records
        self._label = label
        self._refresh_interval = max(0.1, refresh_interval)
        self._stream = stream or sys.stderr
        self._logger = logger or logging.getLogger(__name__)
        self._use_tty = bool(self._enabled and self._stream and self._stream.isatty())
        self._log_only = bool(self._enabled and not self._use_tty)
        self._line_active = False
        self._last_render = 0.0
        self._last_log = 0.0
        self._started = time.monotonic()
        self._processed = 0
        self._batches = 0
        self._last_line_text = ""
        self._needs_redraw = False

    def advance(self, processed: int, *, force: bool = False) -> None:
        if not self._enabled:
            return
        self._processed = processed
        self._batches += 1
        self._render(force=force)

    def finish(self) -> None:
        if not self._enabled:
            return
        self._render(force=True)
        if self._use_tty and self._line_active:
            self._stream.write("\n")
            self._stream.flush()
            self._line_active = False
            self._last_line_text = ""

    def _render(self, *, force: bool) -> None:
        now = time.monotonic()
        if not force and (now - self._last_render) < self._refresh_interval:
            return
        self._last_render = now
        line = self._format_line(now)
        if self._use_tty:
            self._stream.write("\r" + line)
            self._stream.flush()
            self._line_active = True
            self._last_line_text = line
            self._needs_redraw = False
            return

        if self._log_only and (force or (now - self._last_log) >= max(self._refresh_interval, 5.0)):
            self._logger.info(line)
            self._last_log = now

    def _format_line(self, now: float) -> str:
        percent, bar = self._build_bar(self._processed, self._total_records)
        elapsed = max(0.0, now - self._started)
        eta = self._estimate_eta(elapsed, self._processed, self._total_records)
        segments = [
            bar,
            f"{percent:5s}",
            f"{self._label} {self._processed}/{self._total_records or '?'}",
            f"batches {self._batches}",
            f"elapsed {self._format_duration(elapsed)}",
            f"eta {self._format_duration(eta) if eta is not None else '--:--'}",
        ]
        return " | ".join(segments)

    @staticmethod
    def _build_bar(processed: int, total: int) -> tuple[str, str]:
        if total and total > 0:
            ratio = max(0.0, min(1.0, processed / total))
            percent = f"{ratio * 100:4.1f}%"
        else:
            ratio = 0.0
            percent = " ---%"
        width = 20
        filled = int(ratio * width)
        bar = f"[{('#' * filled).ljust(width, '-')}]"
        return percent, bar

    @staticmethod
    def _estimate_eta(elapsed: float, processed: int, total: int) -> float | None:
        if not total or total <= 0 or processed <= 0:
            return None
        remaining = max(total - processed, 0)
        if remaining == 0:
            return 0.0
        return remaining * (elapsed / processed)

    @staticmethod
    def _format_duration(seconds: float | None) -> str:
        if seconds is None or seconds < 0:
            return "--:--"
        total_seconds = int(seconds)
        hours, remainder = divmod(total_seconds, 3600)
        minutes, secs = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"

    @property
    def requires_log_cooperation(self) -> bool:
        return self._enabled and self._use_tty

    def pause(self) -> None:
        if not self.requires_log_cooperation or not self._line_active:
            return
        blank = " " * len(self._last_line_text)
        self._stream.write("\r" + blank + "\r")
        self._stream.flush()
        self._line_active = False
        self._needs_redraw = True

    def resume(self) -> None:
        if not self.requires_log_cooperation:
            return
        if self._needs_redraw:
            self._render(force=True)
        self._needs_redraw = False
