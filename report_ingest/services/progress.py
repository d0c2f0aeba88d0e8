from __future__ import annotations

import logging
import sys
import time
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display service with tqdm (TTY only).

This module provides progress tracking for an import run:
- Single tqdm instance, disabled in non-TTY environments
- TTY detection using sys.stdout.isatty()
- An INFO log line every ``log_every`` batches with percent complete and ETA,
  so non-interactive runs (CI, the HTTP service) still report progress
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "format_eta",
]

logger = logging.getLogger(__name__)


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


def format_eta(seconds: float | None) -> str:
    """Render an ETA as ``M:SS`` (``?`` when unknown)."""
    if seconds is None or seconds < 0:
        return "?"
    total = int(round(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


class ProgressTracker:
    """Row-level progress for one import run.

    Rows are counted as batches complete. In non-TTY environments the bar
    is disabled to avoid ANSI control sequence spam; the log line is always
    emitted.
    """

    def __init__(
        self,
        total_rows: int,
        *,
        description: str = "Importing reports",
        log_every: int = 1,
    ) -> None:
        """Initialize progress tracker.

        Args:
            total_rows: Total number of rows to process
            description: Description for the progress bar
            log_every: Emit a progress log line every N batches
        """
        self.total_rows = total_rows
        self.description = description
        self.log_every = max(1, log_every)
        self.processed = 0
        self.batches = 0
        self._started = time.perf_counter()

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    @property
    def percent(self) -> float:
        if self.total_rows <= 0:
            return 100.0
        return min(100.0, self.processed * 100.0 / self.total_rows)

    def eta_seconds(self) -> float | None:
        if self.processed <= 0:
            return None
        elapsed = time.perf_counter() - self._started
        remaining = max(0, self.total_rows - self.processed)
        return elapsed / self.processed * remaining

    def advance(self, rows: int) -> None:
        """Advance by ``rows`` processed rows (typically a flushed batch)."""
        self.processed += rows
        self.batches += 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(rows)
        if self.batches % self.log_every == 0:
            logger.info(
                "progress %d/%d rows (%.1f%%) batch=%d eta=%s",
                self.processed,
                self.total_rows,
                self.percent,
                self.batches,
                format_eta(self.eta_seconds()),
            )

    def count_failed(self, rows: int) -> None:
        """Count rows that failed before reaching a batch (validation, slug lookup)."""
        if rows <= 0:
            return
        self.processed += rows
        if self.enabled and self.pbar is not None:
            self.pbar.update(rows)

    def set_postfix(self, **kwargs: Any) -> None:
        """Set postfix information (stats) on the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        """Close the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
