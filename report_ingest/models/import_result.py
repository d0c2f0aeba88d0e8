from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

"""Import result models for the report catalog importer.

This module defines the models used to accumulate per-row outcomes during a
run (ImportStats, BatchStatsAccumulator) and the frozen ImportResult returned
to the caller once every batch has been flushed.
"""

__all__ = [
    "RunState",
    "RowError",
    "ImportStats",
    "ImportResult",
    "BatchStatsAccumulator",
]


class RunState(Enum):
    """Lifecycle of one import run.

    State transitions: loaded → validated → processing → (reported | failed)

    - LOADED: Spreadsheet read into raw rows
    - VALIDATED: Rows resolved to canonical fields, titles checked
    - PROCESSING: Batches being assembled and flushed
    - REPORTED: Final ImportResult built
    - FAILED: Run aborted by an unexpected error
    """
    LOADED = "loaded"
    VALIDATED = "validated"
    PROCESSING = "processing"
    REPORTED = "reported"
    FAILED = "failed"


@dataclass(frozen=True)
class RowError:
    """One failed row as shown to the user."""
    row: int
    title: str
    report_code: str
    message: str

    def to_dict(self) -> dict[str, object]:
        return {
            "row": self.row,
            "title": self.title,
            "reportCode": self.report_code,
            "message": self.message,
        }


@dataclass
class ImportStats:
    """Mutable accumulator threaded through a run.

    ``errors`` is capped at ``max_errors`` entries; ``failed`` keeps counting
    past the cap.
    """
    total: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    categories_created: int = 0
    subcategories_created: int = 0
    max_errors: int = 50
    errors: list[RowError] = field(default_factory=list)
    state: RunState = RunState.LOADED

    @property
    def processed(self) -> int:
        return self.inserted + self.updated + self.skipped + self.failed

    def add_error(self, error: RowError) -> None:
        self.failed += 1
        if len(self.errors) < self.max_errors:
            self.errors.append(error)

    @property
    def errors_truncated(self) -> bool:
        return self.failed > len(self.errors)


@dataclass(frozen=True)
class ImportResult:
    """Aggregated outcome of one import run."""
    total: int
    inserted: int
    updated: int
    skipped: int
    failed: int
    success_rate: float  # (inserted + updated + skipped) / total
    duration_seconds: float
    records_per_second: float
    categories_created: int
    subcategories_created: int
    errors: list[RowError]
    duplicate_handling: str
    start_time: datetime
    end_time: datetime
    batch_size: int = 0
    total_batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0
    errors_truncated: bool = False
    error_log_path: str | None = None


class BatchStatsAccumulator:
    """Helper class to accumulate batch timing statistics.

    Collects individual batch timing data and calculates summary statistics.
    """

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        """Add a batch timing measurement."""
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate batch statistics.

        Returns:
            tuple: (total_batches, avg_batch_seconds, p95_batch_seconds)
        """
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]  # 19th of 20 cut points

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
