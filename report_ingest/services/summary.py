from __future__ import annotations

from datetime import datetime

from ..models.import_result import BatchStatsAccumulator, ImportResult, ImportStats

"""Import report builder and SUMMARY line rendering.

``build_result`` freezes the run's ImportStats into an ImportResult;
``render_summary_line`` renders the single SUMMARY log line emitted at the
end of every run.
"""

__all__ = [
    "build_result",
    "render_summary_line",
    "format_number",
]


def build_result(
    stats: ImportStats,
    *,
    start_time: datetime,
    end_time: datetime,
    duplicate_handling: str,
    batch_size: int = 0,
    batch_stats: BatchStatsAccumulator | None = None,
    error_log_path: str | None = None,
) -> ImportResult:
    """Build the final ImportResult.

    Args:
        stats: Counters accumulated over the run
        start_time: Run start (UTC)
        end_time: Run end (UTC)
        duplicate_handling: Strategy name the run used
        batch_size: Batch size chosen for the run
        batch_stats: Per-batch timings, if any batch was flushed
        error_log_path: JSON Lines error log written for the run, if any

    Returns:
        Frozen ImportResult; ``success_rate`` is 0.0 for an empty run
    """
    duration = max(0.0, (end_time - start_time).total_seconds())
    succeeded = stats.inserted + stats.updated + stats.skipped
    success_rate = succeeded / stats.total if stats.total else 0.0
    records_per_second = stats.processed / duration if duration > 0 else 0.0
    total_batches, avg_batch, p95_batch = (
        batch_stats.get_stats() if batch_stats is not None else (0, 0.0, 0.0)
    )
    return ImportResult(
        total=stats.total,
        inserted=stats.inserted,
        updated=stats.updated,
        skipped=stats.skipped,
        failed=stats.failed,
        success_rate=round(success_rate, 4),
        duration_seconds=round(duration, 3),
        records_per_second=round(records_per_second, 2),
        categories_created=stats.categories_created,
        subcategories_created=stats.subcategories_created,
        errors=list(stats.errors),
        duplicate_handling=duplicate_handling,
        start_time=start_time,
        end_time=end_time,
        batch_size=batch_size,
        total_batches=total_batches,
        avg_batch_seconds=avg_batch,
        p95_batch_seconds=p95_batch,
        errors_truncated=stats.errors_truncated,
        error_log_path=error_log_path,
    )


def format_number(value: float) -> str:
    """Format a metric for the SUMMARY line without scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(value)


def render_summary_line(result: ImportResult) -> str:
    """Render a SUMMARY line from an ImportResult.

    Format:
    SUMMARY rows={total} inserted={n} updated={n} skipped={n} failed={n}
    categories_created={n} subcategories_created={n} elapsed_sec={s}
    throughput_rps={r}

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = build_result(
        ...     ImportStats(total=4, inserted=3, failed=1),
        ...     start_time=start, end_time=end, duplicate_handling="update",
        ... )
        >>> render_summary_line(result)
        'SUMMARY rows=4 inserted=3 updated=0 skipped=0 failed=1 categories_created=0 subcategories_created=0 elapsed_sec=2 throughput_rps=2'
    """
    return (
        f"SUMMARY rows={result.total} "
        f"inserted={result.inserted} "
        f"updated={result.updated} "
        f"skipped={result.skipped} "
        f"failed={result.failed} "
        f"categories_created={result.categories_created} "
        f"subcategories_created={result.subcategories_created} "
        f"elapsed_sec={format_number(result.duration_seconds)} "
        f"throughput_rps={format_number(result.records_per_second)}"
    )
