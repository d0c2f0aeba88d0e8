from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the report catalog importer.

These are the typed results of report_ingest.config.loader; every field has a
default so the importer runs without a config file.
"""

__all__ = [
    "DatabaseConfig",
    "BatchThreshold",
    "BatchingConfig",
    "ImportConfig",
    "SEGMENT_FALLBACK_POLICIES",
]

SEGMENT_FALLBACK_POLICIES = ("overview", "none")


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class BatchThreshold:
    min_rows: int  # applies when total rows > min_rows
    size: int


@dataclass(frozen=True)
class BatchingConfig:
    """Batch sizing by input volume: larger files get smaller batches."""
    thresholds: tuple[BatchThreshold, ...] = (
        BatchThreshold(min_rows=500, size=25),
        BatchThreshold(min_rows=100, size=50),
    )
    default_size: int = 100

    def size_for(self, total_rows: int) -> int:
        for threshold in sorted(self.thresholds, key=lambda t: t.min_rows, reverse=True):
            if total_rows > threshold.min_rows:
                return threshold.size
        return self.default_size


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for the import process."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    batching: BatchingConfig = field(default_factory=BatchingConfig)
    max_errors: int = 50  # cap on errors returned to the caller
    segment_fallback: str = "overview"  # overview | none
    default_duplicate_handling: str = "update"
    upload_dir: str = "./uploads"
    error_log_dir: str = "./logs"
    progress_log_every: int = 1  # emit a progress log line every N batches
