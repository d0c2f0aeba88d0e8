from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Per-import JSON Lines error log.

Every failed row of one spreadsheet import becomes an ErrorRecord tagged with
the source file and one of ERROR_TYPES. Records are buffered and written to
``errors-YYYYMMDD-HHMMSS.log`` (UTC) on flush(); no file is created for a
clean run.

The error list returned to API callers is capped; this log keeps every row
failure so large imports can still be fixed and re-submitted.
"""

__all__ = [
    "DUPLICATE_KEY",
    "ERROR_TYPES",
    "ErrorLogBuffer",
    "ErrorRecord",
    "STORE_ERROR",
    "TAXONOMY_ERROR",
    "VALIDATION_ERROR",
]

VALIDATION_ERROR = "VALIDATION_ERROR"  # row rejected before any write
DUPLICATE_KEY = "DUPLICATE_KEY"  # unique constraint on slug or report code
STORE_ERROR = "STORE_ERROR"  # any other catalog write or lookup failure
TAXONOMY_ERROR = "TAXONOMY_ERROR"  # category not created; the report is still written

ERROR_TYPES = frozenset({VALIDATION_ERROR, DUPLICATE_KEY, STORE_ERROR, TAXONOMY_ERROR})

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """Buffered error log for the import of one source file.

    ``file_name`` is stamped on every record; run_import fills it in from the
    upload name when the buffer was created without one.
    """

    def __init__(self, logs_dir: Path | str | None = None, file_name: str = "") -> None:
        self.file_name = file_name
        self.counts: Counter[str] = Counter()
        self.written = 0
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = Path(logs_dir) if logs_dir is not None else LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def record(
        self,
        row: int,
        error_type: str,
        message: str,
        *,
        title: str = "",
        report_code: str = "",
    ) -> ErrorRecord:
        """Buffer a failure of ``row`` in the current file."""
        rec = ErrorRecord.create(
            self.file_name, row, error_type, message, title=title, report_code=report_code
        )
        self.append(rec)
        return rec

    def append(self, record: ErrorRecord) -> None:
        if record.error_type not in ERROR_TYPES:
            raise ValueError(f"unknown error type: {record.error_type!r}")
        self.counts[record.error_type] += 1
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def describe_counts(self) -> str:
        """``DUPLICATE_KEY=1 VALIDATION_ERROR=2`` (sorted by type), or "" when nothing failed."""
        return " ".join(f"{t}={n}" for t, n in sorted(self.counts.items()))

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path, or None if nothing was ever written."""
        if not self._records:
            return self._file_path if self.written else None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self.written += len(self._records)
        self._records.clear()
        return fp
