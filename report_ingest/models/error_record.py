from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

This module defines the ErrorRecord dataclass used for structured JSON Lines
error logging during an import run. ``row`` accepts -1 as a sentinel for
file-level errors where no specific row applies.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Uploaded file name being processed
        row: Spreadsheet row number. Use -1 for file-level errors
        title: Resolved report title ("" when unknown)
        report_code: Resolved report code ("" when absent)
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Error message or description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    row: int
    title: str
    report_code: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(
        file: str,
        row: int,
        error_type: str,
        message: str,
        title: str = "",
        report_code: str = "",
    ) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            title=title,
            report_code=report_code,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to a single JSON line (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
