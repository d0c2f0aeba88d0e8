from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""RowData model for the report catalog importer.

RowData represents a single spreadsheet row as read by the loader, before any
column-name resolution. Headers are kept exactly as they appear in the file.
"""

__all__ = [
    "RowData",
]


@dataclass(frozen=True)
class RowData:
    """Logical representation of a single spreadsheet row.

    The row_number refers to the original spreadsheet row number: the header
    occupies row 1, so the first data row is row 2.
    """
    row_number: int  # Spreadsheet row number (header = 1, first data row = 2)
    values: dict[str, Any]  # Column header -> cleaned cell value (None for blanks)

    def get(self, column: str, default: Any = None) -> Any:
        return self.values.get(column, default)

    @property
    def columns(self) -> list[str]:
        return list(self.values.keys())
