from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

from ..models.row_data import RowData

"""Spreadsheet loader.

Reads one uploaded CSV/XLSX/XLS file into an ordered list of RowData, keeping
the original column headers. The first row is the header row; for workbooks
only the first sheet is read.

- Cells are read as objects with pandas NA-string coercion disabled, so text
  such as "NA" or "N/A" stays text.
- Blank cells and whitespace-only strings become None.
- Entirely blank rows are dropped.
"""

__all__ = [
    "FileReadError",
    "EmptyFileError",
    "SUPPORTED_EXTENSIONS",
    "read_spreadsheet",
    "normalize_frame",
    "load_rows",
    "inspect_rows",
]

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls")
CSV_ENCODINGS = ("utf-8-sig", "latin-1")


class FileReadError(Exception):
    """Raised when the upload cannot be parsed (unknown format or corrupt file)."""


class EmptyFileError(Exception):
    """Raised when the upload contains no data rows."""


def _normalize_extension(path: Path, extension: str | None) -> str:
    ext = (extension or path.suffix or "").strip().lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return ext


def _read_csv(path: Path) -> pd.DataFrame:
    last_error: Exception | None = None
    for encoding in CSV_ENCODINGS:
        try:
            return pd.read_csv(
                path,
                dtype=object,
                keep_default_na=False,
                encoding=encoding,
                skip_blank_lines=True,
            )
        except UnicodeDecodeError as e:
            last_error = e
            continue
    raise FileReadError(f"unable to decode CSV file {path.name}: {last_error}")


def read_spreadsheet(path: Path, extension: str | None = None) -> pd.DataFrame:
    """Read the raw DataFrame for an uploaded file.

    Parameters
    ----------
    path: file on disk
    extension: original upload extension (temp files may not carry one);
        falls back to ``path.suffix``

    Raises
    ------
    FileReadError: unsupported extension, missing file or parser failure
    EmptyFileError: the file has no content at all
    """
    ext = _normalize_extension(path, extension)
    if ext not in SUPPORTED_EXTENSIONS:
        raise FileReadError(
            f"unsupported file type '{ext or '<none>'}' (expected one of {', '.join(SUPPORTED_EXTENSIONS)})"
        )
    if not path.exists():
        raise FileReadError(f"file not found: {path}")

    try:
        if ext == ".csv":
            return _read_csv(path)
        # openpyxl for .xlsx, xlrd for .xls (pandas picks the engine)
        return pd.read_excel(path, sheet_name=0, dtype=object, keep_default_na=False)
    except pd.errors.EmptyDataError as e:
        raise EmptyFileError(f"{path.name} contains no data") from e
    except FileReadError:
        raise
    except Exception as e:
        raise FileReadError(f"unable to read {path.name}: {e}") from e


def _clean_value(val: Any) -> Any:
    if val is None:
        return None
    if isinstance(val, str):
        stripped = val.strip()
        return stripped or None
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):  # list-like cells
        pass
    if isinstance(val, pd.Timestamp):
        return val.to_pydatetime()
    return val


def normalize_frame(df: pd.DataFrame) -> list[RowData]:
    """Turn a raw DataFrame into RowData, dropping entirely blank rows.

    Row numbers are spreadsheet row numbers: the header is row 1.
    """
    columns = [str(c).strip() for c in df.columns]
    rows: list[RowData] = []
    for offset, raw in enumerate(df.itertuples(index=False, name=None)):
        values = {col: _clean_value(val) for col, val in zip(columns, raw, strict=False)}
        if all(v is None for v in values.values()):
            continue
        rows.append(RowData(row_number=offset + 2, values=values))
    return rows


def load_rows(path: Path, extension: str | None = None) -> list[RowData]:
    """Read an uploaded spreadsheet into RowData.

    Raises:
        FileReadError: The file cannot be parsed
        EmptyFileError: Zero data rows result
    """
    df = read_spreadsheet(path, extension)
    rows = normalize_frame(df)
    if not rows:
        raise EmptyFileError(f"{path.name} contains no data rows")
    return rows


def inspect_rows(rows: list[RowData], limit: int = 5) -> str:
    """Render the headers and the first ``limit`` rows for a quick look at a file."""
    columns: list[str] = []
    for row in rows:
        for col in row.columns:
            if col not in columns:
                columns.append(col)
    lines = [f"rows={len(rows)} columns={len(columns)}", "headers:"]
    lines += [f"  - {col}" for col in columns]
    for row in rows[:limit]:
        lines.append(f"row {row.row_number}:")
        for col in columns:
            value = row.get(col)
            if value is None:
                continue
            text = str(value).replace("\n", "\\n")
            if len(text) > 80:
                text = text[:77] + "..."
            lines.append(f"  {col}: {text}")
    return "\n".join(lines)
