from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from report_ingest.excel.reader import (
    EmptyFileError,
    FileReadError,
    inspect_rows,
    load_rows,
    normalize_frame,
)
from report_ingest.models.row_data import RowData


def test_load_xlsx_keeps_headers_and_row_numbers(make_spreadsheet):
    path = make_spreadsheet(
        [
            {"Report Title": "Alpha", "Pages": 120},
            {"Report Title": "Beta", "Pages": 80},
        ]
    )
    rows = load_rows(path)
    assert [r.row_number for r in rows] == [2, 3]
    assert rows[0].columns == ["Report Title", "Pages"]
    assert rows[0].get("Report Title") == "Alpha"
    assert rows[1].get("Pages") == 80


def test_load_csv_keeps_na_strings(tmp_path: Path):
    path = tmp_path / "reports.csv"
    path.write_text("Title,Region\nNA Market,N/A\n", encoding="utf-8")
    rows = load_rows(path)
    assert rows[0].values == {"Title": "NA Market", "Region": "N/A"}


def test_blank_rows_dropped_and_whitespace_cleaned(tmp_path: Path):
    path = tmp_path / "reports.csv"
    path.write_text("Title,Pages\n  Alpha  ,10\n,\n   ,  \nGamma,\n", encoding="utf-8")
    rows = load_rows(path)
    assert [r.row_number for r in rows] == [2, 5]
    assert rows[0].get("Title") == "Alpha"
    assert rows[1].get("Pages") is None


def test_latin1_csv_falls_back(tmp_path: Path):
    path = tmp_path / "reports.csv"
    path.write_bytes("Title\nMarch\xe9 Europ\xe9en\n".encode("latin-1"))
    rows = load_rows(path)
    assert rows[0].get("Title") == "Marché Européen"


def test_extension_override_for_temp_files(tmp_path: Path):
    path = tmp_path / "upload.tmp"
    path.write_text("Title\nAlpha\n", encoding="utf-8")
    rows = load_rows(path, extension="csv")
    assert rows[0].get("Title") == "Alpha"


def test_unsupported_extension(tmp_path: Path):
    path = tmp_path / "reports.txt"
    path.write_text("Title\nAlpha\n", encoding="utf-8")
    with pytest.raises(FileReadError, match="unsupported file type '.txt'"):
        load_rows(path)


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileReadError, match="file not found"):
        load_rows(tmp_path / "missing.xlsx")


def test_corrupt_workbook(tmp_path: Path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a zip archive")
    with pytest.raises(FileReadError, match="unable to read broken.xlsx"):
        load_rows(path)


def test_empty_csv(tmp_path: Path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(EmptyFileError):
        load_rows(path)


def test_header_only_csv(tmp_path: Path):
    path = tmp_path / "header.csv"
    path.write_text("Title,Pages\n", encoding="utf-8")
    with pytest.raises(EmptyFileError, match="no data rows"):
        load_rows(path)


def test_normalize_frame_converts_timestamps():
    import pandas as pd

    df = pd.DataFrame({"Publish Date": [pd.Timestamp("2024-03-01")], "Title": ["A"]})
    rows = normalize_frame(df)
    assert rows[0].get("Publish Date") == dt.datetime(2024, 3, 1)


def test_inspect_rows_renders_headers_and_samples():
    rows = [
        RowData(2, {"Title": "Alpha", "Overview": "line one\nline two"}),
        RowData(3, {"Title": "Beta", "Overview": "x" * 100}),
        RowData(4, {"Title": "Gamma", "Overview": None}),
    ]
    text = inspect_rows(rows, limit=2)
    lines = text.splitlines()
    assert lines[0] == "rows=3 columns=2"
    assert lines[1:4] == ["headers:", "  - Title", "  - Overview"]
    assert "  Overview: line one\\nline two" in lines
    assert "  Overview: " + "x" * 77 + "..." in lines
    assert "row 4:" not in lines
