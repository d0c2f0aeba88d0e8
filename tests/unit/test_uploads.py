from __future__ import annotations

import io
import re
from pathlib import Path

import pytest

from report_ingest.excel.uploads import stored_upload, upload_name_parts


def test_upload_name_parts_slug_and_extension():
    assert upload_name_parts("Market Data 2024.XLSX") == ("market-data-2024-", ".xlsx")


def test_upload_name_parts_without_stem():
    assert upload_name_parts("") == ("upload-", "")


def test_stored_upload_removed_after_success(tmp_path: Path):
    upload_dir = tmp_path / "uploads"
    with stored_upload(io.BytesIO(b"Title\nAlpha\n"), "reports.csv", upload_dir) as path:
        assert path.parent == upload_dir
        assert path.read_bytes() == b"Title\nAlpha\n"
        assert re.match(r"^reports-.+\.csv$", path.name)
    assert not path.exists()
    assert list(upload_dir.iterdir()) == []


def test_stored_upload_removed_after_failure(tmp_path: Path):
    upload_dir = tmp_path / "uploads"
    with pytest.raises(RuntimeError):
        with stored_upload(io.BytesIO(b"data"), "reports.xlsx", upload_dir) as path:
            raise RuntimeError("boom")
    assert not path.exists()


def test_same_name_uploads_get_separate_files(tmp_path: Path, monkeypatch):
    # a frozen clock must not make two in-flight uploads share a path
    monkeypatch.setattr("time.time", lambda: 1_700_000_000.0)
    with stored_upload(io.BytesIO(b"first"), "Reports.csv", tmp_path) as first:
        with stored_upload(io.BytesIO(b"second"), "Reports.csv", tmp_path) as second:
            assert first != second
            assert first.read_bytes() == b"first"
        assert not second.exists()
        assert first.exists()
        assert first.read_bytes() == b"first"
    assert not first.exists()
