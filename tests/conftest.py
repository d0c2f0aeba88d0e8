# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from report_ingest.db.memory import MemoryCatalogStore, MemoryTaxonomyStore
from report_ingest.logging.init import LOGGER_NAME, reset_logging
from report_ingest.models.config_models import ImportConfig


@pytest.fixture(autouse=True)
def _clean_app_logger():
    yield
    # setup_logging() detaches the app logger from the root; undo that so
    # caplog sees records in later tests
    reset_logging()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: catalog
batching:
  thresholds:
    - {min_rows: 500, size: 25}
    - {min_rows: 100, size: 50}
  default_size: 100
max_errors: 50
segment_fallback: overview
default_duplicate_handling: update
upload_dir: ./uploads
error_log_dir: ./logs
progress_log_every: 1
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def import_config(tmp_path: Path) -> ImportConfig:
    return ImportConfig(
        upload_dir=str(tmp_path / "uploads"),
        error_log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture()
def catalog() -> MemoryCatalogStore:
    return MemoryCatalogStore()


@pytest.fixture()
def taxonomy() -> MemoryTaxonomyStore:
    return MemoryTaxonomyStore()


@pytest.fixture()
def make_spreadsheet(tmp_path: Path) -> Callable[..., Path]:
    """Write rows (list of header -> value dicts) as .xlsx (openpyxl) or .csv."""

    def _make(rows: list[dict[str, Any]], name: str = "reports.xlsx") -> Path:
        path = tmp_path / "data" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        df = pd.DataFrame(rows)
        if path.suffix == ".csv":
            df.to_csv(path, index=False)
        else:
            with pd.ExcelWriter(path, engine="openpyxl") as writer:
                df.to_excel(writer, sheet_name="Reports", index=False)
        return path

    return _make


@pytest.fixture()
def ev_rows() -> list[dict[str, Any]]:
    """Two identical rows sharing a title, category and subcategory."""
    row = {
        "Report Title": "Global EV Market",
        "Report Categories": "Automotive",
        "Sub Category": "Electric Vehicles",
        "Report Overview": "EXECUTIVE SUMMARY\n• Growth is strong\n• Prices are falling",
    }
    return [dict(row), dict(row)]
