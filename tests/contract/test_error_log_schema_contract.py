from __future__ import annotations

import json
import re
from pathlib import Path

from report_ingest.services.orchestrator import run_import

"""Every error log line carries exactly the documented key set."""

EXPECTED_KEYS = {"timestamp", "file", "row", "title", "report_code", "error_type", "message"}
ERROR_TYPES = {"VALIDATION_ERROR", "DUPLICATE_KEY", "STORE_ERROR", "TAXONOMY_ERROR"}


def test_error_log_lines_match_contract(make_spreadsheet, catalog, taxonomy, import_config):
    rows = [
        {"Report Title": "", "Report Code": "A-1"},
        {"Report Title": "Smart Grid Market", "Report Code": "A-2"},
        {"Report Title": "Smart Meter Market", "Report Code": "A-2"},
    ]
    result = run_import(make_spreadsheet(rows, name="grid.xlsx"), catalog, taxonomy,
                        strategy="create", config=import_config)

    path = Path(result.error_log_path)
    assert re.match(r"^errors-\d{8}-\d{6}\.log$", path.name)
    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert len(records) == 2
    for rec in records:
        assert set(rec) == EXPECTED_KEYS
        assert rec["file"] == "grid.xlsx"
        assert rec["error_type"] in ERROR_TYPES
        assert re.match(r"^[A-Z]+(_[A-Z]+)*$", rec["error_type"])
        assert isinstance(rec["row"], int)
        assert rec["timestamp"].endswith("Z")
    assert [(r["row"], r["error_type"]) for r in records] == [(2, "VALIDATION_ERROR"), (4, "DUPLICATE_KEY")]
