from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from report_ingest.models.import_result import ImportStats
from report_ingest.services.summary import build_result, render_summary_line

SUMMARY_RE = re.compile(
    r"^SUMMARY rows=(\d+) inserted=(\d+) updated=(\d+) skipped=(\d+) failed=(\d+) "
    r"categories_created=(\d+) subcategories_created=(\d+) "
    r"elapsed_sec=([0-9]+(?:\.[0-9]+)?) throughput_rps=([0-9]+(?:\.[0-9]+)?)$"
)


def _line(stats: ImportStats, seconds: float) -> str:
    start = datetime(2024, 5, 1, tzinfo=timezone.utc)
    result = build_result(
        stats,
        start_time=start,
        end_time=start + timedelta(seconds=seconds),
        duplicate_handling="skip",
    )
    return render_summary_line(result)


def test_summary_line_format():
    line = _line(ImportStats(total=7, inserted=3, updated=2, skipped=1, failed=1,
                             categories_created=1, subcategories_created=2), 1.5)
    m = SUMMARY_RE.match(line)
    assert m is not None, line
    assert m.groups()[:7] == ("7", "3", "2", "1", "1", "1", "2")
    assert m.group(8) == "1.5"


def test_summary_line_never_uses_scientific_notation():
    line = _line(ImportStats(total=1, inserted=1), 12345.678)
    assert SUMMARY_RE.match(line) is not None, line
    assert "e-" not in line
