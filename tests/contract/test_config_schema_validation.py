from __future__ import annotations

from pathlib import Path

import pytest

from report_ingest.config.loader import ConfigError, load_config


def _write(temp_workdir: Path, text: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(text, encoding="utf-8")
    return cfg


def test_full_sample_config_is_valid(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.default_duplicate_handling == "update"


@pytest.mark.parametrize(
    ("yaml_text", "fragment"),
    [
        ("unknown_key: 1\n", "Additional properties"),
        ("database:\n  hostname: db\n", "Additional properties"),
        ("default_duplicate_handling: merge\n", "'merge' is not one of"),
        ("segment_fallback: title\n", "'title' is not one of"),
        ("max_errors: 0\n", "less than the minimum"),
        ("database:\n  port: 70000\n", "greater than the maximum"),
        ("batching:\n  thresholds:\n    - {min_rows: 10}\n", "'size' is a required property"),
        ("batching:\n  default_size: 0\n", "less than the minimum"),
        ("progress_log_every: 0\n", "less than the minimum"),
    ],
)
def test_schema_rejects_invalid_config(temp_workdir: Path, yaml_text: str, fragment: str):
    cfg = _write(temp_workdir, yaml_text)
    with pytest.raises(ConfigError, match="config validation failed") as exc_info:
        load_config(cfg)
    assert fragment in str(exc_info.value)
