from __future__ import annotations

import logging
from datetime import datetime

from report_ingest.services.field_resolver import resolve_fields
from report_ingest.services.record_builder import (
    build_record,
    normalize_status,
    parse_bool,
    parse_date,
    parse_int,
    parse_price,
    split_list,
)


def test_parse_price():
    assert parse_price("$4,950") == 4950.0
    assert parse_price("4950.50 USD") == 4950.5
    assert parse_price("") is None
    assert parse_price("on request") is None


def test_parse_bool():
    assert parse_bool("Yes") is True
    assert parse_bool("1") is True
    assert parse_bool("no") is False
    assert parse_bool("") is False


def test_parse_int():
    assert parse_int("250 pages") == 250
    assert parse_int("1,200") == 1200
    assert parse_int("n/a") is None


def test_parse_date():
    assert parse_date("2024-01-15") == datetime(2024, 1, 15)
    assert parse_date("not a date") is None
    assert parse_date("") is None


def test_split_list():
    assert split_list("EV, Battery;; Charging ") == ["EV", "Battery", "Charging"]
    assert split_list("EV, Battery", lower=True) == ["ev", "battery"]
    assert split_list("") == []


def test_normalize_status_defaults_and_warns(caplog):
    assert normalize_status("Published") == "published"
    assert normalize_status("") == "draft"
    with caplog.at_level(logging.WARNING):
        assert normalize_status("live", row_number=7) == "draft"
    assert "row 7: unknown status 'live'" in caplog.text


def test_build_record_full_row():
    resolved = resolve_fields(
        {
            "Report Title": "Global EV Market",
            "Report Code": "EV-001",
            "Report Categories": "Automotive",
            "Sub Category": "Electric Vehicles",
            "Report Overview": "- Growth\n- Margins",
            "Table of Contents": "1. Introduction",
            "Single User Price": "$4,950",
            "Currency": "usd",
            "Keywords": "EV, Battery",
            "Tags": "EV; Mobility",
            "Status": "Published",
            "Featured": "yes",
            "Pages": 210,
            "Publish Date": "2024-03-01",
        }
    )
    record = build_record(resolved, title="Global EV Market", slug="global-ev-market")

    assert record.slug == "global-ev-market"
    assert record.report_code == "EV-001"
    assert record.category == "Automotive"
    assert record.sub_category == "Electric Vehicles"
    assert record.overview == "<ul><li>Growth</li><li>Margins</li></ul>"
    assert record.table_of_contents == "<h2>1 Introduction</h2>"
    assert record.segment_companies == "<ul><li>Growth</li><li>Margins</li></ul>"
    assert record.single_user_price == 4950.0
    assert record.currency == "USD"
    assert record.keywords == ["EV", "Battery"]
    assert record.tags == ["ev", "mobility"]
    assert record.status == "published"
    assert record.featured is True
    assert record.popular is False
    assert record.pages == 210
    assert record.publish_date == datetime(2024, 3, 1)


def test_build_record_minimal_row_uses_defaults():
    record = build_record(
        resolve_fields({"Title": "Solar Outlook"}),
        title="Solar Outlook",
        slug="solar-outlook",
        segment_fallback="none",
    )
    assert record.report_code is None
    assert record.overview == ""
    assert record.segment_companies == ""
    assert record.currency == "USD"
    assert record.status == "draft"
    assert record.pages is None
    assert record.publish_date is None
