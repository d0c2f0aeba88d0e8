from __future__ import annotations

from report_ingest.services.slug import base_slug, slugify, timestamp_token, unique_slug


def test_slugify_basic():
    assert slugify("Global EV Market") == "global-ev-market"


def test_slugify_transliterates_and_collapses_separators():
    assert slugify("  Café   Déjà-Vu -- Report!! ") == "cafe-deja-vu-report"
    assert slugify("Oil & Gas") == "oil-and-gas"


def test_slugify_empty_inputs():
    assert slugify(None) == ""
    assert slugify("") == ""
    assert slugify("!!!") == ""


def test_unique_slug_without_predicate_returns_base():
    assert unique_slug("Global EV Market") == "global-ev-market"


def test_unique_slug_appends_smallest_free_suffix():
    taken = {"global-ev-market", "global-ev-market-1"}
    assert unique_slug("Global EV Market", exists=taken.__contains__) == "global-ev-market-2"


def test_unique_slug_prefers_desired_slug():
    assert unique_slug("Global EV Market", "EV Outlook", exists=lambda s: False) == "ev-outlook"


def test_unique_slug_falls_back_to_timestamp_token(monkeypatch):
    import report_ingest.services.slug as slug_mod

    monkeypatch.setattr(slug_mod, "timestamp_token", lambda now=None: "abc123")
    assert unique_slug("???") == "abc123"


def test_timestamp_token_is_base36():
    assert timestamp_token(0) == "0"
    assert timestamp_token(72.0) == "1jk0"
    assert timestamp_token(1.0) == "rs"  # 1000 ms


def test_base_slug():
    assert base_slug("Global EV Market") == "global-ev-market"
    assert base_slug("Global EV Market", "custom") == "custom"
    assert base_slug("???") == ""


def test_slugify_drops_quotes_and_symbols():
    assert slugify("Women's Health Market") == "womens-health-market"
    assert slugify("5G / IoT Outlook") == "5g-iot-outlook"
