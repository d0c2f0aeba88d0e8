from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import datetime

import pandas as pd

from ..models.report_record import REPORT_STATUSES, CanonicalRecord
from .content_formatter import (
    OVERVIEW,
    TABLE_OF_CONTENTS,
    build_segment_companies,
    format_content,
)

"""Record builder: resolved row -> CanonicalRecord.

Parses the typed fields (prices, flags, page counts, dates, keyword and tag
lists) and runs the three long-text columns through the content formatter.
Parsing is lenient: an unparseable optional value becomes None/default rather
than failing the row.
"""

__all__ = [
    "TRUE_VALUES",
    "parse_price",
    "parse_bool",
    "parse_int",
    "parse_date",
    "split_list",
    "normalize_status",
    "build_record",
]

logger = logging.getLogger(__name__)

TRUE_VALUES = frozenset({"true", "yes", "y", "1"})
DEFAULT_CURRENCY = "USD"
DEFAULT_STATUS = "draft"

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_LIST_SEPARATORS = re.compile(r"[,;]+")


def parse_price(text: str) -> float | None:
    """Parse "$4,950", "4950.00 USD" and the like; None when no number is present."""
    if not text:
        return None
    match = _NUMBER.search(text.replace(",", ""))
    return float(match.group()) if match else None


def parse_bool(text: str) -> bool:
    return text.strip().lower() in TRUE_VALUES


def parse_int(text: str) -> int | None:
    if not text:
        return None
    match = _NUMBER.search(text.replace(",", ""))
    return int(float(match.group())) if match else None


def parse_date(text: str) -> datetime | None:
    if not text:
        return None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def split_list(text: str, *, lower: bool = False) -> list[str]:
    items = []
    for part in _LIST_SEPARATORS.split(text or ""):
        item = " ".join(part.split())
        if not item:
            continue
        items.append(item.lower() if lower else item)
    return items


def normalize_status(text: str, row_number: int | None = None) -> str:
    status = (text or "").strip().lower()
    if not status:
        return DEFAULT_STATUS
    if status not in REPORT_STATUSES:
        logger.warning(
            "row %s: unknown status '%s', using '%s'", row_number, text, DEFAULT_STATUS
        )
        return DEFAULT_STATUS
    return status


def build_record(
    resolved: Mapping[str, str],
    *,
    title: str,
    slug: str,
    segment_fallback: str = "overview",
    row_number: int | None = None,
) -> CanonicalRecord:
    """Assemble a CanonicalRecord.

    Args:
        resolved: Output of resolve_fields()
        title: Validated title
        slug: Unique slug already reserved for this row
        segment_fallback: ``overview`` or ``none`` (see build_segment_companies)
        row_number: Spreadsheet row, for log messages only

    Returns:
        The canonical record
    """
    get = resolved.get
    overview_raw = get("overview", "")
    return CanonicalRecord(
        title=title,
        slug=slug,
        sub_title=get("sub_title", ""),
        report_code=get("report_code") or None,
        summary=get("summary", ""),
        category=get("category", ""),
        sub_category=get("sub_category", ""),
        overview=format_content(overview_raw, OVERVIEW),
        table_of_contents=format_content(get("table_of_contents", ""), TABLE_OF_CONTENTS),
        segment_companies=build_segment_companies(
            get("segment_companies", ""),
            get("segmentation", ""),
            get("companies", ""),
            overview_raw,
            fallback=segment_fallback,
        ),
        single_user_price=parse_price(get("single_user_price", "")),
        multi_user_price=parse_price(get("multi_user_price", "")),
        enterprise_price=parse_price(get("enterprise_price", "")),
        currency=(get("currency") or DEFAULT_CURRENCY).upper(),
        title_tag=get("title_tag", ""),
        meta_description=get("meta_description", ""),
        keywords=split_list(get("keywords", "")),
        tags=split_list(get("tags", ""), lower=True),
        status=normalize_status(get("status", ""), row_number),
        featured=parse_bool(get("featured", "")),
        popular=parse_bool(get("popular", "")),
        author=get("author", ""),
        pages=parse_int(get("pages", "")),
        report_format=get("report_format", ""),
        base_year=get("base_year", ""),
        forecast_period=get("forecast_period", ""),
        publish_date=parse_date(get("publish_date", "")),
    )
