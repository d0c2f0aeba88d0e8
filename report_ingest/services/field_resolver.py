from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from ..models.row_data import RowData

"""Field resolver: heterogeneous spreadsheet headers -> canonical fields.

Spreadsheets arrive from several data sources with inconsistent headers. Each
canonical field has a fixed, ordered list of accepted header aliases; the
first alias whose cell is non-empty wins. Exact header matches are tried
before normalized ones (case-insensitive, whitespace collapsed, ``_``/``-``
read as spaces).
"""

__all__ = [
    "FIELD_ALIASES",
    "MIN_TITLE_LENGTH",
    "RowValidationError",
    "resolve_fields",
    "validate_title",
    "stringify",
]

MIN_TITLE_LENGTH = 3

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "title": ("Report Title", "Title", "Report Name", "Name"),
    "sub_title": ("Report Sub Title", "Sub Title", "Subtitle", "Report Subtitle"),
    "slug": ("Slug", "Report Slug", "URL Slug", "URL"),
    "report_code": ("Report Code", "Report ID", "Code", "Product Code", "SKU"),
    "summary": ("Summary", "Report Summary", "Short Description", "Abstract"),
    "category": (
        "Report Categories",
        "Report Category",
        "Categories",
        "Category",
        "Domain",
        "Industry",
        "Sector",
        "Vertical",
    ),
    "sub_category": (
        "Report Sub Categories",
        "Report Sub Category",
        "Sub Categories",
        "Sub Category",
        "SubCategory",
        "Subcategory",
        "Sub Domain",
        "Sub Industry",
    ),
    "overview": (
        "Report Overview",
        "Overview",
        "Report Description",
        "Description",
        "Content",
    ),
    "table_of_contents": ("Table of Contents", "Report TOC", "TOC", "Contents"),
    "segment_companies": (
        "Segmentation & Companies",
        "Segmentation and Companies",
        "Segments and Companies",
        "Segments & Companies",
        "Segment Companies",
    ),
    "segmentation": ("Segmentation", "Report Segmentation", "Market Segmentation", "Segments"),
    "companies": ("Companies", "Key Companies", "Key Players", "Companies Profiled"),
    "single_user_price": ("Single User Price", "Single User License", "Price", "Report Price"),
    "multi_user_price": ("Multi User Price", "Multi User License", "Site License Price"),
    "enterprise_price": ("Enterprise Price", "Enterprise License", "Corporate License Price"),
    "currency": ("Currency", "Price Currency"),
    "title_tag": ("Title Tag", "Meta Title", "SEO Title"),
    "meta_description": ("Meta Description", "SEO Description"),
    "keywords": ("Keywords", "Meta Keywords", "SEO Keywords"),
    "tags": ("Tags", "Report Tags"),
    "status": ("Status", "Report Status"),
    "featured": ("Featured", "Is Featured"),
    "popular": ("Popular", "Is Popular"),
    "author": ("Author", "Analyst", "Report Author"),
    "pages": ("Number of Pages", "No. of Pages", "Pages", "Page Count"),
    "report_format": ("Report Format", "Format"),
    "base_year": ("Base Year",),
    "forecast_period": ("Forecast Period", "Forecast Years"),
    "publish_date": (
        "Publish Date",
        "Published Date",
        "Published At",
        "Publication Date",
        "Date",
    ),
}

_SEPARATORS = re.compile(r"[\s_\-]+")


class RowValidationError(Exception):
    """Raised for a row that cannot become a catalog record (e.g. missing title)."""


def _normalize_header(header: str) -> str:
    return _SEPARATORS.sub(" ", str(header)).strip().casefold()


def stringify(value: Any) -> str:
    """Render a raw cell as stripped text ("" for blanks).

    Integral floats lose their ``.0`` (Excel stores 2024 as 2024.0); dates
    render as ISO strings.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value != value:  # NaN
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def _header_index(values: Mapping[str, Any]) -> dict[str, list[str]]:
    index: dict[str, list[str]] = {}
    for header in values:
        index.setdefault(_normalize_header(header), []).append(header)
    return index


def resolve_fields(
    row: RowData | Mapping[str, Any],
    aliases: Mapping[str, tuple[str, ...]] = FIELD_ALIASES,
) -> dict[str, str]:
    """Map a raw row onto canonical field names.

    Args:
        row: RowData or a plain header -> value mapping
        aliases: Canonical field -> ordered accepted headers

    Returns:
        Canonical field -> first non-empty value (stringified), "" if none
    """
    values: Mapping[str, Any] = row.values if isinstance(row, RowData) else row
    index = _header_index(values)
    resolved: dict[str, str] = {}
    for field_name, candidates in aliases.items():
        resolved[field_name] = ""
        for alias in candidates:
            headers = [alias] if alias in values else []
            headers += [h for h in index.get(_normalize_header(alias), []) if h != alias]
            text = next((t for t in (stringify(values[h]) for h in headers) if t), "")
            if text:
                resolved[field_name] = text
                break
    return resolved


def validate_title(resolved: Mapping[str, str]) -> str:
    """Return the trimmed title or raise RowValidationError."""
    title = " ".join((resolved.get("title") or "").split())
    if len(title) < MIN_TITLE_LENGTH:
        raise RowValidationError(
            f"Title is required and must be at least {MIN_TITLE_LENGTH} characters"
        )
    return title
