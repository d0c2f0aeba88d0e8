from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from typing import Any

"""CanonicalRecord: the normalized shape of one catalog report.

Produced by the record builder from a resolved spreadsheet row, consumed by
the duplicate resolver and the catalog stores. Field names double as the
column names of the ``reports`` table.
"""

__all__ = [
    "CanonicalRecord",
    "REPORT_STATUSES",
    "RECORD_COLUMNS",
]

REPORT_STATUSES = ("draft", "published", "archived")


@dataclass(frozen=True)
class CanonicalRecord:
    """One catalog report ready to persist.

    Invariants: ``title`` is non-empty and ``slug`` is non-empty and unique at
    the moment it was assigned. ``category``/``sub_category`` are free-text
    names, not foreign keys into the taxonomy.
    """
    title: str
    slug: str
    sub_title: str = ""
    report_code: str | None = None  # unique when present
    summary: str = ""
    category: str = ""
    sub_category: str = ""
    overview: str = ""  # formatted markup
    table_of_contents: str = ""  # formatted markup
    segment_companies: str = ""  # formatted markup
    single_user_price: float | None = None
    multi_user_price: float | None = None
    enterprise_price: float | None = None
    currency: str = "USD"
    title_tag: str = ""
    meta_description: str = ""
    keywords: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    status: str = "draft"
    featured: bool = False
    popular: bool = False
    author: str = ""
    pages: int | None = None
    report_format: str = ""
    base_year: str = ""
    forecast_period: str = ""
    publish_date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def with_slug(self, slug: str) -> CanonicalRecord:
        return replace(self, slug=slug)


# Column order used by the SQL store; slug is only written on insert.
RECORD_COLUMNS: tuple[str, ...] = tuple(f.name for f in fields(CanonicalRecord))
