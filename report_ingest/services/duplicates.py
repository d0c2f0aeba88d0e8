from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..db.store import CatalogStore
from ..models.report_record import CanonicalRecord
from ..models.write_instruction import (
    DuplicateStrategy,
    Insert,
    MatchKey,
    SkipIfExists,
    UpdateOrInsert,
    WriteInstruction,
)

"""Duplicate resolver.

Builds the match key for a record (report code alone when present, else
slug OR title) and turns the caller's strategy into a write instruction.
``find_duplicates`` answers the read-only check-duplicates request.
"""

__all__ = [
    "DuplicateCandidate",
    "DuplicateReport",
    "key_for",
    "match_key",
    "resolve_instruction",
    "find_duplicates",
]


def key_for(title: str, report_code: str | None, slug: str | None) -> MatchKey:
    if report_code:
        return MatchKey(report_code=report_code)
    return MatchKey(slug=slug or None, title=title)


def match_key(record: CanonicalRecord, base_slug: str | None = None) -> MatchKey:
    """Key identifying ``record`` in the catalog.

    ``base_slug`` is the slug the row asked for before any numeric suffix was
    appended, so re-imports of the same row find the stored report.
    """
    return key_for(record.title, record.report_code, base_slug or record.slug)


def resolve_instruction(
    record: CanonicalRecord,
    strategy: DuplicateStrategy,
    base_slug: str | None = None,
) -> WriteInstruction:
    if strategy is DuplicateStrategy.CREATE:
        return Insert(record)
    key = match_key(record, base_slug)
    if strategy is DuplicateStrategy.SKIP:
        return SkipIfExists(key, record)
    return UpdateOrInsert(key, record)


@dataclass(frozen=True)
class DuplicateCandidate:
    row: int
    title: str
    report_code: str
    key: MatchKey


@dataclass(frozen=True)
class DuplicateReport:
    row: int
    title: str
    report_code: str
    existing_id: int | str
    matched_by: str

    def to_dict(self) -> dict[str, object]:
        return {
            "row": self.row,
            "title": self.title,
            "reportCode": self.report_code,
            "existingId": self.existing_id,
            "matchedBy": self.matched_by,
        }


def find_duplicates(candidates: Iterable[DuplicateCandidate], catalog: CatalogStore) -> list[DuplicateReport]:
    """Look every candidate up in the catalog without writing anything."""
    found: list[DuplicateReport] = []
    for candidate in candidates:
        match = catalog.find_one(candidate.key)
        if match is None:
            continue
        found.append(
            DuplicateReport(
                row=candidate.row,
                title=candidate.title,
                report_code=candidate.report_code,
                existing_id=match.existing_id,
                matched_by=match.matched_by,
            )
        )
    return found
