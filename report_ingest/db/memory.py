from __future__ import annotations

import copy
import os
from collections.abc import Sequence
from typing import Any

from ..models.report_record import CanonicalRecord
from ..models.taxonomy import Category, Subcategory, normalize_name
from ..models.write_instruction import (
    DuplicateMatch,
    Insert,
    MatchKey,
    SkipIfExists,
    UpdateOrInsert,
    WriteInstruction,
    WriteOutcome,
)
from .store import BatchWriteError, CatalogStore, DuplicateKeyError, StoreError, TaxonomyStore

"""In-memory catalog and taxonomy stores.

Used by the CLI mock mode (DISABLE_DB_CONNECT=1) and throughout the tests.
Unique constraints mirror the SQL schema: report slug, report code, category
name (case-insensitive) and slug, subcategory name and slug within a parent.
"""

__all__ = [
    "MOCK_MODE_ENV",
    "MemoryCatalogStore",
    "MemoryTaxonomyStore",
    "mock_mode_enabled",
]

MOCK_MODE_ENV = "DISABLE_DB_CONNECT"


def mock_mode_enabled() -> bool:
    """True when ``DISABLE_DB_CONNECT=1``: run against these stores instead of PostgreSQL."""
    return os.getenv(MOCK_MODE_ENV) == "1"


class MemoryCatalogStore(CatalogStore):
    def __init__(self) -> None:
        self.reports: dict[int, CanonicalRecord] = {}
        self._next_id = 1
        self.bulk_calls = 0
        self.single_calls = 0

    # -- lookups -------------------------------------------------------
    def find_one(self, key: MatchKey) -> DuplicateMatch | None:
        if key.by_code:
            for rid, rec in self.reports.items():
                if rec.report_code == key.report_code:
                    return DuplicateMatch(existing_id=rid, matched_by="code")
            return None
        if key.slug:
            for rid, rec in self.reports.items():
                if rec.slug == key.slug:
                    return DuplicateMatch(existing_id=rid, matched_by="slug")
        if key.title:
            for rid, rec in self.reports.items():
                if rec.title == key.title:
                    return DuplicateMatch(existing_id=rid, matched_by="title")
        return None

    def slug_exists(self, slug: str) -> bool:
        return any(rec.slug == slug for rec in self.reports.values())

    def get(self, report_id: int) -> CanonicalRecord:
        return self.reports[report_id]

    def find_by_slug(self, slug: str) -> CanonicalRecord | None:
        return next((r for r in self.reports.values() if r.slug == slug), None)

    # -- writes --------------------------------------------------------
    def _check_unique(self, record: CanonicalRecord, ignore_id: int | None = None) -> None:
        for rid, rec in self.reports.items():
            if rid == ignore_id:
                continue
            if rec.slug == record.slug:
                raise DuplicateKeyError(f"duplicate key: slug '{record.slug}' already exists")
            if record.report_code and rec.report_code == record.report_code:
                raise DuplicateKeyError(
                    f"duplicate key: report code '{record.report_code}' already exists"
                )

    def _insert(self, record: CanonicalRecord) -> WriteOutcome:
        self._check_unique(record)
        self.reports[self._next_id] = record
        self._next_id += 1
        return WriteOutcome.INSERTED

    def _apply(self, instruction: WriteInstruction) -> WriteOutcome:
        if isinstance(instruction, Insert):
            return self._insert(instruction.record)
        if isinstance(instruction, SkipIfExists):
            if self.find_one(instruction.key) is not None:
                return WriteOutcome.SKIPPED
            return self._insert(instruction.record)
        if isinstance(instruction, UpdateOrInsert):
            match = self.find_one(instruction.key)
            if match is None:
                return self._insert(instruction.record)
            existing = self.reports[int(match.existing_id)]
            # The stored slug is kept on update
            updated = instruction.record.with_slug(existing.slug)
            self._check_unique(updated, ignore_id=int(match.existing_id))
            self.reports[int(match.existing_id)] = updated
            return WriteOutcome.UPDATED
        raise StoreError(f"unsupported write instruction: {type(instruction).__name__}")

    def bulk_write(self, instructions: Sequence[WriteInstruction]) -> list[WriteOutcome]:
        self.bulk_calls += 1
        snapshot = (dict(self.reports), self._next_id)
        try:
            return [self._apply(ins) for ins in instructions]
        except StoreError as e:
            self.reports, self._next_id = snapshot
            raise BatchWriteError(str(e)) from e

    def write(self, instruction: WriteInstruction) -> WriteOutcome:
        self.single_calls += 1
        return self._apply(instruction)


class MemoryTaxonomyStore(TaxonomyStore):
    def __init__(self) -> None:
        self.categories: list[Category] = []
        self._next_id = 1

    def find_by_name(self, name: str) -> Category | None:
        key = normalize_name(name)
        return next((c for c in self.categories if normalize_name(c.name) == key), None)

    def category_slug_exists(self, slug: str) -> bool:
        return any(c.slug == slug for c in self.categories)

    def next_sort_order(self) -> int:
        if not self.categories:
            return 0
        return max(c.sort_order for c in self.categories) + 1

    def create(self, category: Category) -> Category:
        if self.find_by_name(category.name) is not None:
            raise DuplicateKeyError(f"category '{category.name}' already exists")
        if self.category_slug_exists(category.slug):
            raise DuplicateKeyError(f"category slug '{category.slug}' already exists")
        stored = copy.deepcopy(category)
        stored.id = self._next_id
        self._next_id += 1
        self.categories.append(stored)
        return stored

    def add_subcategory(self, category: Category, subcategory: Subcategory) -> Category:
        stored = self.find_by_name(category.name)
        if stored is None:
            raise StoreError(f"category '{category.name}' not found")
        if stored.find_subcategory(subcategory.name) is not None:
            raise DuplicateKeyError(
                f"subcategory '{subcategory.name}' already exists in '{stored.name}'"
            )
        if stored.subcategory_slug_exists(subcategory.slug):
            raise DuplicateKeyError(
                f"subcategory slug '{subcategory.slug}' already exists in '{stored.name}'"
            )
        sub = copy.deepcopy(subcategory)
        sub.id = sum(len(c.subcategories) for c in self.categories) + 1
        stored.subcategories.append(sub)
        return stored

    def as_dict(self) -> list[dict[str, Any]]:
        return [
            {"name": c.name, "slug": c.slug, "subcategories": [s.name for s in c.subcategories]}
            for c in self.categories
        ]
