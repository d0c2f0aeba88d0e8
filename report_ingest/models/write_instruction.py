from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .report_record import CanonicalRecord

"""Write instructions produced by the duplicate resolver.

A write instruction is a tagged variant consumed uniformly by every catalog
store implementation:

- Insert(record): always insert.
- UpdateOrInsert(key, record): update the record matching ``key`` in place,
  insert when nothing matches.
- SkipIfExists(key, record): insert only when nothing matches ``key``.

Keys are evaluated by the store at write time, in instruction order, so a row
sees the effects of rows written before it in the same batch.
"""

__all__ = [
    "DuplicateStrategy",
    "MatchKey",
    "DuplicateMatch",
    "Insert",
    "UpdateOrInsert",
    "SkipIfExists",
    "WriteInstruction",
    "WriteOutcome",
]


class DuplicateStrategy(Enum):
    """Caller-selected policy for rows matching an existing report."""
    SKIP = "skip"
    CREATE = "create"
    UPDATE = "update"

    @classmethod
    def parse(cls, value: str | DuplicateStrategy | None) -> DuplicateStrategy:
        """Parse a user-supplied strategy name; blank means UPDATE.

        Raises:
            ValueError: If the value is not one of skip/create/update
        """
        if isinstance(value, DuplicateStrategy):
            return value
        text = (value or "").strip().lower()
        if not text:
            return cls.UPDATE
        try:
            return cls(text)
        except ValueError:
            allowed = "|".join(s.value for s in cls)
            raise ValueError(f"invalid duplicate handling '{value}' (expected {allowed})") from None


@dataclass(frozen=True)
class MatchKey:
    """Lookup key identifying an existing report.

    When ``report_code`` is set the match is by code alone; otherwise by
    ``slug`` OR ``title``.
    """
    report_code: str | None = None
    slug: str | None = None
    title: str | None = None

    @property
    def by_code(self) -> bool:
        return bool(self.report_code)

    def describe(self) -> str:
        if self.by_code:
            return f"report_code={self.report_code!r}"
        return f"slug={self.slug!r} OR title={self.title!r}"


@dataclass(frozen=True)
class DuplicateMatch:
    existing_id: int | str
    matched_by: str  # code | slug | title


class WriteOutcome(Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Insert:
    record: CanonicalRecord


@dataclass(frozen=True)
class UpdateOrInsert:
    key: MatchKey
    record: CanonicalRecord


@dataclass(frozen=True)
class SkipIfExists:
    key: MatchKey
    record: CanonicalRecord


WriteInstruction = Union[Insert, UpdateOrInsert, SkipIfExists]
