from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ..models.taxonomy import Category, Subcategory
from ..models.write_instruction import DuplicateMatch, MatchKey, WriteInstruction, WriteOutcome

"""Persistence interfaces consumed by the import pipeline.

The pipeline does not own the catalog or the taxonomy; it talks to them
through these two interfaces. Implementations live in
report_ingest.db.memory (mock mode, tests) and report_ingest.db.postgres.
"""

__all__ = [
    "StoreError",
    "DuplicateKeyError",
    "BatchWriteError",
    "CatalogStore",
    "TaxonomyStore",
]


class StoreError(Exception):
    """Base class for storage faults."""


class DuplicateKeyError(StoreError):
    """A unique constraint (slug, report code, taxonomy name) was violated."""


class BatchWriteError(StoreError):
    """The bulk operation for a whole batch failed; nothing from it was applied."""


class CatalogStore(ABC):
    """Report catalog persistence."""

    @abstractmethod
    def find_one(self, key: MatchKey) -> DuplicateMatch | None:
        """Find the report matching ``key`` (code alone, else slug OR title).

        A slug match wins over a title match.
        """

    @abstractmethod
    def slug_exists(self, slug: str) -> bool:
        ...

    @abstractmethod
    def bulk_write(self, instructions: Sequence[WriteInstruction]) -> list[WriteOutcome]:
        """Apply ``instructions`` in order as one atomic operation.

        Returns one outcome per instruction.

        Raises:
            BatchWriteError: Nothing was applied
        """

    @abstractmethod
    def write(self, instruction: WriteInstruction) -> WriteOutcome:
        """Apply a single instruction (per-record fallback path).

        Raises:
            DuplicateKeyError: Unique constraint violation
            StoreError: Any other storage fault
        """


class TaxonomyStore(ABC):
    """Category / subcategory persistence. Writes are visible immediately."""

    @abstractmethod
    def find_by_name(self, name: str) -> Category | None:
        """Case-insensitive lookup, subcategories included."""

    @abstractmethod
    def category_slug_exists(self, slug: str) -> bool:
        ...

    @abstractmethod
    def next_sort_order(self) -> int:
        ...

    @abstractmethod
    def create(self, category: Category) -> Category:
        """Persist a new category and return it with its id assigned.

        Raises:
            DuplicateKeyError: Name or slug already taken
        """

    @abstractmethod
    def add_subcategory(self, category: Category, subcategory: Subcategory) -> Category:
        """Persist ``subcategory`` under ``category`` and return the updated category.

        Raises:
            DuplicateKeyError: Name or slug already taken within the parent
        """
