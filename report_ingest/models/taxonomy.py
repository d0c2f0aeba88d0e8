from __future__ import annotations

from dataclasses import dataclass, field

"""Taxonomy domain models (Category / Subcategory).

Categories are globally unique by name (case-insensitive) and carry an ordered
list of subcategories, each unique by name within its parent.
"""

__all__ = [
    "Category",
    "Subcategory",
    "normalize_name",
]


def normalize_name(name: str) -> str:
    """Case-insensitive comparison key for taxonomy names."""
    return " ".join(str(name or "").split()).casefold()


@dataclass
class Subcategory:
    name: str
    slug: str
    description: str = ""
    is_active: bool = True
    sort_order: int = 0
    is_top_trending: bool = False
    id: int | None = None


@dataclass
class Category:
    """A taxonomy node classifying catalog reports.

    Mutable on purpose: stores append subcategories to the same instance they
    return from ``find_by_name`` so callers observe the new child at once.
    """
    name: str
    slug: str
    description: str = ""
    is_active: bool = True
    sort_order: int = 0
    subcategories: list[Subcategory] = field(default_factory=list)
    id: int | None = None

    def find_subcategory(self, name: str) -> Subcategory | None:
        key = normalize_name(name)
        for sub in self.subcategories:
            if normalize_name(sub.name) == key:
                return sub
        return None

    def subcategory_slug_exists(self, slug: str) -> bool:
        return any(sub.slug == slug for sub in self.subcategories)

    def next_subcategory_sort_order(self) -> int:
        if not self.subcategories:
            return 0
        return max(sub.sort_order for sub in self.subcategories) + 1
