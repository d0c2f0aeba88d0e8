from __future__ import annotations

import logging
from dataclasses import dataclass

from ..db.store import StoreError, TaxonomyStore
from ..models.taxonomy import Category, Subcategory
from .slug import unique_slug

"""Taxonomy resolver: create categories / subcategories on first reference.

Lookups are case-insensitive. New nodes get the next sort position and a
unique slug (category slugs are global, subcategory slugs are unique within
their parent) and are persisted immediately, so later rows of the same run
find them instead of creating them again.
"""

__all__ = [
    "TaxonomyCreationError",
    "CategoryResolution",
    "SubcategoryResolution",
    "TaxonomyResolver",
]

logger = logging.getLogger(__name__)


class TaxonomyCreationError(Exception):
    """A category or subcategory could not be resolved or created."""


@dataclass(frozen=True)
class CategoryResolution:
    record: Category
    created: bool


@dataclass(frozen=True)
class SubcategoryResolution:
    category: Category
    category_created: bool
    subcategory_created: bool


def _clean_name(name: str | None) -> str:
    return " ".join(str(name or "").split())


class TaxonomyResolver:
    def __init__(self, store: TaxonomyStore) -> None:
        self.store = store

    def ensure_category(self, name: str) -> CategoryResolution:
        """Find the category named ``name`` or create it.

        Raises:
            TaxonomyCreationError: Empty name, or the store rejected the lookup/insert
        """
        clean = _clean_name(name)
        if not clean:
            raise TaxonomyCreationError("category name is empty")
        try:
            existing = self.store.find_by_name(clean)
            if existing is not None:
                return CategoryResolution(record=existing, created=False)
            category = Category(
                name=clean,
                slug=unique_slug(clean, exists=self.store.category_slug_exists),
                sort_order=self.store.next_sort_order(),
            )
            created = self.store.create(category)
        except StoreError as e:
            raise TaxonomyCreationError(f"category '{clean}': {e}") from e
        logger.info("created category '%s' (slug=%s)", created.name, created.slug)
        return CategoryResolution(record=created, created=True)

    def ensure_subcategory(self, category_name: str, sub_name: str) -> SubcategoryResolution:
        """Ensure ``category_name`` exists and has a subcategory ``sub_name``.

        Raises:
            TaxonomyCreationError: Empty names, or a store fault
        """
        resolution = self.ensure_category(category_name)
        category = resolution.record
        clean = _clean_name(sub_name)
        if not clean:
            raise TaxonomyCreationError(f"subcategory name is empty (category '{category.name}')")
        if category.find_subcategory(clean) is not None:
            return SubcategoryResolution(
                category=category,
                category_created=resolution.created,
                subcategory_created=False,
            )
        subcategory = Subcategory(
            name=clean,
            slug=unique_slug(clean, exists=category.subcategory_slug_exists),
            sort_order=category.next_subcategory_sort_order(),
        )
        try:
            updated = self.store.add_subcategory(category, subcategory)
        except StoreError as e:
            raise TaxonomyCreationError(f"subcategory '{clean}' in '{category.name}': {e}") from e
        logger.info("created subcategory '%s' under '%s'", clean, category.name)
        return SubcategoryResolution(
            category=updated,
            category_created=resolution.created,
            subcategory_created=True,
        )
