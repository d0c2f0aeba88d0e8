"""
report_ingest/api/dependencies.py

Shared FastAPI dependencies: configuration, store binding and upload
validation. Tests replace the store dependencies through
``app.dependency_overrides``.
"""

from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache
from pathlib import Path
from typing import Any

from fastapi import Depends, File, HTTPException, UploadFile, status

from ..config.loader import load_config
from ..db.memory import MemoryCatalogStore, MemoryTaxonomyStore, mock_mode_enabled
from ..db.postgres import PostgresCatalogStore, PostgresTaxonomyStore, db_connection
from ..db.store import CatalogStore, TaxonomyStore
from ..excel.reader import SUPPORTED_EXTENSIONS
from ..models.config_models import ImportConfig


@lru_cache(maxsize=1)
def get_config() -> ImportConfig:
    """
    Load the importer configuration once per process.
    """

    return load_config()


@lru_cache(maxsize=1)
def _memory_stores() -> tuple[MemoryCatalogStore, MemoryTaxonomyStore]:
    return MemoryCatalogStore(), MemoryTaxonomyStore()


def get_connection(config: ImportConfig = Depends(get_config)) -> Iterator[Any]:
    """
    One database connection per request (None in mock mode).
    """

    if mock_mode_enabled():
        yield None
        return
    with db_connection(config.database) as conn:
        yield conn


def get_catalog_store(conn: Any = Depends(get_connection)) -> CatalogStore:
    if conn is None:
        return _memory_stores()[0]
    return PostgresCatalogStore(conn)


def get_taxonomy_store(conn: Any = Depends(get_connection)) -> TaxonomyStore:
    if conn is None:
        return _memory_stores()[1]
    return PostgresTaxonomyStore(conn)


def get_spreadsheet_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV or Excel workbook by extension.
    """

    extension = Path((file.filename or "").strip().lower()).suffix
    if extension not in SUPPORTED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type. Allowed: {', '.join(SUPPORTED_EXTENSIONS)}",
        )
    return file
