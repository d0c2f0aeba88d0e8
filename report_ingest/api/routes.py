"""
report_ingest/api/routes.py

Bulk report HTTP endpoints.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, status

from ..db.store import CatalogStore, TaxonomyStore
from ..excel.reader import EmptyFileError, FileReadError
from ..excel.uploads import stored_upload
from ..models.config_models import ImportConfig
from ..models.write_instruction import DuplicateStrategy
from ..services.orchestrator import UnexpectedPipelineError, check_duplicates, run_import
from .dependencies import get_catalog_store, get_config, get_spreadsheet_upload, get_taxonomy_store
from .schemas import DuplicateCheckResponse, ImportResultResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("/check-duplicates", response_model=DuplicateCheckResponse)
def check_duplicates_endpoint(
    file: UploadFile = Depends(get_spreadsheet_upload),
    config: ImportConfig = Depends(get_config),
    catalog: CatalogStore = Depends(get_catalog_store),
) -> DuplicateCheckResponse:
    """
    Report which rows of the upload already exist in the catalog.
    """

    try:
        with stored_upload(file.file, file.filename or "", config.upload_dir) as path:
            check = check_duplicates(path, catalog, extension=Path(file.filename or "").suffix)
    except (FileReadError, EmptyFileError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    finally:
        file.file.close()

    return DuplicateCheckResponse.from_check(check)


@router.post(
    "/bulk-upload",
    response_model=ImportResultResponse,
    status_code=status.HTTP_201_CREATED,
)
def bulk_upload(
    file: UploadFile = Depends(get_spreadsheet_upload),
    duplicate_handling: str = Form(default="", alias="duplicateHandling"),
    config: ImportConfig = Depends(get_config),
    catalog: CatalogStore = Depends(get_catalog_store),
    taxonomy: TaxonomyStore = Depends(get_taxonomy_store),
) -> ImportResultResponse:
    """
    Import every row of the upload. Completed runs return 201 even when some
    rows failed; the per-row failures are listed in ``errors``.
    """

    try:
        strategy = DuplicateStrategy.parse(duplicate_handling or config.default_duplicate_handling)
    except ValueError as exc:
        file.file.close()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        with stored_upload(file.file, file.filename or "", config.upload_dir) as path:
            result = run_import(
                path,
                catalog,
                taxonomy,
                strategy=strategy,
                config=config,
                file_name=file.filename,
                extension=Path(file.filename or "").suffix,
            )
    except (FileReadError, EmptyFileError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except UnexpectedPipelineError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Bulk upload failed unexpectedly.",
        ) from exc
    finally:
        file.file.close()

    return ImportResultResponse.from_result(result)
