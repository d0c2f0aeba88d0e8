"""
report_ingest/api/schemas.py

Response schemas for the bulk report endpoints. Field names are snake_case in
Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.import_result import ImportResult
from ..services.orchestrator import DuplicateCheck


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RowErrorResponse(CamelModel):
    """
    One failed row.
    """

    row: int = Field(..., ge=1)
    title: str = ""
    report_code: str = ""
    message: str


class ImportResultResponse(CamelModel):
    """
    API response model for a completed bulk upload.
    """

    total: int = Field(..., ge=0)
    inserted: int = Field(..., ge=0)
    updated: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    success_rate: float = Field(..., ge=0, le=1)
    duration_seconds: float = Field(..., ge=0)
    records_per_second: float = Field(..., ge=0)
    categories_created: int = Field(..., ge=0)
    subcategories_created: int = Field(..., ge=0)
    errors: list[RowErrorResponse] = Field(default_factory=list)
    errors_truncated: bool = False
    duplicate_handling: str
    batch_size: int = 0
    total_batches: int = 0
    start_time: datetime
    end_time: datetime

    @classmethod
    def from_result(cls, result: ImportResult) -> ImportResultResponse:
        return cls(
            total=result.total,
            inserted=result.inserted,
            updated=result.updated,
            skipped=result.skipped,
            failed=result.failed,
            success_rate=result.success_rate,
            duration_seconds=result.duration_seconds,
            records_per_second=result.records_per_second,
            categories_created=result.categories_created,
            subcategories_created=result.subcategories_created,
            errors=[
                RowErrorResponse(
                    row=e.row,
                    title=e.title,
                    report_code=e.report_code,
                    message=e.message,
                )
                for e in result.errors
            ],
            errors_truncated=result.errors_truncated,
            duplicate_handling=result.duplicate_handling,
            batch_size=result.batch_size,
            total_batches=result.total_batches,
            start_time=result.start_time,
            end_time=result.end_time,
        )


class DuplicateResponse(CamelModel):
    row: int = Field(..., ge=1)
    title: str
    report_code: str = ""
    existing_id: int | str
    matched_by: str


class DuplicateCheckResponse(CamelModel):
    """
    API response model for the read-only duplicate check.
    """

    total_records: int = Field(..., ge=0)
    duplicates: list[DuplicateResponse] = Field(default_factory=list)
    duplicate_count: int = Field(..., ge=0)

    @classmethod
    def from_check(cls, check: DuplicateCheck) -> DuplicateCheckResponse:
        return cls(
            total_records=check.total_records,
            duplicates=[
                DuplicateResponse(
                    row=d.row,
                    title=d.title,
                    report_code=d.report_code,
                    existing_id=d.existing_id,
                    matched_by=d.matched_by,
                )
                for d in check.duplicates
            ],
            duplicate_count=check.duplicate_count,
        )
