from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..db.store import CatalogStore, StoreError, TaxonomyStore
from ..excel.reader import EmptyFileError, FileReadError, load_rows
from ..logging.error_log import STORE_ERROR, TAXONOMY_ERROR, VALIDATION_ERROR, ErrorLogBuffer
from ..logging.init import import_context, log_summary
from ..models.config_models import ImportConfig
from ..models.import_result import ImportResult, ImportStats, RunState
from ..models.row_data import RowData
from ..models.write_instruction import DuplicateStrategy
from .batch_writer import BatchWriter, PendingWrite, batch_size_for
from .duplicates import (
    DuplicateCandidate,
    DuplicateReport,
    find_duplicates,
    key_for,
    resolve_instruction,
)
from .field_resolver import RowValidationError, resolve_fields, validate_title
from .progress import ProgressTracker
from .record_builder import build_record
from .slug import base_slug, unique_slug
from .summary import build_result, render_summary_line
from .taxonomy import TaxonomyCreationError, TaxonomyResolver

"""Service orchestration for the report catalog importer.

This module runs one import end to end: load the spreadsheet, resolve and
validate every row, resolve taxonomy and slugs, hand write instructions to
the batch writer, and build the ImportResult.

Rows are processed strictly in order, so taxonomy creation and slug
assignment observe every earlier row of the same run.
"""

__all__ = [
    "ProcessingError",
    "NoValidRowsError",
    "UnexpectedPipelineError",
    "ValidatedRow",
    "DuplicateCheck",
    "validate_rows",
    "run_import",
    "check_duplicates",
]

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Base exception for processing errors."""


class NoValidRowsError(EmptyFileError):
    """Every row of the file failed validation."""


class UnexpectedPipelineError(ProcessingError):
    """Wraps any fault not classified as a file or row error."""


@dataclass(frozen=True)
class ValidatedRow:
    row: RowData
    resolved: dict[str, str]
    title: str

    @property
    def row_number(self) -> int:
        return self.row.row_number


@dataclass(frozen=True)
class DuplicateCheck:
    total_records: int
    duplicates: list[DuplicateReport] = field(default_factory=list)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)


def validate_rows(
    rows: Sequence[RowData],
) -> tuple[list[ValidatedRow], list[tuple[RowData, dict[str, str], RowValidationError]]]:
    """Resolve every row's fields and split valid rows from invalid ones."""
    valid: list[ValidatedRow] = []
    invalid: list[tuple[RowData, dict[str, str], RowValidationError]] = []
    for row in rows:
        resolved = resolve_fields(row)
        try:
            title = validate_title(resolved)
        except RowValidationError as e:
            invalid.append((row, resolved, e))
            continue
        valid.append(ValidatedRow(row=row, resolved=resolved, title=title))
    return valid, invalid


def _resolve_taxonomy(
    resolver: TaxonomyResolver,
    item: ValidatedRow,
    stats: ImportStats,
    error_log: ErrorLogBuffer,
) -> None:
    category = item.resolved.get("category", "")
    sub_category = item.resolved.get("sub_category", "")
    if not category:
        return
    try:
        if sub_category:
            sub = resolver.ensure_subcategory(category, sub_category)
            stats.categories_created += int(sub.category_created)
            stats.subcategories_created += int(sub.subcategory_created)
        else:
            cat = resolver.ensure_category(category)
            stats.categories_created += int(cat.created)
    except TaxonomyCreationError as e:
        # Non-fatal: the report keeps its free-text category names
        logger.warning("row %d: taxonomy not updated: %s", item.row_number, e)
        error_log.record(
            item.row_number,
            TAXONOMY_ERROR,
            str(e),
            title=item.title,
            report_code=item.resolved.get("report_code", ""),
        )


def run_import(
    path: Path,
    catalog: CatalogStore,
    taxonomy: TaxonomyStore,
    *,
    strategy: DuplicateStrategy | str = DuplicateStrategy.UPDATE,
    config: ImportConfig | None = None,
    file_name: str | None = None,
    extension: str | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ImportResult:
    """Import one spreadsheet into the catalog.

    Args:
        path: Spreadsheet on disk (the caller owns its lifecycle)
        catalog: Catalog store receiving the reports
        taxonomy: Taxonomy store for category/subcategory creation
        strategy: Duplicate handling (skip, create or update)
        config: Import configuration (defaults when None)
        file_name: Original upload name, used in logs (defaults to path name)
        extension: Explicit file extension when ``path`` has none
        error_log: JSON Lines buffer (a new one under ``config.error_log_dir`` when None)

    Returns:
        ImportResult for the run, also when some rows failed

    Raises:
        FileReadError: The file cannot be read
        EmptyFileError: The file has no data rows
        NoValidRowsError: No row passed validation
        UnexpectedPipelineError: Any other fault
    """
    config = config or ImportConfig()
    strategy = DuplicateStrategy.parse(strategy)
    file_name = file_name or path.name
    error_log = error_log if error_log is not None else ErrorLogBuffer(config.error_log_dir)
    error_log.file_name = error_log.file_name or file_name
    stats = ImportStats(max_errors=config.max_errors)
    start_time = datetime.now(UTC)

    with import_context(file_name):
        try:
            rows = load_rows(path, extension)
            stats.total = len(rows)
            stats.state = RunState.LOADED
            logger.info("loaded %d rows (duplicate handling: %s)", len(rows), strategy.value)

            batch_size = batch_size_for(stats.total, config.batching)
            with ProgressTracker(stats.total, log_every=config.progress_log_every) as progress:
                writer = BatchWriter(
                    catalog,
                    stats,
                    batch_size=batch_size,
                    error_log=error_log,
                    on_flush=progress.advance,
                )

                valid, invalid = validate_rows(rows)
                for row, resolved, exc in invalid:
                    writer.record_failure(
                        row.row_number,
                        resolved.get("title", ""),
                        resolved.get("report_code", ""),
                        str(exc),
                        error_type=VALIDATION_ERROR,
                    )
                progress.count_failed(len(invalid))
                if not valid:
                    raise NoValidRowsError(f"{file_name}: no valid rows ({len(invalid)} rows failed validation)")
                stats.state = RunState.VALIDATED

                stats.state = RunState.PROCESSING
                resolver = TaxonomyResolver(taxonomy)
                reserved: set[str] = set()

                def slug_taken(candidate: str) -> bool:
                    return candidate in reserved or catalog.slug_exists(candidate)

                for item in valid:
                    _resolve_taxonomy(resolver, item, stats, error_log)
                    desired = item.resolved.get("slug", "")
                    try:
                        slug = unique_slug(item.title, desired, exists=slug_taken)
                    except StoreError as e:
                        writer.record_failure(
                            item.row_number,
                            item.title,
                            item.resolved.get("report_code", ""),
                            str(e),
                            error_type=STORE_ERROR,
                        )
                        progress.count_failed(1)
                        continue
                    reserved.add(slug)
                    record = build_record(
                        item.resolved,
                        title=item.title,
                        slug=slug,
                        segment_fallback=config.segment_fallback,
                        row_number=item.row_number,
                    )
                    instruction = resolve_instruction(
                        record, strategy, base_slug(item.title, desired) or None
                    )
                    writer.add(PendingWrite(row=item.row_number, instruction=instruction))
                writer.finish()
                progress.set_postfix(inserted=stats.inserted, updated=stats.updated, failed=stats.failed)
        except (FileReadError, EmptyFileError):
            stats.state = RunState.FAILED
            _flush_error_log(error_log)
            raise
        except Exception as e:
            stats.state = RunState.FAILED
            _flush_error_log(error_log)
            logger.exception("import of %s aborted", file_name)
            raise UnexpectedPipelineError(f"import of {file_name} failed: {e}") from e

    log_path = _flush_error_log(error_log)
    stats.state = RunState.REPORTED
    result = build_result(
        stats,
        start_time=start_time,
        end_time=datetime.now(UTC),
        duplicate_handling=strategy.value,
        batch_size=batch_size,
        batch_stats=writer.batch_stats,
        error_log_path=str(log_path) if log_path is not None else None,
    )
    if writer.fallback_batches:
        logger.info("%d batches fell back to per-record writes", writer.fallback_batches)
    if log_path is not None:
        logger.info("error log written: %s (%s)", log_path, error_log.describe_counts())
    log_summary(render_summary_line(result).removeprefix("SUMMARY "))
    return result


def _flush_error_log(error_log: ErrorLogBuffer) -> Path | None:
    try:
        return error_log.flush()
    except OSError as e:
        # A failed error-log write must not mask the import outcome
        logger.error("could not write error log: %s", e)
        return None


def check_duplicates(
    path: Path,
    catalog: CatalogStore,
    *,
    extension: str | None = None,
) -> DuplicateCheck:
    """Report which rows already exist in the catalog. Writes nothing.

    Raises:
        FileReadError: The file cannot be read
        EmptyFileError: The file has no data rows
    """
    rows = load_rows(path, extension)
    valid, _ = validate_rows(rows)
    candidates = []
    for item in valid:
        report_code = item.resolved.get("report_code", "")
        candidates.append(
            DuplicateCandidate(
                row=item.row_number,
                title=item.title,
                report_code=report_code,
                key=key_for(
                    item.title,
                    report_code,
                    base_slug(item.title, item.resolved.get("slug", "")),
                ),
            )
        )
    duplicates = find_duplicates(candidates, catalog)
    logger.info("%s: %d of %d rows already in the catalog", path.name, len(duplicates), len(rows))
    return DuplicateCheck(total_records=len(rows), duplicates=duplicates)
