"""Domain models for the report catalog importer.

This package contains the domain model classes used throughout the
application: raw rows, canonical report records, taxonomy nodes, write
instructions and import results.
"""

from .config_models import BatchingConfig, BatchThreshold, DatabaseConfig, ImportConfig
from .error_record import ErrorRecord
from .import_result import BatchStatsAccumulator, ImportResult, ImportStats, RowError, RunState
from .report_record import CanonicalRecord
from .row_data import RowData
from .taxonomy import Category, Subcategory
from .write_instruction import (
    DuplicateMatch,
    DuplicateStrategy,
    Insert,
    MatchKey,
    SkipIfExists,
    UpdateOrInsert,
    WriteInstruction,
    WriteOutcome,
)

__all__ = [
    # Configuration models
    "BatchingConfig",
    "BatchThreshold",
    "DatabaseConfig",
    "ImportConfig",
    # Processing models
    "RowData",
    "CanonicalRecord",
    "Category",
    "Subcategory",
    "ErrorRecord",
    # Duplicate handling
    "DuplicateMatch",
    "DuplicateStrategy",
    "MatchKey",
    "Insert",
    "UpdateOrInsert",
    "SkipIfExists",
    "WriteInstruction",
    "WriteOutcome",
    # Results
    "BatchStatsAccumulator",
    "ImportResult",
    "ImportStats",
    "RowError",
    "RunState",
]
