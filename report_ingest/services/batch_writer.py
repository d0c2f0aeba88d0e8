from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..db.store import BatchWriteError, CatalogStore, DuplicateKeyError, StoreError
from ..logging.error_log import DUPLICATE_KEY, STORE_ERROR, ErrorLogBuffer
from ..models.config_models import BatchingConfig
from ..models.import_result import BatchStatsAccumulator, ImportStats, RowError
from ..models.write_instruction import WriteInstruction, WriteOutcome

"""Batch persistence engine.

Pending writes are accumulated up to the batch size and flushed with one
atomic ``bulk_write`` call. When the store rejects a batch the engine
degrades to one ``write`` call per record so a single bad row costs only
itself.
"""

__all__ = [
    "batch_size_for",
    "PendingWrite",
    "BatchWriter",
]

logger = logging.getLogger(__name__)


def batch_size_for(total_rows: int, config: BatchingConfig | None = None) -> int:
    """Batch size for an input of ``total_rows`` rows (larger inputs, smaller batches)."""
    return (config or BatchingConfig()).size_for(total_rows)


@dataclass(frozen=True)
class PendingWrite:
    row: int
    instruction: WriteInstruction

    @property
    def title(self) -> str:
        return self.instruction.record.title

    @property
    def report_code(self) -> str:
        return self.instruction.record.report_code or ""


class BatchWriter:
    """Accumulates pending writes and flushes them to a CatalogStore.

    Outcomes and per-row failures are recorded directly on ``stats``; every
    failure is also appended to ``error_log``.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        stats: ImportStats,
        *,
        batch_size: int,
        error_log: ErrorLogBuffer | None = None,
        on_flush: Callable[[int], None] | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.catalog = catalog
        self.stats = stats
        self.batch_size = batch_size
        self.error_log = error_log
        self.on_flush = on_flush
        self.batch_stats = BatchStatsAccumulator()
        self.fallback_batches = 0
        self._pending: list[PendingWrite] = []

    def __len__(self) -> int:
        return len(self._pending)

    def add(self, pending: PendingWrite) -> None:
        self._pending.append(pending)
        if len(self._pending) >= self.batch_size:
            self.flush()

    def finish(self) -> None:
        """Flush whatever is left at end of input."""
        if self._pending:
            self.flush()

    def flush(self) -> None:
        batch, self._pending = self._pending, []
        if not batch:
            return
        start = time.perf_counter()
        try:
            outcomes = self.catalog.bulk_write([p.instruction for p in batch])
        except BatchWriteError as e:
            self.fallback_batches += 1
            logger.warning(
                "batch of %d rows (rows %d-%d) rejected, retrying per record: %s",
                len(batch),
                batch[0].row,
                batch[-1].row,
                e,
            )
            self._write_individually(batch)
        else:
            for outcome in outcomes:
                self._count(outcome)
        elapsed = time.perf_counter() - start
        self.batch_stats.add_batch_time(elapsed)
        logger.debug("flushed batch of %d rows in %.3fs", len(batch), elapsed)
        if self.on_flush is not None:
            self.on_flush(len(batch))

    def _write_individually(self, batch: list[PendingWrite]) -> None:
        for pending in batch:
            try:
                outcome = self.catalog.write(pending.instruction)
            except StoreError as e:
                self.record_failure(
                    pending.row,
                    pending.title,
                    pending.report_code,
                    str(e),
                    error_type=DUPLICATE_KEY if isinstance(e, DuplicateKeyError) else STORE_ERROR,
                )
                continue
            self._count(outcome)

    def _count(self, outcome: WriteOutcome) -> None:
        if outcome is WriteOutcome.INSERTED:
            self.stats.inserted += 1
        elif outcome is WriteOutcome.UPDATED:
            self.stats.updated += 1
        else:
            self.stats.skipped += 1

    def record_failure(
        self,
        row: int,
        title: str,
        report_code: str,
        message: str,
        *,
        error_type: str,
    ) -> None:
        """Count a failed row and log it (stats list is capped; the error log is not)."""
        logger.warning("row %d failed (%s): %s", row, error_type, message)
        self.stats.add_error(RowError(row=row, title=title, report_code=report_code, message=message))
        if self.error_log is not None:
            self.error_log.record(row, error_type, message, title=title, report_code=report_code)
