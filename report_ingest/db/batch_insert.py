from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import psycopg2
from psycopg2.extras import execute_values

from .store import StoreError

"""DB batch insert helper.

Runs of consecutive inserts in a catalog batch are sent as one
``psycopg2.extras.execute_values`` INSERT. Transaction control stays with the
caller (report_ingest.db.postgres); this helper only builds and executes the
statement.
"""

__all__ = [
    "BatchInsertError",
    "batch_insert",
]


class BatchInsertError(StoreError):
    pass


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
) -> int:
    """Insert ``rows`` into ``table`` with a single execute_values call.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table name (trusted, not user input)
    columns: insert columns
    rows: row value sequences, one per record, in ``columns`` order

    Returns
    -------
    Number of rows sent (0 when ``rows`` is empty; nothing is executed)

    Raises
    ------
    BatchInsertError: the driver rejected the statement (wraps the driver error)
    """
    rows_list = list(rows)
    if not rows_list:
        return 0

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    try:
        # one page: the batch is already bounded by the batch writer
        execute_values(cursor, sql, rows_list, page_size=len(rows_list))
    except psycopg2.Error as e:
        raise BatchInsertError(str(e).strip()) from e
    return len(rows_list)
