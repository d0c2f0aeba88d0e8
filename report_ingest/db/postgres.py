from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from psycopg2 import errors as pg_errors

from ..models.config_models import DatabaseConfig
from ..models.report_record import RECORD_COLUMNS, CanonicalRecord
from ..models.taxonomy import Category, Subcategory
from ..models.write_instruction import (
    DuplicateMatch,
    Insert,
    MatchKey,
    SkipIfExists,
    UpdateOrInsert,
    WriteInstruction,
    WriteOutcome,
)
from .batch_insert import BatchInsertError, batch_insert
from .store import BatchWriteError, CatalogStore, DuplicateKeyError, StoreError, TaxonomyStore

"""PostgreSQL catalog and taxonomy stores (psycopg2).

Catalog batches run in one transaction: runs of consecutive inserts go through
``execute_values``; keyed instructions are resolved with a SELECT followed by
an UPDATE or INSERT. Any driver error rolls the whole batch back and surfaces
as BatchWriteError so the pipeline can retry record by record.

Taxonomy writes commit immediately so later rows in the same run see them.
"""

__all__ = [
    "SCHEMA_SQL_PATH",
    "build_dsn",
    "db_connection",
    "apply_schema",
    "PostgresCatalogStore",
    "PostgresTaxonomyStore",
]

logger = logging.getLogger(__name__)

SCHEMA_SQL_PATH = Path(__file__).with_name("schema.sql")
REPORTS_TABLE = "reports"

# slug is assigned on insert only; updates keep the stored value
_UPDATE_COLUMNS = tuple(c for c in RECORD_COLUMNS if c != "slug")


def build_dsn(db_cfg: DatabaseConfig) -> str:
    """Resolve the connection string.

    Priority:
        1. DATABASE_URL / PGDSN environment variables (a full DSN)
        2. ``dsn`` from the config file
        3. individual PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE,
           falling back to the config file's database section
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def db_connection(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a psycopg2 connection with explicit transaction control."""
    conn = psycopg2.connect(build_dsn(db_cfg))
    conn.autocommit = False
    try:
        yield conn
    finally:
        try:
            if not conn.closed:
                conn.rollback()
        finally:
            conn.close()


def apply_schema(conn: Any, path: Path = SCHEMA_SQL_PATH) -> None:
    """Create the catalog and taxonomy tables if they do not exist."""
    with conn.cursor() as cur:
        cur.execute(path.read_text(encoding="utf-8"))
    conn.commit()


def _record_values(record: CanonicalRecord, columns: Sequence[str] = RECORD_COLUMNS) -> list[Any]:
    data = record.to_dict()
    return [data[c] for c in columns]


@contextmanager
def _driver_errors(conn: Any) -> Iterator[None]:
    """Roll back and re-raise driver errors as StoreError (DuplicateKeyError on unique violations)."""
    try:
        yield
    except psycopg2.Error as e:
        try:
            conn.rollback()
        except psycopg2.Error as rollback_error:
            logger.warning("rollback failed: %s", rollback_error)
        if isinstance(e, pg_errors.UniqueViolation):
            raise DuplicateKeyError(str(e).strip()) from e
        raise StoreError(str(e).strip()) from e


def _is_unique_violation(exc: BaseException) -> bool:
    seen: BaseException | None = exc
    while seen is not None:
        if isinstance(seen, pg_errors.UniqueViolation):
            return True
        seen = seen.__cause__
    return False


class PostgresCatalogStore(CatalogStore):
    def __init__(self, conn: Any, table: str = REPORTS_TABLE) -> None:
        self.conn = conn
        self.table = table

    # -- lookups -------------------------------------------------------
    def _find(self, cur: Any, key: MatchKey) -> DuplicateMatch | None:
        if key.by_code:
            cur.execute(f"SELECT id FROM {self.table} WHERE report_code = %s LIMIT 1", (key.report_code,))
            row = cur.fetchone()
            return DuplicateMatch(existing_id=row[0], matched_by="code") if row else None
        if key.slug:
            cur.execute(
                f"SELECT id, slug = %s FROM {self.table} WHERE slug = %s OR title = %s "
                "ORDER BY (slug = %s) DESC, id LIMIT 1",
                (key.slug, key.slug, key.title or "", key.slug),
            )
            row = cur.fetchone()
            if row:
                return DuplicateMatch(existing_id=row[0], matched_by="slug" if row[1] else "title")
            return None
        if key.title:
            cur.execute(f"SELECT id FROM {self.table} WHERE title = %s ORDER BY id LIMIT 1", (key.title,))
            row = cur.fetchone()
            return DuplicateMatch(existing_id=row[0], matched_by="title") if row else None
        return None

    def find_one(self, key: MatchKey) -> DuplicateMatch | None:
        with _driver_errors(self.conn), self.conn.cursor() as cur:
            return self._find(cur, key)

    def slug_exists(self, slug: str) -> bool:
        with _driver_errors(self.conn), self.conn.cursor() as cur:
            cur.execute(f"SELECT 1 FROM {self.table} WHERE slug = %s LIMIT 1", (slug,))
            return cur.fetchone() is not None

    # -- writes --------------------------------------------------------
    def _insert_one(self, cur: Any, record: CanonicalRecord) -> WriteOutcome:
        cols_sql = ",".join(f'"{c}"' for c in RECORD_COLUMNS)
        placeholders = ",".join(["%s"] * len(RECORD_COLUMNS))
        cur.execute(
            f"INSERT INTO {self.table} ({cols_sql}) VALUES ({placeholders})",
            _record_values(record),
        )
        return WriteOutcome.INSERTED

    def _update(self, cur: Any, report_id: Any, record: CanonicalRecord) -> WriteOutcome:
        assignments = ",".join(f'"{c}" = %s' for c in _UPDATE_COLUMNS)
        cur.execute(
            f"UPDATE {self.table} SET {assignments}, updated_at = now() WHERE id = %s",
            [*_record_values(record, _UPDATE_COLUMNS), report_id],
        )
        return WriteOutcome.UPDATED

    def _apply(self, cur: Any, instruction: WriteInstruction) -> WriteOutcome:
        if isinstance(instruction, Insert):
            return self._insert_one(cur, instruction.record)
        if isinstance(instruction, SkipIfExists):
            if self._find(cur, instruction.key) is not None:
                return WriteOutcome.SKIPPED
            return self._insert_one(cur, instruction.record)
        if isinstance(instruction, UpdateOrInsert):
            match = self._find(cur, instruction.key)
            if match is None:
                return self._insert_one(cur, instruction.record)
            return self._update(cur, match.existing_id, instruction.record)
        raise StoreError(f"unsupported write instruction: {type(instruction).__name__}")

    def _apply_all(self, cur: Any, instructions: Sequence[WriteInstruction]) -> list[WriteOutcome]:
        outcomes: list[WriteOutcome] = []
        pending_inserts: list[list[Any]] = []

        def flush_inserts() -> None:
            if pending_inserts:
                batch_insert(cur, self.table, RECORD_COLUMNS, pending_inserts)
                outcomes.extend([WriteOutcome.INSERTED] * len(pending_inserts))
                pending_inserts.clear()

        for instruction in instructions:
            if isinstance(instruction, Insert):
                pending_inserts.append(_record_values(instruction.record))
                continue
            flush_inserts()
            outcomes.append(self._apply(cur, instruction))
        flush_inserts()
        return outcomes

    def bulk_write(self, instructions: Sequence[WriteInstruction]) -> list[WriteOutcome]:
        try:
            with self.conn.cursor() as cur:
                outcomes = self._apply_all(cur, instructions)
            self.conn.commit()
        except (psycopg2.Error, StoreError) as e:
            self.conn.rollback()
            raise BatchWriteError(str(e).strip()) from e
        return outcomes

    def write(self, instruction: WriteInstruction) -> WriteOutcome:
        try:
            with self.conn.cursor() as cur:
                outcome = self._apply(cur, instruction)
            self.conn.commit()
        except (psycopg2.Error, BatchInsertError) as e:
            self.conn.rollback()
            if _is_unique_violation(e):
                raise DuplicateKeyError(str(e).strip()) from e
            raise StoreError(str(e).strip()) from e
        return outcome


class PostgresTaxonomyStore(TaxonomyStore):
    def __init__(self, conn: Any) -> None:
        self.conn = conn

    def find_by_name(self, name: str) -> Category | None:
        with _driver_errors(self.conn), self.conn.cursor() as cur:
            cur.execute(
                "SELECT id, name, slug, description, is_active, sort_order FROM categories "
                "WHERE lower(name) = lower(%s) LIMIT 1",
                (name.strip(),),
            )
            row = cur.fetchone()
            if row is None:
                return None
            category = Category(
                id=row[0],
                name=row[1],
                slug=row[2],
                description=row[3],
                is_active=row[4],
                sort_order=row[5],
            )
            cur.execute(
                "SELECT id, name, slug, description, is_active, sort_order, is_top_trending "
                "FROM subcategories WHERE category_id = %s ORDER BY sort_order, id",
                (category.id,),
            )
            category.subcategories = [
                Subcategory(
                    id=r[0],
                    name=r[1],
                    slug=r[2],
                    description=r[3],
                    is_active=r[4],
                    sort_order=r[5],
                    is_top_trending=r[6],
                )
                for r in cur.fetchall()
            ]
            return category

    def category_slug_exists(self, slug: str) -> bool:
        with _driver_errors(self.conn), self.conn.cursor() as cur:
            cur.execute("SELECT 1 FROM categories WHERE slug = %s LIMIT 1", (slug,))
            return cur.fetchone() is not None

    def next_sort_order(self) -> int:
        with _driver_errors(self.conn), self.conn.cursor() as cur:
            cur.execute("SELECT COALESCE(MAX(sort_order), -1) + 1 FROM categories")
            return int(cur.fetchone()[0])

    def create(self, category: Category) -> Category:
        with _driver_errors(self.conn):
            with self.conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO categories (name, slug, description, is_active, sort_order) "
                    "VALUES (%s, %s, %s, %s, %s) RETURNING id",
                    (
                        category.name,
                        category.slug,
                        category.description,
                        category.is_active,
                        category.sort_order,
                    ),
                )
                new_id = cur.fetchone()[0]
            self.conn.commit()
        category.id = new_id
        logger.debug("created category id=%s name=%s", new_id, category.name)
        return category

    def add_subcategory(self, category: Category, subcategory: Subcategory) -> Category:
        if category.id is None:
            raise StoreError(f"category '{category.name}' has no id")
        with _driver_errors(self.conn):
            with self.conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO subcategories "
                    "(category_id, name, slug, description, is_active, sort_order, is_top_trending) "
                    "VALUES (%s, %s, %s, %s, %s, %s, %s) RETURNING id",
                    (
                        category.id,
                        subcategory.name,
                        subcategory.slug,
                        subcategory.description,
                        subcategory.is_active,
                        subcategory.sort_order,
                        subcategory.is_top_trending,
                    ),
                )
                subcategory.id = cur.fetchone()[0]
            self.conn.commit()
        category.subcategories.append(subcategory)
        return category
