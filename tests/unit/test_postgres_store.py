from __future__ import annotations

from typing import Any

import psycopg2
import pytest
from psycopg2 import errors as pg_errors

import report_ingest.db.postgres as pg
from report_ingest.db.batch_insert import BatchInsertError
from report_ingest.db.memory import MemoryCatalogStore, MemoryTaxonomyStore
from report_ingest.db.store import BatchWriteError, DuplicateKeyError, StoreError
from report_ingest.models.config_models import DatabaseConfig
from report_ingest.models.report_record import CanonicalRecord
from report_ingest.models.taxonomy import Category, Subcategory
from report_ingest.models.write_instruction import Insert, MatchKey, UpdateOrInsert, WriteOutcome
from report_ingest.services.orchestrator import run_import


class FakeCursor:
    def __init__(self) -> None:
        self.executed: list[tuple[str, Any]] = []
        self.one: list[Any] = []
        self.many: list[list[Any]] = []
        self.fail_with: Exception | None = None

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc: Any) -> None:
        return None

    def execute(self, sql: str, params: Any = None) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.executed.append((sql, params))

    def fetchone(self) -> Any:
        return self.one.pop(0) if self.one else None

    def fetchall(self) -> list[Any]:
        return self.many.pop(0) if self.many else []


class FakeConn:
    def __init__(self) -> None:
        self.cur = FakeCursor()
        self.commits = 0
        self.rollbacks = 0

    def cursor(self) -> FakeCursor:
        return self.cur

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


def _rec(**kw) -> CanonicalRecord:
    base = {"title": "Global EV Market", "slug": "global-ev-market"}
    base.update(kw)
    return CanonicalRecord(**base)


@pytest.fixture()
def inserted_batches(monkeypatch):
    batches: list[list[list[Any]]] = []

    def fake_batch_insert(cursor, table, columns, rows):
        batches.append(list(rows))
        return len(batches[-1])

    monkeypatch.setattr(pg, "batch_insert", fake_batch_insert)
    return batches


def test_find_one_by_code():
    conn = FakeConn()
    conn.cur.one = [(7,)]
    match = pg.PostgresCatalogStore(conn).find_one(MatchKey(report_code="EV-1"))
    assert match is not None
    assert (match.existing_id, match.matched_by) == (7, "code")
    assert "report_code = %s" in conn.cur.executed[0][0]


def test_find_one_by_slug_or_title_reports_which_matched():
    conn = FakeConn()
    conn.cur.one = [(3, False)]
    match = pg.PostgresCatalogStore(conn).find_one(MatchKey(slug="ev", title="Global EV Market"))
    assert match is not None and match.matched_by == "title"
    sql, params = conn.cur.executed[0]
    assert "slug = %s OR title = %s" in sql
    assert params == ("ev", "ev", "Global EV Market", "ev")


def test_bulk_write_groups_inserts_and_updates_in_place(inserted_batches):
    conn = FakeConn()
    conn.cur.one = [(5, True)]
    key = MatchKey(slug="global-ev-market", title="Global EV Market")
    outcomes = pg.PostgresCatalogStore(conn).bulk_write(
        [Insert(_rec()), Insert(_rec(slug="b", title="B report")), UpdateOrInsert(key, _rec(slug="x"))]
    )

    assert outcomes == [WriteOutcome.INSERTED, WriteOutcome.INSERTED, WriteOutcome.UPDATED]
    assert len(inserted_batches) == 1 and len(inserted_batches[0]) == 2
    update_sql, update_params = conn.cur.executed[-1]
    assert update_sql.startswith("UPDATE reports SET")
    assert '"slug" = %s' not in update_sql
    assert update_params[-1] == 5
    assert conn.commits == 1


def test_bulk_write_rolls_back_and_raises(monkeypatch):
    def failing(*args, **kwargs):
        raise BatchInsertError("duplicate key value")

    monkeypatch.setattr(pg, "batch_insert", failing)
    conn = FakeConn()
    with pytest.raises(BatchWriteError, match="duplicate key"):
        pg.PostgresCatalogStore(conn).bulk_write([Insert(_rec())])
    assert conn.rollbacks == 1
    assert conn.commits == 0


def test_write_maps_unique_violation():
    conn = FakeConn()
    conn.cur.fail_with = pg_errors.UniqueViolation("duplicate key value violates unique constraint")
    with pytest.raises(DuplicateKeyError):
        pg.PostgresCatalogStore(conn).write(Insert(_rec()))
    assert conn.rollbacks == 1


def test_taxonomy_find_by_name_loads_subcategories():
    conn = FakeConn()
    conn.cur.one = [(1, "Automotive", "automotive", "", True, 0)]
    conn.cur.many = [[(10, "Electric Vehicles", "electric-vehicles", "", True, 0, False)]]
    category = pg.PostgresTaxonomyStore(conn).find_by_name("automotive")

    assert category is not None
    assert category.id == 1
    assert [s.slug for s in category.subcategories] == ["electric-vehicles"]


def test_taxonomy_create_commits_and_sets_id():
    conn = FakeConn()
    conn.cur.one = [(42,)]
    created = pg.PostgresTaxonomyStore(conn).create(Category(name="Energy", slug="energy"))
    assert created.id == 42
    assert conn.commits == 1


def test_taxonomy_add_subcategory_appends():
    conn = FakeConn()
    conn.cur.one = [(9,)]
    parent = Category(name="Energy", slug="energy", id=1)
    updated = pg.PostgresTaxonomyStore(conn).add_subcategory(parent, Subcategory(name="Solar", slug="solar"))
    assert [s.id for s in updated.subcategories] == [9]


def test_build_dsn_prefers_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://env/db")
    assert pg.build_dsn(DatabaseConfig(dsn="postgresql://cfg/db")) == "postgresql://env/db"


def test_build_dsn_from_parts(monkeypatch):
    for var in ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
        monkeypatch.delenv(var, raising=False)
    dsn = pg.build_dsn(DatabaseConfig(host="db", port=5433, user="app", password="pw", database="catalog"))
    assert dsn == "host=db port=5433 user=app dbname=catalog password=pw"


def _broken_conn() -> FakeConn:
    conn = FakeConn()
    conn.cur.fail_with = psycopg2.OperationalError("server closed the connection unexpectedly")
    return conn


@pytest.mark.parametrize(
    "lookup",
    [
        lambda conn: pg.PostgresCatalogStore(conn).find_one(MatchKey(report_code="EV-1")),
        lambda conn: pg.PostgresCatalogStore(conn).slug_exists("global-ev-market"),
        lambda conn: pg.PostgresTaxonomyStore(conn).find_by_name("Automotive"),
        lambda conn: pg.PostgresTaxonomyStore(conn).category_slug_exists("automotive"),
        lambda conn: pg.PostgresTaxonomyStore(conn).next_sort_order(),
    ],
)
def test_lookup_driver_errors_become_store_errors(lookup):
    conn = _broken_conn()
    with pytest.raises(StoreError, match="server closed the connection"):
        lookup(conn)
    assert conn.rollbacks == 1


def test_taxonomy_create_maps_unique_violation():
    conn = FakeConn()
    conn.cur.fail_with = pg_errors.UniqueViolation("duplicate key value violates unique constraint")
    with pytest.raises(DuplicateKeyError):
        pg.PostgresTaxonomyStore(conn).create(Category(name="Energy", slug="energy"))
    assert conn.rollbacks == 1
    assert conn.commits == 0


def test_taxonomy_lookup_outage_does_not_stop_import(make_spreadsheet, ev_rows, import_config):
    catalog = MemoryCatalogStore()
    result = run_import(
        make_spreadsheet(ev_rows[:1]),
        catalog,
        pg.PostgresTaxonomyStore(_broken_conn()),
        config=import_config,
    )

    assert result.inserted == 1
    assert result.failed == 0
    assert result.categories_created == 0
    [stored] = catalog.reports.values()
    assert stored.category == "Automotive"


def test_slug_lookup_outage_fails_only_that_row(make_spreadsheet, ev_rows, import_config):
    result = run_import(
        make_spreadsheet(ev_rows[:1]),
        pg.PostgresCatalogStore(_broken_conn()),
        MemoryTaxonomyStore(),
        config=import_config,
    )

    assert result.failed == 1
    assert result.inserted == 0
    assert "server closed the connection" in result.errors[0].message
