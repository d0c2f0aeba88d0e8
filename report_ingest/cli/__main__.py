from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import ConfigError, load_config, resolve_config_path
from ..db.memory import MOCK_MODE_ENV, MemoryCatalogStore, MemoryTaxonomyStore, mock_mode_enabled
from ..db.postgres import PostgresCatalogStore, PostgresTaxonomyStore, apply_schema, db_connection
from ..db.store import CatalogStore, TaxonomyStore
from ..excel.reader import EmptyFileError, FileReadError, inspect_rows, load_rows
from ..logging.init import set_debug, setup_logging
from ..models.config_models import ImportConfig
from ..models.write_instruction import DuplicateStrategy
from ..services.orchestrator import UnexpectedPipelineError, check_duplicates, run_import

"""CLI entrypoint.

Subcommands:
- bulk-upload FILE: import one spreadsheet (exit 0 all rows ok, 2 some rows
  failed, 1 fatal)
- check-duplicates FILE: list rows already in the catalog
- inspect FILE: print headers and sample rows
- init-db: create the catalog tables
- serve: run the HTTP API with uvicorn

DISABLE_DB_CONNECT=1 runs against in-memory stores (mock mode).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

logger = logging.getLogger("report_ingest.cli")


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


@contextmanager
def _stores(cfg: ImportConfig) -> Iterator[tuple[CatalogStore, TaxonomyStore]]:
    if mock_mode_enabled():
        logger.debug("DB connect disabled via %s=1 -> mock mode", MOCK_MODE_ENV)
        yield MemoryCatalogStore(), MemoryTaxonomyStore()
        return
    with db_connection(cfg.database) as conn:
        yield PostgresCatalogStore(conn), PostgresTaxonomyStore(conn)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="report-ingest", description="Bulk report catalog importer")
    p.add_argument("--config", type=Path, default=None, help="YAML config (default config/import.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    upload = sub.add_parser("bulk-upload", help="Import one CSV/XLSX/XLS file")
    upload.add_argument("file", type=Path)
    upload.add_argument(
        "--duplicate-handling",
        choices=[s.value for s in DuplicateStrategy],
        default=None,
        help="What to do with rows matching an existing report (default: update)",
    )

    dup = sub.add_parser("check-duplicates", help="List rows that already exist")
    dup.add_argument("file", type=Path)

    insp = sub.add_parser("inspect", help="Print headers and sample rows, then exit")
    insp.add_argument("file", type=Path)
    insp.add_argument("--limit", type=int, default=3)

    sub.add_parser("init-db", help="Create the catalog tables")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return p.parse_args(argv)


def _bulk_upload(cfg: ImportConfig, args: argparse.Namespace) -> int:
    try:
        strategy = DuplicateStrategy.parse(args.duplicate_handling or cfg.default_duplicate_handling)
    except ValueError as e:
        logger.error("%s", e)
        return EXIT_FATAL
    try:
        with _stores(cfg) as (catalog, taxonomy):
            result = run_import(args.file, catalog, taxonomy, strategy=strategy, config=cfg)
    except (FileReadError, EmptyFileError) as e:
        logger.error("file: %s", e)
        return EXIT_FATAL
    except UnexpectedPipelineError as e:
        logger.error("processing: %s", e)
        return EXIT_FATAL

    for err in result.errors:
        logger.info("row %d: %s", err.row, err.message)
    if result.errors_truncated:
        logger.info("... %d more failures in %s", result.failed - len(result.errors), result.error_log_path)
    if result.failed > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _check_duplicates(cfg: ImportConfig, args: argparse.Namespace) -> int:
    try:
        with _stores(cfg) as (catalog, _):
            check = check_duplicates(args.file, catalog)
    except (FileReadError, EmptyFileError) as e:
        logger.error("file: %s", e)
        return EXIT_FATAL
    for d in check.duplicates:
        print(f"row={d.row} existing_id={d.existing_id} matched_by={d.matched_by} title={d.title}")
    print(f"total_records={check.total_records} duplicate_count={check.duplicate_count}")
    return EXIT_SUCCESS_ALL


def _inspect(args: argparse.Namespace) -> int:
    try:
        rows = load_rows(args.file)
    except (FileReadError, EmptyFileError) as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {args.file.name}")
    print(inspect_rows(rows, limit=args.limit))
    return EXIT_SUCCESS_ALL


def _init_db(cfg: ImportConfig) -> int:
    if mock_mode_enabled():
        logger.info("mock mode: nothing to initialize")
        return EXIT_SUCCESS_ALL
    with db_connection(cfg.database) as conn:
        apply_schema(conn)
    logger.info("schema applied")
    return EXIT_SUCCESS_ALL


def _serve(args: argparse.Namespace) -> int:  # pragma: no cover (blocks)
    import uvicorn

    from ..api.app import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    setup_logging()

    # None only: an explicit [] from tests must not pick up pytest's own argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)
    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    config_path = resolve_config_path(args.config)
    try:
        cfg = load_config(config_path, required=args.config is not None)
    except ConfigError as e:
        logger.error("config: %s", e)
        return EXIT_FATAL

    if args.command == "bulk-upload":
        return _bulk_upload(cfg, args)
    if args.command == "check-duplicates":
        return _check_duplicates(cfg, args)
    if args.command == "inspect":
        return _inspect(args)
    if args.command == "init-db":
        return _init_db(cfg)
    return _serve(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
