from __future__ import annotations

import logging
from io import StringIO

from report_ingest.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    ImportContextFilter,
    LabeledFormatter,
    get_logger,
    import_context,
    log_summary,
    reset_logging,
    set_debug,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    reset_logging()
    logger = setup_logging()

    assert logger.name == LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    reset_logging()
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert get_logger() is first
    assert len(first.handlers) == 1


def test_labeled_prefixes():
    stream = StringIO()
    logger = logging.getLogger("test_report_ingest_labels")
    logger.setLevel(logging.INFO)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    handler = logging.StreamHandler(stream)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    logger.info("Test info message")
    logger.warning("Test warning message")
    logger.error("Test error message")
    logger.log(SUMMARY_LEVEL, "rows=1")

    lines = stream.getvalue().splitlines()
    assert lines == [
        "INFO Test info message",
        "WARN Test warning message",
        "ERROR Test error message",
        "SUMMARY rows=1",
    ]


def test_child_loggers_and_summary_reach_stdout(capsys):
    reset_logging()
    setup_logging()
    logging.getLogger("report_ingest.services.orchestrator").info("loaded 3 rows")
    log_summary("rows=3 inserted=3")
    out = capsys.readouterr().out
    assert "INFO loaded 3 rows" in out
    assert "SUMMARY rows=3 inserted=3" in out


def test_set_debug_toggles_level():
    reset_logging()
    logger = setup_logging()
    set_debug(True)
    assert logger.level == logging.DEBUG
    assert all(h.level == logging.DEBUG for h in logger.handlers)
    set_debug(False)
    assert logger.level == logging.INFO


def test_import_context_labels_lines_with_the_file(capsys):
    reset_logging()
    logger = setup_logging()
    assert any(isinstance(f, ImportContextFilter) for f in logger.handlers[0].filters)

    child = logging.getLogger("report_ingest.services.orchestrator")
    with import_context("reports.xlsx"):
        child.info("loaded 3 rows")
        with import_context("other.csv"):
            child.warning("row 2 failed")
        child.info("back")
    child.info("after")

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "INFO [reports.xlsx] loaded 3 rows",
        "WARN [other.csv] row 2 failed",
        "INFO [reports.xlsx] back",
        "INFO after",
    ]
