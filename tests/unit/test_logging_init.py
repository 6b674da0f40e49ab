from __future__ import annotations

import logging

from firmdesk.logging.init import LOGGER_NAME, get_logger, log_summary, reset_logging, setup_logging


def test_labeled_output(capsys):
    logger = setup_logging()
    logger.info("hello")
    logger.warning("careful")
    logger.error("bad")
    logger.debug("hidden")
    log_summary("kind=clients rows=1")
    out = capsys.readouterr().out.splitlines()
    assert out == ["INFO hello", "WARN careful", "ERROR bad", "SUMMARY kind=clients rows=1"]


def test_debug_level_and_idempotence(capsys):
    first = setup_logging()
    second = setup_logging(debug=True)
    assert first is second
    assert len(first.handlers) == 1
    second.debug("now visible")
    assert "DEBUG now visible" in capsys.readouterr().out


def test_module_loggers_reach_handler(capsys):
    setup_logging()
    logging.getLogger(f"{LOGGER_NAME}.services.orchestrator").info("from a module")
    assert "INFO from a module" in capsys.readouterr().out


def test_reset_logging():
    logger = get_logger()
    reset_logging()
    again = get_logger()
    assert again.name == logger.name == LOGGER_NAME
    assert len(again.handlers) == 1
