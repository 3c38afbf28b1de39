from __future__ import annotations

import io
import logging

import pytest

from finquest.logging_setup import PKG_LOGGER_NAME, configure_logging, get_logger, reset_logging


@pytest.fixture(autouse=True)
def _reset():
    reset_logging()
    yield
    reset_logging()


def test_get_logger_is_silent_until_configured():
    get_logger("finquest.ledger")
    handlers = logging.getLogger(PKG_LOGGER_NAME).handlers
    assert any(isinstance(h, logging.NullHandler) for h in handlers)


def test_configure_logging_is_idempotent():
    stream = io.StringIO()
    logger = configure_logging("DEBUG", fmt="%(levelname)s %(message)s", stream=stream)
    again = configure_logging("ERROR", stream=io.StringIO())

    assert again is logger
    assert logger.level == logging.DEBUG
    assert not any(isinstance(h, logging.NullHandler) for h in logger.handlers)

    get_logger("finquest.goals").debug("funded %s", "g1")
    assert stream.getvalue() == "DEBUG funded g1\n"


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv("FINQUEST_LOG_LEVEL", "warning")
    stream = io.StringIO()
    configure_logging(stream=stream)

    log = get_logger("finquest.rewards")
    log.info("hidden")
    log.warning("shown")
    assert "hidden" not in stream.getvalue()
    assert "shown" in stream.getvalue()


def test_unknown_level_falls_back_to_info():
    assert configure_logging("chatty", stream=io.StringIO()).level == logging.INFO
