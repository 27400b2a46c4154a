import logging

import pytest

from monitor.logging_setup import LOGGER_NAME, resolve_level, setup_logging


@pytest.mark.parametrize(
    "raw, expected",
    [("debug", logging.DEBUG), (" WARNING ", logging.WARNING), ("verbose", logging.INFO), ("", logging.INFO), (None, logging.INFO)],
)
def test_resolve_level(raw, expected):
    assert resolve_level(raw) == expected


def test_setup_logging_honors_level_and_adds_one_handler():
    logger = logging.getLogger(LOGGER_NAME)
    saved_level, saved_handlers = logger.level, list(logger.handlers)
    try:
        assert setup_logging("DEBUG") is logger
        assert logger.level == logging.DEBUG
        setup_logging("ERROR")
        assert logger.level == logging.ERROR
        added = [h for h in logger.handlers if h not in saved_handlers]
        assert len(added) <= 1
        assert logging.getLogger("urllib3").level >= logging.WARNING
    finally:
        logger.setLevel(saved_level)
        logger.handlers[:] = saved_handlers
