"""Tests for the console logging setup."""

from __future__ import annotations

import logging

import colorlog
import pytest

from log_config import setup_logging


def test_installs_single_coloured_handler():
    logger = setup_logging("qibla-test", level="debug")
    setup_logging("qibla-test", level="debug")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, colorlog.ColoredFormatter)


def test_request_loggers_stay_quiet():
    setup_logging("qibla-test-quiet", level="DEBUG")
    assert logging.getLogger("urllib3").level == logging.WARNING


def test_rejects_unknown_level():
    with pytest.raises(ValueError):
        setup_logging("qibla-test", level="loud")
