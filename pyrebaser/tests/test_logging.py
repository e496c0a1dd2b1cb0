"""Tests for log level selection."""

import logging
from typing import Iterator

import pytest

from pyrebaser import LOG_FORMAT, setup_logging


@pytest.fixture
def root_logger() -> Iterator[logging.Logger]:
    """Give setup_logging the root logger and put pytest's handlers back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.parametrize("verbose,level", [(0, logging.INFO), (1, logging.INFO), (2, logging.DEBUG), (3, logging.DEBUG)])
def test_verbosity_levels(root_logger: logging.Logger, verbose: int, level: int) -> None:
    setup_logging(verbose)
    assert root_logger.level == level


def test_single_formatted_handler(root_logger: logging.Logger) -> None:
    setup_logging(0)
    setup_logging(0)
    assert len(root_logger.handlers) == 1
    formatter = root_logger.handlers[0].formatter
    assert formatter is not None and formatter._fmt == LOG_FORMAT
