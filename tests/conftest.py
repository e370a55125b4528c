from __future__ import annotations

import logging
from collections.abc import Generator

import pytest

from sqlrunner.utils.logging import get_logger


@pytest.fixture
def package_logger() -> Generator[logging.Logger, None, None]:
    """The ``sqlrunner`` logger, restored to its handlers and level afterwards."""
    logger = get_logger()
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
