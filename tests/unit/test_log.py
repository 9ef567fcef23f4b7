"""Unit tests for logging setup."""

import io
import logging
from typing import Generator

import pytest
from rich.console import Console
from rich.logging import RichHandler

from homie.log import LOGGER_NAME, configure_logging


@pytest.fixture(autouse=True)
def restore_logger() -> Generator[None, None, None]:
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


def rich_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h, RichHandler)]


class TestConfigureLogging:
    def test_levels(self) -> None:
        assert configure_logging(verbose=False).level == logging.WARNING
        assert configure_logging(verbose=True).level == logging.DEBUG

    def test_single_handler(self) -> None:
        configure_logging()
        logger = configure_logging()
        assert len(rich_handlers(logger)) == 1

    def test_writes_to_console(self) -> None:
        output = io.StringIO()
        configure_logging(console=Console(file=output, width=200))

        logging.getLogger("homie.store").warning("disk nearly full")
        assert "disk nearly full" in output.getvalue()

    def test_debug_hidden_by_default(self) -> None:
        output = io.StringIO()
        configure_logging(console=Console(file=output, width=200))

        logging.getLogger("homie.finder").debug("paging")
        assert output.getvalue() == ""
