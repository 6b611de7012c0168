import logging
from logging.handlers import RotatingFileHandler

import pytest

from site_fetch.logger import init_logging


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    init_logging()


def test_init_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "fetch.log"
    init_logging(level="DEBUG", log_file=log_file, log_format="%(levelname)s %(message)s")
    lg = init_logging(level="DEBUG", log_file=log_file, log_format="%(levelname)s %(message)s")

    assert lg.name == "SiteFetch"
    assert lg.level == logging.DEBUG
    assert len(lg.handlers) == 2
    assert sum(isinstance(h, RotatingFileHandler) for h in lg.handlers) == 1
    assert not lg.propagate

    lg.debug("Retrying %s", "http://example.com/")
    for handler in lg.handlers:
        handler.flush()
    assert "DEBUG Retrying http://example.com/" in log_file.read_text(encoding="utf-8")


def test_init_logging_console_only_by_default():
    lg = init_logging(level="WARNING")
    assert lg.level == logging.WARNING
    assert len(lg.handlers) == 1
    assert not isinstance(lg.handlers[0], RotatingFileHandler)
