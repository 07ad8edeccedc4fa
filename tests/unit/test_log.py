import logging

import pytest

from simplenet.core.network import Network
from simplenet.log import configure_logging


def test_configure_logging_writes_file(tmp_path):
    log_path = tmp_path / "logs" / "run.log"
    logger = configure_logging("debug", log_path)
    configure_logging(logging.DEBUG, log_path)
    assert len(logger.handlers) == 2
    Network([2, 1])
    for handler in logger.handlers:
        handler.flush()
    assert "Created network layers=[2, 1]" in log_path.read_text()
    configure_logging("WARNING")
    assert len(logger.handlers) == 1


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        configure_logging("chatty")
