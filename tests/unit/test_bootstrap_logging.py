"""
Unit tests for bootstrap/log_setup.py
"""

import json
import logging
import sys

import pytest

from statchain.bootstrap.config import LoggingConfig
from statchain.bootstrap.log_setup import JSONFormatter, setup_logging, setup_logging_from_config


@pytest.fixture(autouse=True)
def restore_package_logger():
    package_logger = logging.getLogger("statchain")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    yield
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.setLevel(level)


def own_handlers(logger):
    return [h for h in logger.handlers if getattr(h, "_statchain_handler", False)]


class TestSetupLogging:

    def test_sets_level(self):
        logger = setup_logging(level="debug")

        assert logger.name == "statchain"
        assert logger.level == logging.DEBUG
        assert len(own_handlers(logger)) == 1

    def test_unknown_level_defaults_to_info(self):
        assert setup_logging(level="chatty").level == logging.INFO

    def test_repeat_setup_does_not_stack(self):
        setup_logging()
        logger = setup_logging()
        assert len(own_handlers(logger)) == 1

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "statchain.log"

        logger = setup_logging(level="INFO", log_file=str(log_file))
        logging.getLogger("statchain.dag.chain").info("written to file")
        for handler in own_handlers(logger):
            handler.flush()

        assert len(own_handlers(logger)) == 2
        assert "written to file" in log_file.read_text()

    def test_from_config(self, tmp_path):
        log_file = tmp_path / "json.log"
        config = LoggingConfig(level="WARNING", log_file=str(log_file), json_logs=True)

        logger = setup_logging_from_config(config)
        logging.getLogger("statchain.test").warning("structured")
        for handler in own_handlers(logger):
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["message"] == "structured"
        assert record["level"] == "WARNING"


class TestJSONFormatter:

    def test_includes_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord(
                "statchain", logging.ERROR, __file__, 1, "failed", None,
                exc_info=sys.exc_info(),
            )

        payload = json.loads(JSONFormatter().format(record))

        assert payload["logger"] == "statchain"
        assert "ValueError: bad" in payload["exception"]
