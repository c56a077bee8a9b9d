"""
Unit tests for logging setup.
"""
import logging

import pytest

from electrofield.logging_config import LOG_LEVEL_ENV, resolve_level, setup_logging


@pytest.fixture
def app_logger():
    logger = logging.getLogger("electrofield")
    level, handlers = logger.level, list(logger.handlers)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    for handler in handlers:
        logger.addHandler(handler)


class TestSetupLogging:
    def test_reconfiguring_does_not_stack_handlers(self, app_logger):
        setup_logging()
        setup_logging(logging.DEBUG)
        assert len(app_logger.handlers) == 1
        assert app_logger.level == logging.DEBUG

    def test_log_file_is_written(self, app_logger, tmp_path):
        path = tmp_path / "logs" / "electrofield.log"
        logger = setup_logging(log_file=str(path))
        logging.getLogger("electrofield.model.state").info("scene loaded")
        for handler in logger.handlers:
            handler.flush()
        assert "scene loaded" in path.read_text(encoding="utf-8")


class TestResolveLevel:
    @pytest.mark.parametrize("raw,expected", [
        ("", logging.INFO),
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        ("30", 30),
        ("loud", logging.INFO),
    ])
    def test_environment_level(self, monkeypatch, raw, expected):
        monkeypatch.setenv(LOG_LEVEL_ENV, raw)
        assert resolve_level() == expected
