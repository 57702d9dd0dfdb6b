"""Tests for logging_config."""

import logging

import pytest
from rich.logging import RichHandler

from scanwatch.logging_config import get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestSetupLogging:
    @pytest.mark.parametrize(
        "verbosity,level",
        [("quiet", logging.ERROR), ("normal", logging.WARNING), ("verbose", logging.DEBUG)],
    )
    def test_levels(self, verbosity, level):
        assert setup_logging(verbosity).level == level

    def test_unknown_verbosity_is_normal(self):
        assert setup_logging("chatty").level == logging.WARNING

    def test_rich_handler_on_root(self):
        setup_logging()
        assert any(isinstance(h, RichHandler) for h in logging.getLogger().handlers)

    def test_http_client_quiet_unless_verbose(self):
        setup_logging("normal")
        assert logging.getLogger("httpx").level == logging.WARNING
        setup_logging("verbose")
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_log_file(self, tmp_path):
        path = tmp_path / "scanwatch.log"
        setup_logging("normal", log_file=str(path))

        get_logger("cache").warning("report fetch failed")
        for handler in logging.getLogger().handlers:
            handler.flush()

        text = path.read_text()
        assert "scanwatch.cache: report fetch failed" in text
        assert "WARNING" in text


class TestGetLogger:
    def test_namespaced(self):
        assert get_logger("cache").name == "scanwatch.cache"
        assert get_logger("scanwatch.state").name == "scanwatch.state"
        assert get_logger().name == "scanwatch"
