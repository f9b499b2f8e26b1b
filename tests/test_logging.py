"""Tests for factlens.config.logging.setup_logging."""
from __future__ import annotations

import logging

import pytest

from factlens.config.logging import setup_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)


def _own_handlers(root):
    return [h for h in root.handlers if getattr(h, "_factlens_handler", False)]


class TestSetupLogging:
    def test_writes_to_configured_file(self, root_logger, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        setup_logging("debug", str(log_file))
        logging.getLogger("factlens.test").debug("hello from the test")
        for handler in _own_handlers(root_logger):
            handler.flush()

        assert root_logger.level == logging.DEBUG
        assert "hello from the test" in log_file.read_text(encoding="utf-8")

    def test_reapplying_replaces_handlers(self, root_logger, tmp_path):
        setup_logging(log_file=None)
        assert len(_own_handlers(root_logger)) == 1

        setup_logging("WARNING", str(tmp_path / "app.log"))
        handlers = _own_handlers(root_logger)
        assert len(handlers) == 2
        assert any(isinstance(h, logging.FileHandler) for h in handlers)
        assert root_logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, root_logger):
        setup_logging("chatty", None)
        assert root_logger.level == logging.INFO

    def test_noisy_libraries_are_quieted(self, root_logger):
        setup_logging(log_file=None)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("google_genai").level == logging.WARNING
