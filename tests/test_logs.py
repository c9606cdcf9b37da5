"""
Tests for loguru sink setup.
"""

import pytest
from loguru import logger

from rbacd.logs import setup_logging


@pytest.fixture
def restore_logger():
    yield
    logger.remove()


class TestSetupLogging:
    """Test sink selection."""

    def test_file_sink_outside_dev_mode(self, settings, restore_logger):
        setup_logging(settings)

        logger.info("service started")
        logger.complete()

        files = list(settings.log_dir.glob("*.log"))
        assert len(files) == 1
        line = files[0].read_text().strip()
        assert "service started" in line
        assert "| - |" in line

    def test_request_id_in_context(self, settings, restore_logger):
        setup_logging(settings)

        with logger.contextualize(request_id="req-42"):
            logger.info("handled")
        logger.complete()

        content = next(settings.log_dir.glob("*.log")).read_text()
        assert "| req-42 |" in content

    def test_dev_mode_uses_stderr(self, settings, restore_logger, capsys):
        dev = settings.model_copy(update={"dev_mode": True})

        setup_logging(dev)
        logger.warning("console only")

        assert "console only" in capsys.readouterr().err
        assert not dev.log_dir.exists()
