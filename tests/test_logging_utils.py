import logging
from pathlib import Path

from dlgate.common.logging_utils import setup_logger


def test_setup_logger_adds_handlers_once(tmp_path: Path) -> None:
    logger = logging.getLogger("dlgate.tests.logging")
    log_file = tmp_path / "logs" / "dlgate.log"

    setup_logger(logger, logging.DEBUG, log_file)
    setup_logger(logger, logging.DEBUG, log_file)

    try:
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2  # noqa: PLR2004
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "dlgate.tests.logging - INFO - hello" in log_file.read_text()
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
