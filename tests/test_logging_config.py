"""Tests for log setup"""

import logging

import pytest

from ctp_mod_manager.config.paths import AppPaths
from ctp_mod_manager.logging_config import get_logger, setup_logging


@pytest.fixture
def reset_logging():
    yield
    logger = logging.getLogger("ctp_mod_manager")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def test_module_records_reach_the_log_file(tmp_path, reset_logging):
    setup_logging(log_dir=tmp_path)
    get_logger("ledger").info("Mods tracking file updated with 2 mods")

    log_text = (tmp_path / AppPaths.LOG_FILE_NAME).read_text(encoding="utf-8")
    assert "[ctp_mod_manager.ledger] Mods tracking file updated with 2 mods" in log_text


def test_setup_again_replaces_handlers(tmp_path, reset_logging):
    setup_logging(log_dir=tmp_path / "first")
    logger = setup_logging(debug=True, log_dir=tmp_path / "second")

    assert len(logger.handlers) == 2
    assert (tmp_path / "second" / AppPaths.LOG_FILE_NAME).exists()


def test_log_file_is_named_after_data_directory():
    assert AppPaths.LOG_FILE_NAME == f"{AppPaths.APP_DATA_DIR.name}.log"
