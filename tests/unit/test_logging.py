"""
Unit tests for the toolkit logging setup.
"""

import logging

import pytest

from web3fund_toolkit.shared.logging import PACKAGE_LOGGER, get_logger, set_log_level


@pytest.fixture
def restore_level():
    package = get_logger()
    previous = package.level
    yield package
    package.setLevel(previous)


class TestGetLogger:
    def test_module_loggers_share_the_package_handler(self):
        package = get_logger()
        module_logger = get_logger("web3fund_toolkit.campaigns.service")

        assert package.name == PACKAGE_LOGGER
        assert len(package.handlers) == 1
        assert module_logger.handlers == []
        assert module_logger.propagate is True
        assert module_logger.getEffectiveLevel() == package.getEffectiveLevel()

    def test_handler_is_attached_once(self):
        get_logger()
        get_logger(PACKAGE_LOGGER)
        assert len(logging.getLogger(PACKAGE_LOGGER).handlers) == 1


class TestSetLogLevel:
    def test_level_name_applies_to_module_loggers(self, restore_level):
        module_logger = get_logger("web3fund_toolkit.transactions.orchestrator")

        assert set_log_level("debug") == logging.DEBUG
        assert restore_level.level == logging.DEBUG
        assert module_logger.getEffectiveLevel() == logging.DEBUG

        set_log_level(logging.WARNING)
        assert module_logger.isEnabledFor(logging.INFO) is False

    def test_unknown_level_is_rejected(self, restore_level):
        before = restore_level.level
        with pytest.raises(ValueError, match="Unknown log level: loud"):
            set_log_level("loud")
        assert restore_level.level == before
