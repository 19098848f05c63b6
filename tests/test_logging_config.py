"""
Tests for the logging setup.
"""

import importlib
import logging

from p2p_order_service import logging_config


def test_log_level_is_read_from_environment(monkeypatch):
    monkeypatch.setenv("ORDER_DASHBOARD_LOG_LEVEL", "debug")
    monkeypatch.setenv("ORDER_DASHBOARD_LOG_FILE", "dashboard-test.log")
    try:
        reloaded = importlib.reload(logging_config)
        assert reloaded.LOG_LEVEL == "DEBUG"
        assert reloaded.LOG_FILE == "dashboard-test.log"
    finally:
        monkeypatch.undo()
        importlib.reload(logging_config)


def test_http_client_loggers_are_quieted(monkeypatch, tmp_path):
    monkeypatch.setattr(logging_config, "LOG_FILE", str(tmp_path / "service.log"))

    logging_config.setup_logging()

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING


def test_get_logger_uses_module_name():
    assert logging_config.get_logger("p2p_order_service.workflow") is logging.getLogger("p2p_order_service.workflow")
