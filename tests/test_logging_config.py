"""Tests for logging setup."""

import logging

import pytest

from agent_access.core.config import Settings
from agent_access.utils.logging_config import AUDIT_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    """Put root and audit logger state back after each test."""
    monkeypatch.delenv("AGENT_ACCESS_LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    root = logging.getLogger()
    saved_root = (root.level, list(root.handlers))
    saved_audit = {name: list(logging.getLogger(name).handlers) for name in AUDIT_LOGGERS}
    yield
    for handler in root.handlers:
        if handler not in saved_root[1]:
            handler.close()
    root.handlers[:] = saved_root[1]
    root.setLevel(saved_root[0])
    for name, handlers in saved_audit.items():
        audit_logger = logging.getLogger(name)
        for handler in audit_logger.handlers:
            if handler not in handlers:
                handler.close()
        audit_logger.handlers[:] = handlers


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_returns_named_logger(self):
        """The requested logger is returned."""
        assert setup_logging("agent_access.test").name == "agent_access.test"

    def test_level_from_argument(self):
        """An explicit level wins."""
        setup_logging(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_environment(self, monkeypatch):
        """The prefixed variable is preferred over LOG_LEVEL."""
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging()
        assert logging.getLogger().level == logging.ERROR

        monkeypatch.setenv("AGENT_ACCESS_LOG_LEVEL", "WARNING")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_default_level(self, app_settings):
        """INFO is used when nothing is configured."""
        setup_logging(settings=app_settings)
        assert logging.getLogger().level == logging.INFO

    def test_level_from_settings(self, tmp_path):
        """Without an explicit level or variable the settings level is used."""
        env_file = tmp_path / ".env"
        env_file.write_text("AGENT_ACCESS_LOG_LEVEL=warning\n")

        setup_logging(settings=Settings(_env_file=env_file))

        assert logging.getLogger().level == logging.WARNING

    def test_environment_beats_settings(self, monkeypatch):
        """LOG_LEVEL still wins over the settings fallback."""
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(settings=Settings(_env_file=None, log_level="DEBUG"))
        assert logging.getLogger().level == logging.ERROR

    def test_log_file(self, tmp_path):
        """A file handler is added and its directory created."""
        log_file = tmp_path / "logs" / "app.log"
        setup_logging(log_file=log_file)

        logging.getLogger("agent_access.core").info("hello")

        assert log_file.exists()
        assert "hello" in log_file.read_text()

    def test_audit_log_file(self, tmp_path):
        """Only permission and security records reach the audit file."""
        audit_file = tmp_path / "audit.log"
        setup_logging(level="INFO", audit_log_file=audit_file)

        logging.getLogger("agent_access.permissions.engine").info("rule added")
        logging.getLogger("agent_access.security.auditor").warning("denied")
        logging.getLogger("agent_access.core.registry").info("registered")

        content = audit_file.read_text()
        assert "rule added" in content
        assert "denied" in content
        assert "registered" not in content

    def test_audit_handler_replaced(self, tmp_path):
        """Calling setup again does not duplicate the audit handler."""
        setup_logging(audit_log_file=tmp_path / "first.log")
        setup_logging(audit_log_file=tmp_path / "second.log")

        for name in AUDIT_LOGGERS:
            file_handlers = [
                h for h in logging.getLogger(name).handlers if isinstance(h, logging.FileHandler)
            ]
            assert len(file_handlers) == 1
