"""
Tests for logging configuration.
"""

import logging

from sshm.infrastructure.logging_config import ColoredFormatter, level_from_env, setup_logging


class TestColoredFormatter:
    """Test cases for ColoredFormatter."""

    def _record(self):
        return logging.LogRecord("sshm.test", logging.WARNING, __file__, 1, "hello %s", ("world",), None)

    def test_plain_when_disabled(self):
        formatter = ColoredFormatter("%(levelname)s %(name)s %(message)s", use_colors=False)

        assert formatter.format(self._record()) == "WARNING sshm.test hello world"

    def test_record_restored_after_coloring(self):
        formatter = ColoredFormatter("%(levelname)s %(name)s %(message)s", use_colors=True)
        record = self._record()

        output = formatter.format(record)

        assert "\033[" in output
        assert record.levelname == "WARNING"
        assert record.name == "sshm.test"


class TestSetupLogging:
    """Test cases for setup_logging."""

    def setup_method(self):
        root = logging.getLogger()
        self.saved_handlers = root.handlers[:]
        self.saved_level = root.level

    def teardown_method(self):
        root = logging.getLogger()
        for handler in root.handlers:
            if handler not in self.saved_handlers:
                handler.close()
        root.handlers = self.saved_handlers
        root.setLevel(self.saved_level)

    def test_file_handler_receives_debug(self, tmp_path):
        log_file = tmp_path / "logs" / "sshm.log"

        setup_logging(logging.WARNING, str(log_file))
        logging.getLogger("sshm.test").debug("debug line")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "debug line" in log_file.read_text(encoding="utf-8")
        assert logging.getLogger("paramiko").level == logging.WARNING


class TestLevelFromEnv:
    """Test cases for level_from_env."""

    def test_named_level(self, monkeypatch):
        monkeypatch.setenv("SSHM_LOG_LEVEL", "debug")

        assert level_from_env() == logging.DEBUG

    def test_unknown_level_uses_default(self, monkeypatch):
        monkeypatch.setenv("SSHM_LOG_LEVEL", "chatty")

        assert level_from_env(logging.WARNING) == logging.WARNING

    def test_unset(self, monkeypatch):
        monkeypatch.delenv("SSHM_LOG_LEVEL", raising=False)

        assert level_from_env() == logging.INFO
