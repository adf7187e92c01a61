"""Tests for logger.py -- setup_logging() and JsonFormatter.

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from vault_sync.logger import DEFAULT_SERVICE_LOG, JsonFormatter, setup_logging


def _close_file_handlers(handlers):
    for h in handlers:
        if isinstance(h, logging.FileHandler):
            h.close()


# ---------------------------------------------------------------------------
# setup_logging tests
# ---------------------------------------------------------------------------


class TestSetupLogging:
    """Tests for setup_logging()."""

    @patch("vault_sync.logger.logging.basicConfig")
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        """CLI mode passes a single StreamHandler(stderr) to basicConfig."""
        setup_logging(mode="cli")

        mock_basic.assert_called_once()
        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr

    @patch("vault_sync.logger.logging.basicConfig")
    def test_cli_mode_with_log_file(self, mock_basic, tmp_path):
        """--log-file tees CLI output to a file as well."""
        log_file = str(tmp_path / "sync.log")
        setup_logging(mode="cli", log_file=log_file)

        handlers = mock_basic.call_args[1]["handlers"]
        file_handlers = [
            h for h in handlers if isinstance(h, logging.FileHandler)
        ]
        assert len(handlers) == 2
        assert file_handlers[0].baseFilename == log_file
        _close_file_handlers(handlers)

    @patch("vault_sync.logger.logging.basicConfig")
    def test_service_mode_logs_to_file(self, mock_basic, tmp_path):
        log_file = str(tmp_path / "service.log")
        setup_logging(mode="service", log_file=log_file)

        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.FileHandler)
        assert handlers[0].baseFilename == log_file
        _close_file_handlers(handlers)

    @patch("vault_sync.logger.logging.FileHandler")
    @patch("vault_sync.logger.logging.basicConfig")
    def test_service_mode_default_file(self, _mock_basic, mock_handler):
        """Service mode defaults to /tmp/vault-sync.log."""
        setup_logging(mode="service")
        assert mock_handler.call_args[0][0] == DEFAULT_SERVICE_LOG

    @patch("vault_sync.logger.logging.FileHandler")
    @patch("vault_sync.logger.logging.basicConfig")
    def test_service_mode_env_file(
        self, _mock_basic, mock_handler, monkeypatch
    ):
        monkeypatch.setenv("LOG_FILE", "/var/log/vault-sync.log")
        setup_logging(mode="service")
        assert mock_handler.call_args[0][0] == "/var/log/vault-sync.log"

    @patch("vault_sync.logger.logging.FileHandler")
    @patch("vault_sync.logger.logging.basicConfig")
    def test_service_default_level_is_warning(self, mock_basic, _mock_handler):
        setup_logging(mode="service")
        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("vault_sync.logger.logging.basicConfig")
    def test_cli_default_level_is_info(self, mock_basic):
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.INFO

    @patch("vault_sync.logger.logging.basicConfig")
    def test_env_log_level_honored(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("vault_sync.logger.logging.basicConfig")
    def test_debug_beats_env(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("vault_sync.logger.logging.basicConfig")
    def test_json_format(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")
        handlers = mock_basic.call_args[1]["handlers"]
        assert isinstance(handlers[0].formatter, JsonFormatter)

    @patch("vault_sync.logger.logging.basicConfig")
    def test_third_party_silenced(self, _mock_basic):
        setup_logging(mode="cli")
        assert (
            logging.getLogger("charset_normalizer").level == logging.WARNING
        )
        assert logging.getLogger("asyncio").level == logging.WARNING


# ---------------------------------------------------------------------------
# JsonFormatter tests
# ---------------------------------------------------------------------------


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _record(self, msg, args=(), exc_info=None, level=logging.INFO):
        return logging.LogRecord(
            name="vault_sync.sync.engine",
            level=level,
            pathname="engine.py",
            lineno=1,
            msg=msg,
            args=args,
            exc_info=exc_info,
        )

    def test_basic_output(self):
        formatter = JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        output = formatter.format(self._record("Upload: %s", ("a.md",)))

        data = json.loads(output)
        assert data["level"] == "INFO"
        assert data["logger"] == "vault_sync.sync.engine"
        assert data["msg"] == "Upload: a.md"
        assert "ts" in data
        assert "\n" not in output

    def test_includes_exception(self):
        formatter = JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        try:
            raise OSError("disk full")
        except OSError:
            exc_info = sys.exc_info()

        data = json.loads(
            formatter.format(
                self._record("save failed", exc_info=exc_info, level=logging.ERROR)
            )
        )
        assert "OSError" in data["exc"]
        assert "disk full" in data["exc"]
