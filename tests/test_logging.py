"""Tests for logging configuration."""

import json
import logging
import sys
from pathlib import Path
from unittest.mock import patch

from catalog_search.config import Environment, Settings
from catalog_search.logging_config import (
    DevFormatter,
    JSONFormatter,
    get_logger,
    setup_logging,
)


def _record(
    msg: str = "Test message",
    level: int = logging.INFO,
    **extra: object,
) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_format_basic_message(self) -> None:
        """Basic log message is formatted as JSON."""
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert "extra" not in data

    def test_format_includes_file_info(self) -> None:
        """Log includes file and line information."""
        data = json.loads(JSONFormatter().format(_record(level=logging.ERROR)))
        assert data["file"] == "test.py:10"

    def test_format_with_exception(self) -> None:
        """Exception info is included in output."""
        try:
            raise ValueError("test error")
        except ValueError:
            exc_info = sys.exc_info()

        record = _record("Error", level=logging.ERROR)
        record.exc_info = exc_info

        data = json.loads(JSONFormatter().format(record))

        assert "exception" in data
        assert "ValueError" in data["exception"]

    def test_extra_fields_are_nested(self) -> None:
        """Context passed through extra= lands under 'extra'."""
        record = _record("Seeded", collection="products", records=2500)

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"] == {"collection": "products", "records": 2500}

    def test_unserializable_extra_is_stringified(self) -> None:
        """Values json cannot encode are rendered with str()."""
        record = _record("Seeding", data_dir=Path("/data/seed"))

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"]["data_dir"] == "/data/seed"


class TestDevFormatter:
    """Tests for development formatter."""

    def test_format_includes_level(self) -> None:
        """Development format includes level."""
        record = logging.LogRecord(
            name="test.module",
            level=logging.WARNING,
            pathname="test.py",
            lineno=10,
            msg="Warning message",
            args=(),
            exc_info=None,
        )

        output = DevFormatter().format(record)

        assert "WARNING" in output
        assert "test.module" in output
        assert "Warning message" in output

    def test_context_is_appended(self) -> None:
        """Extra fields are appended as sorted key=value pairs."""
        output = DevFormatter().format(_record("Batch", collection="manuals", batch=2))
        assert output.endswith("| batch=2 collection=manuals")


class TestSetupLogging:
    """Tests for logging setup."""

    def test_returns_root_logger(self) -> None:
        """setup_logging returns root logger."""
        logger = setup_logging(level="INFO", json_output=False)
        assert logger is logging.getLogger()

    def test_uses_json_in_production(self) -> None:
        """JSON output is used in production environment."""
        mock_settings = Settings(environment=Environment.PRODUCTION)

        with patch("catalog_search.logging_config.get_settings", return_value=mock_settings):
            setup_logging()

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_uses_dev_formatter_in_development(self) -> None:
        """Dev formatter is used in development environment."""
        mock_settings = Settings(environment=Environment.DEVELOPMENT)

        with patch("catalog_search.logging_config.get_settings", return_value=mock_settings):
            setup_logging()

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, DevFormatter)

    def test_level_override(self) -> None:
        """Log level can be overridden."""
        setup_logging(level="DEBUG", json_output=False)
        assert logging.getLogger().level == logging.DEBUG

    def test_json_output_override(self) -> None:
        """JSON output can be forced."""
        mock_settings = Settings(environment=Environment.DEVELOPMENT)

        with patch("catalog_search.logging_config.get_settings", return_value=mock_settings):
            setup_logging(json_output=True)

        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_http_loggers_quieted(self) -> None:
        """httpx and httpcore only log warnings and above."""
        setup_logging(level="DEBUG", json_output=False)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING


class TestGetLogger:
    """Tests for named logger retrieval."""

    def test_returns_named_logger(self) -> None:
        """get_logger returns a logger with the given name."""
        logger = get_logger("catalog_search.ingestion")
        assert logger.name == "catalog_search.ingestion"

    def test_logger_hierarchy(self) -> None:
        """Child loggers inherit the root level."""
        setup_logging(level="WARNING", json_output=False)
        child = get_logger("catalog_search.retrieval.retriever")
        assert child.getEffectiveLevel() == logging.WARNING
