"""
Unit tests for engine configuration and logging setup.
"""

import io
import json
import logging

import pytest

from tcpctl.config import EngineConfig
from tcpctl.logging_setup import configure_logging


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_defaults_are_valid(self):
        config = EngineConfig()
        config.validate()
        assert config.default_backlog == 128
        assert config.default_bytes_cap == 4096

    def test_from_env(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("TCPCTL_BACKLOG", "512")
        monkeypatch.setenv("TCPCTL_LINE_CHUNK", "64")
        monkeypatch.setenv("TCPCTL_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("TCPCTL_LOG_FORMAT", "json")

        config = EngineConfig.from_env()
        assert config.default_backlog == 512
        assert config.line_chunk_size == 64
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert config.initial_buffer_size == 4096

    @pytest.mark.parametrize("field, value", [
        ("default_backlog", -1),
        ("initial_buffer_size", 0),
        ("line_chunk_size", 0),
        ("default_bytes_cap", 0),
        ("log_level", "LOUD"),
        ("log_format", "xml"),
    ])
    def test_validate_rejects(self, field, value):
        config = EngineConfig(**{field: value})
        with pytest.raises(ValueError):
            config.validate()


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_text_format(self):
        stream = io.StringIO()
        configure_logging(EngineConfig(log_level="INFO"), stream)
        logging.getLogger("tcpctl.engine").info("hello")
        line = stream.getvalue()
        assert "[INFO] tcpctl.engine: hello" in line

    def test_json_format(self):
        stream = io.StringIO()
        configure_logging(EngineConfig(log_level="DEBUG", log_format="json"), stream)
        logging.getLogger("tcpctl.core").debug("x")
        entry = json.loads(stream.getvalue().strip())
        assert entry["level"] == "DEBUG"
        assert entry["logger"] == "tcpctl.core"
        assert entry["message"] == "x"

    def test_reconfigure_does_not_stack_handlers(self):
        configure_logging(EngineConfig(), io.StringIO())
        package_logger = configure_logging(EngineConfig(), io.StringIO())
        assert len(package_logger.handlers) == 1

    def test_level_filters(self):
        stream = io.StringIO()
        configure_logging(EngineConfig(log_level="WARNING"), stream)
        logging.getLogger("tcpctl.engine").info("quiet")
        assert stream.getvalue() == ""
