"""Unit tests for serving configuration."""

import logging
import sys

import pytest
from pydantic import ValidationError

from gdrive_mcp.config import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    ServerConfig,
    TransportMode,
    configure_logging,
    select_transport,
)


@pytest.mark.unit
class TestSelectTransport:
    """Tests for transport selection precedence."""

    def test_should_default_to_stdio(self) -> None:
        """Verify stdio when nothing is requested."""
        assert select_transport(environ={}) == TransportMode.STDIO

    def test_should_select_sse_from_flag(self) -> None:
        """Verify --sse selects SSE."""
        assert select_transport(sse=True, environ={}) == TransportMode.SSE

    def test_should_select_websocket_from_environment(self) -> None:
        """Verify MCP_TRANSPORT=websocket selects WebSocket."""
        assert select_transport(environ={"MCP_TRANSPORT": "websocket"}) == TransportMode.WEBSOCKET

    def test_should_prefer_sse_over_websocket(self) -> None:
        """Verify SSE wins when both are requested."""
        assert select_transport(sse=True, websocket=True, environ={}) == TransportMode.SSE
        assert (
            select_transport(websocket=True, environ={"MCP_TRANSPORT": "sse"})
            == TransportMode.SSE
        )

    def test_should_ignore_unknown_transport_names(self) -> None:
        """Verify unrecognised MCP_TRANSPORT values fall back to stdio."""
        assert select_transport(environ={"MCP_TRANSPORT": "carrier-pigeon"}) == TransportMode.STDIO


@pytest.mark.unit
class TestServerConfig:
    """Tests for ServerConfig.from_env()."""

    def test_should_apply_defaults(self) -> None:
        """Verify defaults with an empty environment."""
        config = ServerConfig.from_env({})

        assert config.transport == TransportMode.STDIO
        assert config.host == DEFAULT_HOST
        assert config.port == DEFAULT_PORT
        assert config.log_level == "INFO"
        assert config.docker is False

    def test_should_read_environment(self) -> None:
        """Verify HOST, PORT, LOG_LEVEL and MCP_ENV are honoured."""
        config = ServerConfig.from_env(
            {"HOST": "127.0.0.1", "PORT": "8080", "LOG_LEVEL": "debug", "MCP_ENV": "production"},
            websocket=True,
        )

        assert config.transport == TransportMode.WEBSOCKET
        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.log_level == "DEBUG"
        assert config.docker is True

    def test_should_reject_invalid_port(self) -> None:
        """Verify non-numeric and out-of-range ports fail validation."""
        with pytest.raises(ValidationError):
            ServerConfig.from_env({"PORT": "not-a-port"})
        with pytest.raises(ValidationError):
            ServerConfig.from_env({"PORT": "70000"})


@pytest.mark.unit
class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_should_log_to_stderr_at_requested_level(self) -> None:
        """Verify stdout stays free of log output."""
        configure_logging("WARNING")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert any(
            isinstance(handler, logging.StreamHandler) and handler.stream is sys.stderr
            for handler in root.handlers
        )
