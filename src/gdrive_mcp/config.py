"""Runtime configuration for the gdrive-mcp server.

All settings come from the process environment (optionally populated from a
``.env`` file by the CLI). Credential variables are consumed by
``gdrive_mcp.auth.token_storage``; this module covers the serving options.

Environment Variables:
    MCP_TRANSPORT: ``sse`` or ``websocket`` (default: stdio)
    HOST: Listening address for HTTP transports (default: 0.0.0.0)
    PORT: Listening port for HTTP transports (default: 3000)
    LOG_LEVEL: Logging verbosity (default: INFO)
    MCP_ENV: ``production`` when running inside the Docker image
"""

import logging
import os
import sys
from collections.abc import Mapping
from enum import Enum

from pydantic import BaseModel, Field

# Credential variables
ENV_CREDENTIALS_PATH = "GDRIVE_CREDENTIALS_PATH"
ENV_CLIENT_ID = "GDRIVE_CLIENT_ID"
ENV_CLIENT_SECRET = "GDRIVE_CLIENT_SECRET"  # nosec B105 - variable name, not a secret
ENV_ACCESS_TOKEN = "GDRIVE_ACCESS_TOKEN"  # nosec B105
ENV_REFRESH_TOKEN = "GDRIVE_REFRESH_TOKEN"  # nosec B105

# Serving variables
ENV_TRANSPORT = "MCP_TRANSPORT"
ENV_HOST = "HOST"
ENV_PORT = "PORT"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_DEPLOYMENT = "MCP_ENV"

DEFAULT_HOST = "0.0.0.0"  # nosec B104 - container deployments bind all interfaces
DEFAULT_PORT = 3000
DEFAULT_LOG_LEVEL = "INFO"


class TransportMode(str, Enum):
    """Connection front-ends the server can be started with."""

    STDIO = "stdio"
    SSE = "sse"
    WEBSOCKET = "websocket"


def select_transport(
    sse: bool = False,
    websocket: bool = False,
    environ: Mapping[str, str] | None = None,
) -> TransportMode:
    """Pick the serving mode from CLI flags and ``MCP_TRANSPORT``.

    SSE wins over WebSocket when both are requested; stdio is the default.
    """
    env = os.environ if environ is None else environ
    requested = env.get(ENV_TRANSPORT, "").strip().lower()

    if sse or requested == TransportMode.SSE.value:
        return TransportMode.SSE
    if websocket or requested == TransportMode.WEBSOCKET.value:
        return TransportMode.WEBSOCKET
    return TransportMode.STDIO


class ServerConfig(BaseModel):
    """Serving options resolved at startup.

    Attributes:
        transport: Selected connection front-end.
        host: Address the HTTP listener binds to.
        port: Port the HTTP listener binds to.
        log_level: Root logging level name.
        docker: True when running as the production container image.
    """

    transport: TransportMode = Field(default=TransportMode.STDIO)
    host: str = Field(default=DEFAULT_HOST)
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    log_level: str = Field(default=DEFAULT_LOG_LEVEL)
    docker: bool = Field(default=False)

    model_config = {"frozen": True}

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        sse: bool = False,
        websocket: bool = False,
    ) -> "ServerConfig":
        """Build the configuration from environment variables and CLI flags.

        Raises:
            pydantic.ValidationError: If PORT is not a valid port number.
        """
        env = os.environ if environ is None else environ
        return cls(
            transport=select_transport(sse=sse, websocket=websocket, environ=env),
            host=env.get(ENV_HOST) or DEFAULT_HOST,
            port=env.get(ENV_PORT) or DEFAULT_PORT,
            log_level=(env.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper(),
            docker=env.get(ENV_DEPLOYMENT, "").lower() == "production",
        )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure root logging on stderr.

    stdout carries the stdio transport framing and must never receive log lines.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        force=True,
    )
