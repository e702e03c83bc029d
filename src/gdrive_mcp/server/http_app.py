"""HTTP front-ends for the gdrive MCP server.

Two Starlette applications share the same GDriveServer:

SSE app (MCP Inspector):
    GET  /                          Server info
    GET  /health                    Health check
    GET  /sse                       Opens a Server-Sent Events channel
    POST /messages/?session_id=...  Client-to-server messages for a channel

WebSocket app:
    GET  /health                    Health check
    WS   /mcp                       One MCP session per socket

Any other path answers 404, and a known path with the wrong method 405, with a
JSON body naming the available endpoints. OPTIONS is answered with an empty
200 on every path.
Every connection is served independently; a failure in one is logged and
ends only that connection.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Any

import uvicorn
from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route, WebSocketRoute
from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.websockets import WebSocket

from gdrive_mcp.__version__ import __version__
from gdrive_mcp.config import ServerConfig, TransportMode
from gdrive_mcp.server.gdrive_server import GDriveServer
from gdrive_mcp.server.transports import SseTransport, WebSocketTransport

logger = logging.getLogger(__name__)

SERVICE_NAME = "mcp-gdrive"
DISPLAY_NAME = "MCP GDrive Server"
CAPABILITIES = ["resources", "tools"]

SSE_PATH = "/sse"
MESSAGES_PATH = "/messages/"
WEBSOCKET_PATH = "/mcp"
HEALTH_PATH = "/health"

# Seconds uvicorn waits for in-flight SSE connections before forcing exit
SSE_GRACEFUL_SHUTDOWN_SECONDS = 10

CORS_ALLOW_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = ["*"]


class PreflightMiddleware:
    """Answers every OPTIONS request with an empty 200, whatever the path."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "OPTIONS":
            await self.app(scope, receive, send)
            return

        response = Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
                "Access-Control-Allow-Headers": "*",
            },
        )
        await response(scope, receive, send)


def _cors_middleware() -> list[Middleware]:
    return [
        Middleware(PreflightMiddleware),
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=CORS_ALLOW_METHODS,
            allow_headers=CORS_ALLOW_HEADERS,
            expose_headers=["Content-Type"],
            allow_credentials=False,
        ),
    ]


def _absolute_endpoints(config: ServerConfig, paths: dict[str, str]) -> dict[str, str]:
    return {name: f"http://localhost:{config.port}{path}" for name, path in paths.items()}


def health_payload(config: ServerConfig, endpoints: dict[str, str]) -> dict[str, Any]:
    """Body of GET /health."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__,
        "capabilities": CAPABILITIES,
        "transports": [config.transport.value],
        "endpoints": endpoints,
        "docker": config.docker,
    }


def _lifespan(gdrive: GDriveServer):
    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        logger.info("Shutting down, releasing Drive client")
        await gdrive.close()

    return lifespan


def _error_handlers(message: str, endpoints: dict[str, str]) -> dict[int, Any]:
    """JSON bodies for unknown paths (404) and unsupported methods (405)."""

    async def http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            {
                "error": HTTPStatus(exc.status_code).phrase,
                "message": message,
                "endpoints": endpoints,
            },
            status_code=exc.status_code,
            headers=exc.headers,
        )

    return {404: http_error, 405: http_error}


def create_sse_app(gdrive: GDriveServer, config: ServerConfig) -> Starlette:
    """Build the Starlette app serving MCP over Server-Sent Events.

    Args:
        gdrive: Server whose handlers every SSE channel is bound to.
        config: Serving options (port and docker flag feed the info bodies).

    Returns:
        Starlette application ready for uvicorn.
    """
    sse = SseServerTransport(MESSAGES_PATH)
    endpoints = {"sse": SSE_PATH, "health": HEALTH_PATH}
    public_endpoints = _absolute_endpoints(config, endpoints)

    async def root(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "name": DISPLAY_NAME,
                "version": __version__,
                "endpoints": public_endpoints,
                "instructions": "Connect MCP Inspector to the SSE endpoint",
            }
        )

    async def health(request: Request) -> JSONResponse:
        return JSONResponse(health_payload(config, endpoints))

    async def handle_sse(request: Request) -> Response:
        client = request.client.host if request.client else "unknown"
        logger.info("New SSE connection from %s", client)
        try:
            await gdrive.connect(SseTransport(sse, request))
        except Exception:
            logger.exception("SSE connection from %s failed", client)
        finally:
            logger.info("SSE connection from %s closed", client)
        return Response()

    return Starlette(
        routes=[
            Route("/", endpoint=root, methods=["GET"]),
            Route(HEALTH_PATH, endpoint=health, methods=["GET"]),
            Route(SSE_PATH, endpoint=handle_sse, methods=["GET"]),
            Mount(MESSAGES_PATH, app=sse.handle_post_message),
        ],
        middleware=_cors_middleware(),
        exception_handlers=_error_handlers(
            "Available endpoints: /sse (for MCP Inspector), /health (for status check)",
            public_endpoints,
        ),
        lifespan=_lifespan(gdrive),
    )


def create_websocket_app(gdrive: GDriveServer, config: ServerConfig) -> Starlette:
    """Build the Starlette app serving MCP over WebSocket at /mcp."""
    endpoints = {"mcp": WEBSOCKET_PATH, "health": HEALTH_PATH}

    async def health(request: Request) -> JSONResponse:
        return JSONResponse(health_payload(config, endpoints))

    async def handle_websocket(websocket: WebSocket) -> None:
        client = websocket.client.host if websocket.client else "unknown"
        logger.info("New MCP connection from %s", client)
        try:
            await gdrive.connect(WebSocketTransport(websocket))
        except Exception:
            logger.exception("WebSocket connection from %s failed", client)
        finally:
            logger.info("MCP connection from %s closed", client)

    public_endpoints = {
        "mcp": f"ws://localhost:{config.port}{WEBSOCKET_PATH}",
        "health": f"http://localhost:{config.port}{HEALTH_PATH}",
    }

    return Starlette(
        routes=[
            Route(HEALTH_PATH, endpoint=health, methods=["GET"]),
            WebSocketRoute(WEBSOCKET_PATH, endpoint=handle_websocket),
        ],
        middleware=_cors_middleware(),
        exception_handlers=_error_handlers(
            "Use a WebSocket connection to /mcp for MCP communication",
            public_endpoints,
        ),
        lifespan=_lifespan(gdrive),
    )


def run_sse_server(gdrive: GDriveServer, config: ServerConfig) -> None:
    """Serve the SSE app until SIGINT/SIGTERM.

    uvicorn stops accepting connections on the signal and force-exits after
    SSE_GRACEFUL_SHUTDOWN_SECONDS if channels are still open.
    """
    app = create_sse_app(gdrive, config)

    logger.info("MCP GDrive server ready on %s:%d", config.host, config.port)
    logger.info("SSE endpoint: http://localhost:%d%s", config.port, SSE_PATH)
    logger.info("Health check: http://localhost:%d%s", config.port, HEALTH_PATH)

    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        timeout_graceful_shutdown=SSE_GRACEFUL_SHUTDOWN_SECONDS,
    )


def run_websocket_server(gdrive: GDriveServer, config: ServerConfig) -> None:
    """Serve the WebSocket app until SIGINT/SIGTERM."""
    app = create_websocket_app(gdrive, config)

    logger.info("MCP GDrive server ready on %s:%d", config.host, config.port)
    logger.info("WebSocket endpoint: ws://localhost:%d%s", config.port, WEBSOCKET_PATH)
    logger.info("Health check: http://localhost:%d%s", config.port, HEALTH_PATH)

    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


def run_http_server(gdrive: GDriveServer, config: ServerConfig) -> None:
    """Dispatch to the HTTP front-end selected in ``config``."""
    if config.transport == TransportMode.SSE:
        run_sse_server(gdrive, config)
    elif config.transport == TransportMode.WEBSOCKET:
        run_websocket_server(gdrive, config)
    else:
        raise ValueError(f"Not an HTTP transport: {config.transport.value}")
