"""MCP server implementation for Google Drive.

Resources:
- List Drive files (10 per page, cursor-based pagination)
- Read a file by gdrive:///<id> URI (Google Docs/Sheets/Slides are exported)

Tools:
- search: Full-text search across the user's Drive

Transports: stdio (Claude Desktop), SSE and WebSocket (MCP Inspector)
Authentication: tokens supplied via environment, no automatic refresh
"""

from gdrive_mcp.drive import DriveClient
from gdrive_mcp.server.gdrive_server import GDriveServer
from gdrive_mcp.server.transports import (
    SseTransport,
    StdioTransport,
    Transport,
    WebSocketTransport,
    serve,
)


def create_server(drive: DriveClient) -> GDriveServer:
    """Create a Google Drive MCP server around an authenticated client.

    Example:
        >>> server = create_server(DriveClient(record.to_credentials()))
        >>> asyncio.run(server.run_stdio())
    """
    return GDriveServer(drive)


__all__ = [
    "create_server",
    "GDriveServer",
    "Transport",
    "StdioTransport",
    "SseTransport",
    "WebSocketTransport",
    "serve",
]
