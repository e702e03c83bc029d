"""Google Drive MCP server.

Exposes Drive files as MCP resources (list/read) and a full-text ``search``
tool. The handlers are stateless: pagination cursors travel in the protocol
messages and nothing is kept between requests.

Exceptions raised by a handler (unknown tool, missing argument, bad URI,
Drive API errors) are turned into JSON-RPC error responses by the MCP
session; the connection and the process keep serving.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple

from mcp import types
from mcp.server import Server

from gdrive_mcp.__version__ import __version__
from gdrive_mcp.drive import DriveClient, SearchResult
from gdrive_mcp.server.transports import StdioTransport, Transport, serve

logger = logging.getLogger(__name__)

SERVER_NAME = "gdrive-mcp-server"

ToolHandler = Callable[[dict[str, Any]], Awaitable[str]]


class RegisteredTool(NamedTuple):
    """Tool schema advertised to clients plus the coroutine that runs it."""

    definition: types.Tool
    handler: ToolHandler


def format_search_summary(result: SearchResult) -> str:
    """Render search matches as the human-readable tool output."""
    lines = "\n".join(f"{match.name} ({match.mime_type})" for match in result.matches)
    return f"Found {result.count} files:\n{lines}"


class GDriveServer:
    """MCP server for read-only Google Drive access.

    Attributes:
        drive: Drive client shared by every connection.
        server: Low-level MCP Server instance.
        tools: Tool registry keyed by tool name.
    """

    def __init__(self, drive: DriveClient) -> None:
        """Initialize the server around an authenticated Drive client."""
        self.drive = drive
        self.server = Server(SERVER_NAME, version=__version__)
        self.tools: dict[str, RegisteredTool] = {}
        self._register_tools()
        self._setup_handlers()

    def _register_tools(self) -> None:
        """Populate the tool registry. The set of tools is fixed at startup."""
        self._register_tool(
            types.Tool(
                name="search",
                description="Search for files in Google Drive",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "Search query",
                        },
                    },
                    "required": ["query"],
                },
            ),
            self._search,
        )

    def _register_tool(self, definition: types.Tool, handler: ToolHandler) -> None:
        self.tools[definition.name] = RegisteredTool(definition, handler)

    def _setup_handlers(self) -> None:
        """Register MCP request handlers."""
        handlers = self.server.request_handlers
        handlers[types.ListResourcesRequest] = self._list_resources
        handlers[types.ReadResourceRequest] = self._read_resource
        handlers[types.ListToolsRequest] = self._list_tools
        handlers[types.CallToolRequest] = self._call_tool

    async def _list_resources(self, request: types.ListResourcesRequest) -> types.ServerResult:
        """List one page of Drive files as resources."""
        cursor = request.params.cursor if request.params is not None else None
        page = await self.drive.list_files(cursor)

        return types.ServerResult(
            types.ListResourcesResult(
                resources=[
                    types.Resource(uri=item.uri, name=item.name, mimeType=item.mime_type)
                    for item in page.resources
                ],
                nextCursor=page.next_cursor,
            )
        )

    async def _read_resource(self, request: types.ReadResourceRequest) -> types.ServerResult:
        """Read a file as a single text or blob content item."""
        uri = str(request.params.uri)
        content = await self.drive.read_file(uri)

        contents: types.TextResourceContents | types.BlobResourceContents
        if content.text is not None:
            contents = types.TextResourceContents(
                uri=uri, mimeType=content.mime_type, text=content.text
            )
        else:
            contents = types.BlobResourceContents(
                uri=uri, mimeType=content.mime_type, blob=content.blob
            )

        return types.ServerResult(types.ReadResourceResult(contents=[contents]))

    async def _list_tools(self, request: types.ListToolsRequest) -> types.ServerResult:
        """Return the tool catalog."""
        return types.ServerResult(
            types.ListToolsResult(tools=[tool.definition for tool in self.tools.values()])
        )

    async def _call_tool(self, request: types.CallToolRequest) -> types.ServerResult:
        """Dispatch a tool call through the registry.

        Raises:
            ValueError: If the tool name is not registered.
        """
        name = request.params.name
        tool = self.tools.get(name)
        if tool is None:
            raise ValueError(f"Unknown tool: {name}")

        text = await tool.handler(request.params.arguments or {})
        return types.ServerResult(
            types.CallToolResult(
                content=[types.TextContent(type="text", text=text)],
                isError=False,
            )
        )

    async def _search(self, arguments: dict[str, Any]) -> str:
        """Run a full-text Drive search.

        Raises:
            ValueError: If the query argument is missing or empty.
        """
        query = arguments.get("query")
        if not query:
            raise ValueError("Query parameter is required")

        logger.info("Searching Drive for %r", query)
        result = await self.drive.search(str(query))
        return format_search_summary(result)

    async def connect(self, transport: Transport) -> None:
        """Serve this server's handlers over a transport until it closes."""
        await serve(self.server, transport)

    async def close(self) -> None:
        """Release the Drive client's HTTP resources."""
        await self.drive.close()

    async def run_stdio(self) -> None:
        """Run the MCP server using stdio transport."""
        try:
            await self.connect(StdioTransport())
        finally:
            await self.close()
