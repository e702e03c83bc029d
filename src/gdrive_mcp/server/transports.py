"""Transports binding the MCP server to a connection.

Every connection kind implements the same three operations (``start``,
``send``, ``close``) and exposes the messages it receives on ``incoming``.
``serve`` drives the MCP server over any of them:

- StdioTransport: newline-delimited JSON-RPC on stdin/stdout
- SseTransport: one Server-Sent Events stream per HTTP request
- WebSocketTransport: one WebSocket per connection

A transport serves exactly one session. Malformed input is logged and
dropped without closing the connection.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, AsyncExitStack

import anyio
from anyio.abc import ObjectReceiveStream, ObjectSendStream
from mcp import types
from mcp.server import Server
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from mcp.shared.message import SessionMessage
from pydantic import ValidationError
from starlette.requests import Request
from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)

MCP_SUBPROTOCOL = "mcp"

IncomingStream = ObjectReceiveStream[SessionMessage | Exception]


class Transport(ABC):
    """Connection contract the MCP server is bound to.

    ``incoming`` is only valid after ``start`` returns and ends when the peer
    goes away.
    """

    incoming: IncomingStream

    @abstractmethod
    async def start(self) -> None:
        """Open the connection and begin receiving messages."""

    @abstractmethod
    async def send(self, message: SessionMessage) -> None:
        """Deliver one outgoing message to the peer."""

    @abstractmethod
    async def close(self) -> None:
        """Tear the connection down. Safe to call more than once."""


class StreamPairTransport(Transport):
    """Transport backed by an SDK context manager yielding (read, write) streams."""

    def __init__(self) -> None:
        self._stack = AsyncExitStack()
        self._write_stream: ObjectSendStream[SessionMessage] | None = None

    @abstractmethod
    def _open_streams(
        self,
    ) -> AbstractAsyncContextManager[tuple[IncomingStream, ObjectSendStream[SessionMessage]]]:
        """Return the SDK context manager for this connection kind."""

    async def start(self) -> None:
        read_stream, write_stream = await self._stack.enter_async_context(self._open_streams())
        self.incoming = read_stream
        self._write_stream = write_stream

    async def send(self, message: SessionMessage) -> None:
        if self._write_stream is None:
            raise RuntimeError("Transport not started")
        await self._write_stream.send(message)

    async def close(self) -> None:
        # The SDK writer tasks only finish once their stream is closed
        if self._write_stream is not None:
            await self._write_stream.aclose()
            self._write_stream = None
        await self._stack.aclose()


class StdioTransport(StreamPairTransport):
    """Local process pipe: JSON-RPC over stdin/stdout."""

    def _open_streams(self):
        return stdio_server()


class SseTransport(StreamPairTransport):
    """Server-Sent Events channel bound to one HTTP request.

    Client-to-server messages arrive through the shared SseServerTransport's
    POST endpoint and are routed here by session ID.
    """

    def __init__(self, sse: SseServerTransport, request: Request) -> None:
        super().__init__()
        self._sse = sse
        self._request = request

    def _open_streams(self):
        return self._sse.connect_sse(
            self._request.scope,
            self._request.receive,
            self._request._send,  # type: ignore[attr-defined]
        )


class WebSocketTransport(Transport):
    """Bidirectional WebSocket carrying one JSON-RPC message per frame."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._stack = AsyncExitStack()
        self._incoming_writer, self.incoming = anyio.create_memory_object_stream(0)

    @property
    def connected(self) -> bool:
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    async def start(self) -> None:
        offered = self._websocket.scope.get("subprotocols", [])
        subprotocol = MCP_SUBPROTOCOL if MCP_SUBPROTOCOL in offered else None
        await self._websocket.accept(subprotocol=subprotocol)

        task_group = await self._stack.enter_async_context(anyio.create_task_group())
        # Callbacks run LIFO, so the reader is cancelled before the group exits
        self._stack.callback(task_group.cancel_scope.cancel)
        task_group.start_soon(self._read_frames)
        logger.info("WebSocket transport initialized")

    async def _read_frames(self) -> None:
        async with self._incoming_writer:
            async for payload in self._frames():
                try:
                    message = types.JSONRPCMessage.model_validate_json(payload)
                except ValidationError as err:
                    logger.warning("Dropping malformed WebSocket message: %s", err)
                    continue

                logger.debug(
                    "Received MCP message: %s", getattr(message.root, "method", "response")
                )
                await self._incoming_writer.send(SessionMessage(message))

    async def _frames(self) -> AsyncIterator[str | bytes]:
        while True:
            frame = await self._websocket.receive()
            if frame["type"] == "websocket.disconnect":
                logger.info("WebSocket peer disconnected (code %s)", frame.get("code"))
                return
            payload = frame.get("text")
            if payload is None:
                payload = frame.get("bytes") or b""
            yield payload

    async def send(self, message: SessionMessage) -> None:
        if not self.connected:
            logger.debug("Skipping send on closed WebSocket")
            return
        await self._websocket.send_text(
            message.message.model_dump_json(by_alias=True, exclude_none=True)
        )

    async def close(self) -> None:
        await self._stack.aclose()
        if self.connected:
            await self._websocket.close()


async def _forward_outgoing(
    outgoing: ObjectReceiveStream[SessionMessage], transport: Transport
) -> None:
    async with outgoing:
        async for message in outgoing:
            await transport.send(message)


async def serve(server: Server, transport: Transport) -> None:
    """Run ``server`` over ``transport`` until the peer disconnects.

    The transport is always closed on exit, including on cancellation.
    """
    await transport.start()
    try:
        outgoing_writer, outgoing_reader = anyio.create_memory_object_stream(0)
        async with anyio.create_task_group() as tg:
            tg.start_soon(_forward_outgoing, outgoing_reader, transport)
            async with outgoing_writer:
                await server.run(
                    transport.incoming,
                    outgoing_writer,
                    server.create_initialization_options(),
                )
    finally:
        await transport.close()
