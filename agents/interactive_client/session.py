"""Session lifecycle for one MCP server connection.

``SessionLifecycleManager`` owns the ``ClientSession`` and moves through
``UNINITIALIZED -> READY -> SHUTTING_DOWN -> CLOSED``. Transitions only go
forward, and nothing is sent to the server once the session is closed.
"""

from __future__ import annotations

import enum
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import anyio
from pydantic import ValidationError

from mcp import ClientSession
from mcp.shared.exceptions import McpError
from mcp.types import CallToolResult, TextContent

from .bridge import ReadStream, WriteStream
from .errors import CallError, SessionError

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


@dataclass(frozen=True)
class ServerDescriptor:
    name: str
    version: str
    protocol_version: str

    def __str__(self) -> str:
        return f"{self.name} v{self.version} (protocol {self.protocol_version})"


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str = ""


def _error_text(result: CallToolResult) -> str:
    texts = [block.text for block in result.content if isinstance(block, TextContent)]
    return "\n".join(texts) or "tool returned an error result"


class SessionLifecycleManager:
    """
    Drives initialize, tool discovery, tool calls and shutdown over a
    transport's ``(read_stream, write_stream)`` pair.

    Calls are expected one at a time; the dispatch loop guarantees that.
    """

    def __init__(
        self,
        read_stream: ReadStream,
        write_stream: WriteStream,
        *,
        initialize_timeout: Optional[float] = None,
        call_timeout: Optional[float] = None,
    ):
        self._read_stream = read_stream
        self._write_stream = write_stream
        self._initialize_timeout = initialize_timeout
        self._call_timeout = timedelta(seconds=call_timeout) if call_timeout else None
        self._exit_stack = AsyncExitStack()
        self._session: Optional[ClientSession] = None

        self.state = SessionState.UNINITIALIZED
        self.server: Optional[ServerDescriptor] = None
        self.tools: dict[str, ToolDescriptor] = {}

    async def __aenter__(self) -> "SessionLifecycleManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    def _require_ready(self, operation: str) -> ClientSession:
        if self.state is not SessionState.READY or self._session is None:
            raise SessionError(f"Cannot {operation}: session is {self.state.value}")
        return self._session

    async def initialize(self) -> ServerDescriptor:
        """Perform the MCP handshake and capture the server's identity."""
        if self.state is not SessionState.UNINITIALIZED:
            raise SessionError(f"Cannot initialize: session is {self.state.value}")

        logger.info("Initializing client...")
        try:
            session = await self._exit_stack.enter_async_context(ClientSession(self._read_stream, self._write_stream))
            with anyio.fail_after(self._initialize_timeout):
                init_result = await session.initialize()
        except (
            McpError,
            TimeoutError,
            RuntimeError,
            ValidationError,
            anyio.ClosedResourceError,
            anyio.BrokenResourceError,
        ) as e:
            # RuntimeError: unsupported protocol version
            await self._close()
            raise SessionError(f"Failed to initialize session: {str(e) or type(e).__name__}") from e

        self._session = session
        self.server = ServerDescriptor(
            name=init_result.serverInfo.name,
            version=init_result.serverInfo.version,
            protocol_version=str(init_result.protocolVersion),
        )
        self.state = SessionState.READY
        logger.info("Connected to server: %s", self.server)
        return self.server

    async def list_tools(self) -> dict[str, ToolDescriptor]:
        """
        Fetch the server's tool catalog.

        The catalog is informational only, so a failed listing is logged and
        yields an empty catalog instead of ending the session.
        """
        session = self._require_ready("list tools")
        try:
            result = await session.list_tools()
        except (McpError, RuntimeError, ValidationError, anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
            logger.warning("Could not list tools: %s", e)
            result = None

        self.tools = {}
        for tool in result.tools if result is not None else []:
            self.tools[tool.name] = ToolDescriptor(name=tool.name, description=tool.description or "")

        if self.tools:
            logger.info("Available tools:")
            for tool in self.tools.values():
                logger.info("  - %s - %s", tool.name, tool.description)
        else:
            logger.info("No tools available")
        return self.tools

    async def call_tool(self, name: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Invoke ``name`` with ``params`` and return the result as JSON-ready data.

        Raises:
            CallError: the request failed or the tool reported an error.
            SessionError: the session is not ready.
        """
        session = self._require_ready("call tool")
        try:
            result = await session.call_tool(name, arguments=params, read_timeout_seconds=self._call_timeout)
        except McpError as e:
            raise CallError(name, e.error.message) from e
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
            raise CallError(name, "connection to server lost") from e
        except (RuntimeError, ValidationError) as e:
            # RuntimeError: structured content does not match the tool's outputSchema
            raise CallError(name, str(e)) from e

        if result.isError:
            raise CallError(name, _error_text(result))
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)

    async def shutdown(self) -> None:
        """Close the session. Safe to call more than once; failures are only logged."""
        if self.state in (SessionState.SHUTTING_DOWN, SessionState.CLOSED):
            return
        logger.info("Shutting down client...")
        self.state = SessionState.SHUTTING_DOWN
        await self._close()

    async def _close(self) -> None:
        try:
            await self._exit_stack.aclose()
        except Exception:
            logger.exception("Error while shutting down session")
        finally:
            self._session = None
            self.state = SessionState.CLOSED
            logger.debug("Session closed")
