"""Spawn an MCP server executable and expose its stdio as a duplex transport.

The transport itself is the SDK's ``stdio_client``. It frames JSON-RPC over the
child's stdin/stdout and, when the context exits, closes stdin and escalates to
terminate and kill, so the child never outlives the run. This module adds path
validation, ``SpawnError`` reporting and the post-spawn grace period.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator, Sequence
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Union

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from mcp.client.stdio import StdioServerParameters, stdio_client
from mcp.shared.message import SessionMessage

from .config import DEFAULT_GRACE_PERIOD
from .errors import SpawnError

logger = logging.getLogger(__name__)

ReadStream = MemoryObjectReceiveStream[Union[SessionMessage, Exception]]
WriteStream = MemoryObjectSendStream[SessionMessage]


@asynccontextmanager
async def open_process_transport(
    command: str,
    args: Sequence[str] = (),
    *,
    grace_period: float = DEFAULT_GRACE_PERIOD,
) -> AsyncIterator[tuple[ReadStream, WriteStream]]:
    """
    Launch ``command`` and yield ``(read_stream, write_stream)`` for
    ``mcp.ClientSession``.

    The child's stderr output is discarded.

    Raises:
        SpawnError: the command is empty or could not be executed.
    """
    command = command.strip()
    if not command:
        raise SpawnError("Executable path is empty")

    server_params = StdioServerParameters(command=command, args=list(args))

    with open(os.devnull, "w") as errlog:
        async with AsyncExitStack() as stack:
            try:
                streams = await stack.enter_async_context(stdio_client(server_params, errlog=errlog))
            except OSError as e:
                raise SpawnError(f"Failed to start server {command!r}: {e}") from e

            logger.info("Started server process %s", command)
            # Fixed delay, not a readiness probe.
            await anyio.sleep(grace_period)
            yield streams
