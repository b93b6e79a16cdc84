"""Interactive command loop.

Lines are read on a dedicated daemon thread (reading a terminal blocks) and
handed to the event loop through a bounded memory object stream. A single
consumer parses each line and awaits its tool call before taking the next
one, so results come out in input order and only one call is ever in flight.
"""

from __future__ import annotations

import concurrent.futures
import json
import logging
import sys
import threading
from typing import Any, Callable, Optional, Protocol, TextIO

import anyio
from anyio.from_thread import BlockingPortal
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from .config import DEFAULT_QUEUE_CAPACITY
from .errors import CallError, CommandError, ReadError
from .parser import USAGE, parse_command

logger = logging.getLogger(__name__)

EXIT_COMMAND = "exit"

LineReader = Callable[[], Optional[str]]
"""Blocking callable returning the next line, or ``None`` at end of input."""


class ToolCaller(Protocol):
    async def call_tool(self, name: str, params: dict[str, Any]) -> dict[str, Any]: ...


class StdinLineSource:
    """Prompt on ``output`` and read one line from ``stream`` per call."""

    def __init__(self, stream: Optional[TextIO] = None, output: Optional[TextIO] = None, prompt: str = "> "):
        self.stream = stream
        self.output = output
        self.prompt = prompt

    def __call__(self) -> Optional[str]:
        print(self.prompt, end="", flush=True, file=self.output or sys.stdout)
        try:
            line = (self.stream or sys.stdin).readline()
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(f"Error reading from stdin: {e}") from e
        return line or None


def format_result(result: dict[str, Any]) -> str:
    return "Result: " + json.dumps(result, indent=2, ensure_ascii=False)


def log_usage() -> None:
    logger.info("Enter commands in the format: %s", USAGE)
    logger.info('Example: echo {"message": "Hello, world!"}')
    logger.info("Type '%s' to quit", EXIT_COMMAND)


class InputDispatchLoop:
    def __init__(
        self,
        caller: ToolCaller,
        read_line: Optional[LineReader] = None,
        *,
        capacity: int = DEFAULT_QUEUE_CAPACITY,
        write: Callable[[str], None] = print,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._caller = caller
        self._read_line = read_line or StdinLineSource()
        self._capacity = capacity
        self._write = write
        self._receive_stream: Optional[MemoryObjectReceiveStream[str]] = None

    @property
    def pending(self) -> int:
        """Number of lines read but not yet taken by the consumer."""
        if self._receive_stream is None:
            return 0
        return self._receive_stream.statistics().current_buffer_used

    async def run(self) -> None:
        """Serve commands until ``exit`` is typed or input ends."""
        send_stream, receive_stream = anyio.create_memory_object_stream[str](self._capacity)
        self._receive_stream = receive_stream

        async with BlockingPortal() as portal:
            producer = threading.Thread(
                target=self._produce,
                args=(portal, send_stream),
                name="interactive-client-input",
                daemon=True,
            )
            producer.start()
            try:
                await self._consume(receive_stream)
            finally:
                # Wakes a producer blocked on a full stream.
                await receive_stream.aclose()
                await portal.stop(cancel_remaining=True)

    def _produce(self, portal: BlockingPortal, send_stream: MemoryObjectSendStream[str]) -> None:
        try:
            while True:
                try:
                    line = self._read_line()
                except ReadError as e:
                    logger.error("%s", e)
                    return
                except Exception:
                    logger.exception("Error reading input")
                    return
                if line is None:
                    logger.debug("End of input")
                    return
                try:
                    portal.call(send_stream.send, line.strip())
                except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                    return
                except (RuntimeError, concurrent.futures.CancelledError):
                    # portal stopped: the consumer is gone
                    return
        finally:
            try:
                portal.call(send_stream.aclose)
            except (RuntimeError, concurrent.futures.CancelledError):
                send_stream.close()

    async def _consume(self, receive_stream: MemoryObjectReceiveStream[str]) -> None:
        async for line in receive_stream:
            if line == EXIT_COMMAND:
                logger.debug("Exit requested")
                return
            await self.handle_line(line)
        logger.debug("Input closed")

    async def handle_line(self, line: str) -> None:
        """Parse one line and run it; command and call errors are logged, not raised."""
        try:
            command = parse_command(line)
        except CommandError as e:
            logger.error("%s", e)
            return

        logger.info("Calling tool: %s with parameters: %s", command.tool_name, json.dumps(command.params))
        try:
            result = await self._caller.call_tool(command.tool_name, command.params)
        except CallError as e:
            logger.error("%s", e)
            return

        self._write(format_result(result))
