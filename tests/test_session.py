from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Union

import anyio
import pytest

from mcp.shared.message import SessionMessage
from mcp.types import LATEST_PROTOCOL_VERSION, JSONRPCMessage, JSONRPCRequest, JSONRPCResponse

from agents.hello_world.server_stdio import initialization_options, server
from agents.interactive_client.dispatch import InputDispatchLoop
from agents.interactive_client.errors import CallError, SessionError
from agents.interactive_client.session import (
    ServerDescriptor,
    SessionLifecycleManager,
    SessionState,
    ToolDescriptor,
)

Message = Union[SessionMessage, Exception]


@asynccontextmanager
async def connected_manager(**kwargs) -> AsyncIterator[SessionLifecycleManager]:
    """A manager wired to the demo server through in-memory streams."""
    client_send, server_receive = anyio.create_memory_object_stream[Message](1)
    server_send, client_receive = anyio.create_memory_object_stream[Message](1)

    async with anyio.create_task_group() as tg:
        tg.start_soon(server.run, server_receive, server_send, initialization_options())
        manager = SessionLifecycleManager(client_receive, client_send, **kwargs)
        try:
            yield manager
        finally:
            await manager.shutdown()
            tg.cancel_scope.cancel()


@pytest.mark.anyio
async def test_initialize_reaches_ready():
    async with connected_manager() as manager:
        assert manager.state is SessionState.UNINITIALIZED

        descriptor = await manager.initialize()

        assert manager.state is SessionState.READY
        assert isinstance(descriptor, ServerDescriptor)
        assert descriptor.name == "hello-world-stdio"
        assert descriptor.version == "0.2.0"
        assert descriptor.protocol_version
        assert manager.server == descriptor


@pytest.mark.anyio
async def test_initialize_twice_is_rejected():
    async with connected_manager() as manager:
        await manager.initialize()
        with pytest.raises(SessionError):
            await manager.initialize()
        assert manager.state is SessionState.READY


@pytest.mark.anyio
async def test_calls_before_initialize_are_rejected():
    async with connected_manager() as manager:
        with pytest.raises(SessionError, match="uninitialized"):
            await manager.call_tool("echo", {"message": "too early"})
        with pytest.raises(SessionError):
            await manager.list_tools()


@pytest.mark.anyio
async def test_list_tools_builds_catalog():
    async with connected_manager() as manager:
        await manager.initialize()
        tools = await manager.list_tools()

    assert set(tools) == {"echo", "add", "hello"}
    assert tools["echo"] == ToolDescriptor(name="echo", description="Echo back the given message")


@pytest.mark.anyio
async def test_call_tool_returns_json_ready_result():
    async with connected_manager() as manager:
        await manager.initialize()
        result = await manager.call_tool("echo", {"message": "Hello, world!"})

        assert result["content"] == [{"type": "text", "text": "Hello, world!"}]
        assert result["isError"] is False
        assert manager.state is SessionState.READY


@pytest.mark.anyio
async def test_failed_call_keeps_session_ready():
    async with connected_manager() as manager:
        await manager.initialize()

        with pytest.raises(CallError) as exc_info:
            await manager.call_tool("add", {"a": "one", "b": 2})
        assert exc_info.value.tool_name == "add"
        assert manager.state is SessionState.READY

        result = await manager.call_tool("add", {"a": 1, "b": 2})
        assert result["content"][0]["text"] == "3"


@pytest.mark.anyio
async def test_unknown_tool_is_rejected_by_server():
    async with connected_manager() as manager:
        await manager.initialize()
        with pytest.raises(CallError):
            await manager.call_tool("no_such_tool", {})
        assert manager.state is SessionState.READY


@pytest.mark.anyio
async def test_shutdown_closes_session_once():
    async with connected_manager() as manager:
        await manager.initialize()

        await manager.shutdown()
        assert manager.state is SessionState.CLOSED

        await manager.shutdown()
        assert manager.state is SessionState.CLOSED

        with pytest.raises(SessionError, match="closed"):
            await manager.call_tool("echo", {"message": "late"})


@pytest.mark.anyio
async def test_context_exit_shuts_down():
    async with connected_manager() as outer:
        async with outer as manager:
            await manager.initialize()
        assert manager.state is SessionState.CLOSED


@pytest.mark.anyio
async def test_initialize_fails_when_server_is_gone():
    client_send, server_receive = anyio.create_memory_object_stream[Message](10)
    server_send, client_receive = anyio.create_memory_object_stream[Message](10)
    await server_send.aclose()

    manager = SessionLifecycleManager(client_receive, client_send, initialize_timeout=2)
    with pytest.raises(SessionError, match="Failed to initialize"):
        await manager.initialize()

    assert manager.state is SessionState.CLOSED
    assert manager.server is None
    await server_receive.aclose()


@pytest.mark.anyio
async def test_initialize_times_out_on_silent_server():
    client_send, server_receive = anyio.create_memory_object_stream[Message](10)
    server_send, client_receive = anyio.create_memory_object_stream[Message](10)

    manager = SessionLifecycleManager(client_receive, client_send, initialize_timeout=0.2)
    with pytest.raises(SessionError):
        await manager.initialize()

    assert manager.state is SessionState.CLOSED
    await server_send.aclose()
    await server_receive.aclose()


def scripted_result(method: str, params: dict) -> dict:
    """Replies of a misbehaving server: bad structured content and malformed results."""
    if method == "initialize":
        return {
            "protocolVersion": LATEST_PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": "scripted", "version": "1.0"},
        }
    if method == "tools/list":
        return {
            "tools": [
                {
                    "name": "typed",
                    "inputSchema": {"type": "object"},
                    "outputSchema": {
                        "type": "object",
                        "properties": {"n": {"type": "integer"}},
                        "required": ["n"],
                    },
                },
                {"name": "echo", "inputSchema": {"type": "object"}},
                {"name": "garbled", "inputSchema": {"type": "object"}},
            ]
        }
    if method == "tools/call":
        if params["name"] == "typed":
            return {"content": [], "structuredContent": {"n": "not-an-int"}}
        if params["name"] == "garbled":
            return {"content": "not a list"}
        return {"content": [{"type": "text", "text": "ok"}]}
    return {}


async def scripted_server(read_stream, write_stream, reply=scripted_result) -> None:
    async for message in read_stream:
        if isinstance(message, Exception):
            continue
        request = message.message.root
        if not isinstance(request, JSONRPCRequest):
            continue
        result = reply(request.method, request.params or {})
        response = JSONRPCResponse(jsonrpc="2.0", id=request.id, result=result)
        await write_stream.send(SessionMessage(JSONRPCMessage(response)))


@asynccontextmanager
async def scripted_manager(reply=scripted_result, **kwargs) -> AsyncIterator[SessionLifecycleManager]:
    client_send, server_receive = anyio.create_memory_object_stream[Message](1)
    server_send, client_receive = anyio.create_memory_object_stream[Message](1)

    async with anyio.create_task_group() as tg:
        tg.start_soon(scripted_server, server_receive, server_send, reply)
        manager = SessionLifecycleManager(client_receive, client_send, **kwargs)
        try:
            yield manager
        finally:
            await manager.shutdown()
            tg.cancel_scope.cancel()


@pytest.mark.anyio
async def test_structured_content_mismatch_is_a_call_error():
    async with scripted_manager(initialize_timeout=5) as manager:
        await manager.initialize()
        await manager.list_tools()

        with pytest.raises(CallError) as exc_info:
            await manager.call_tool("typed", {})
        assert exc_info.value.tool_name == "typed"
        assert manager.state is SessionState.READY

        result = await manager.call_tool("echo", {})
        assert result["content"][0]["text"] == "ok"


@pytest.mark.anyio
async def test_malformed_call_result_is_a_call_error():
    async with scripted_manager(initialize_timeout=5) as manager:
        await manager.initialize()
        with pytest.raises(CallError):
            await manager.call_tool("garbled", {})
        assert manager.state is SessionState.READY


@pytest.mark.anyio
async def test_bad_call_result_does_not_stop_the_loop():
    lines = iter(["typed {}", "echo {}"])
    output: list[str] = []

    async with scripted_manager(initialize_timeout=5) as manager:
        await manager.initialize()
        await manager.list_tools()

        loop = InputDispatchLoop(manager, lambda: next(lines, None), write=output.append)
        with anyio.fail_after(10):
            await loop.run()

    assert len(output) == 1
    assert '"ok"' in output[0]


@pytest.mark.anyio
async def test_unsupported_protocol_version_fails_initialize():
    def reply(method: str, params: dict) -> dict:
        result = scripted_result(method, params)
        if method == "initialize":
            result["protocolVersion"] = "1999-01-01"
        return result

    async with scripted_manager(reply, initialize_timeout=5) as manager:
        with pytest.raises(SessionError, match="1999-01-01"):
            await manager.initialize()
        assert manager.state is SessionState.CLOSED
        assert manager.server is None


@pytest.mark.anyio
async def test_malformed_initialize_result_fails_initialize():
    def reply(method: str, params: dict) -> dict:
        return {"serverInfo": "nobody"} if method == "initialize" else scripted_result(method, params)

    async with scripted_manager(reply, initialize_timeout=5) as manager:
        with pytest.raises(SessionError):
            await manager.initialize()
        assert manager.state is SessionState.CLOSED


@pytest.mark.anyio
async def test_malformed_tool_listing_yields_empty_catalog():
    def reply(method: str, params: dict) -> dict:
        return {"tools": [{"name": 5}]} if method == "tools/list" else scripted_result(method, params)

    async with scripted_manager(reply, initialize_timeout=5) as manager:
        await manager.initialize()
        assert await manager.list_tools() == {}
        assert manager.state is SessionState.READY
