#!/usr/bin/env python3
"""Demo MCP server for the interactive client: echo, add and hello tools over stdio."""
import anyio
from mcp.server.lowlevel import Server, NotificationOptions
from mcp.server.stdio import stdio_server
from mcp.server.models import InitializationOptions
import mcp.types as types

SERVER_NAME = "hello-world-stdio"
SERVER_VERSION = "0.2.0"

# 1) Low‐level stdio server
server = Server(SERVER_NAME)

# 2) Tools
@server.list_tools()
async def list_tools() -> list[types.Tool]:
    return [
        types.Tool(
            name="echo",
            description="Echo back the given message",
            inputSchema={
                "type": "object",
                "properties": {"message": {"type": "string"}},
                "required": ["message"],
            },
        ),
        types.Tool(
            name="add",
            description="Add two numbers",
            inputSchema={
                "type": "object",
                "properties": {"a": {"type": "number"}, "b": {"type": "number"}},
                "required": ["a", "b"],
            },
        ),
        types.Tool(
            name="hello",
            description="Return a Hello World greeting",
            inputSchema={"type": "object", "properties": {"name": {"type": "string"}}, "required": []},
        ),
    ]

@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
    if name == "echo":
        return [types.TextContent(type="text", text=str(arguments["message"]))]
    if name == "add":
        a, b = arguments["a"], arguments["b"]
        if not all(isinstance(v, (int, float)) for v in (a, b)):
            raise ValueError("a and b must be numbers")
        return [types.TextContent(type="text", text=str(a + b))]
    if name == "hello":
        who = arguments.get("name") or "stdio World"
        return [types.TextContent(type="text", text=f"Hello, {who}!")]
    raise ValueError(f"Unknown tool: {name}")


def initialization_options() -> InitializationOptions:
    return InitializationOptions(
        server_name=SERVER_NAME,
        server_version=SERVER_VERSION,
        capabilities=server.get_capabilities(
            notification_options=NotificationOptions(),
            experimental_capabilities={},
        ),
    )

# 3) Entrypoint over stdio
async def run_server():
    # stdio_server() sets up JSON-RPC over your process's stdin/stdout
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, initialization_options())

if __name__ == "__main__":
    anyio.run(run_server)
