"""Interactive console that launches an MCP server over stdio and calls its tools."""

from .bridge import open_process_transport
from .config import ClientConfig
from .dispatch import InputDispatchLoop, StdinLineSource
from .errors import (
    CallError,
    CommandError,
    FormatError,
    InteractiveClientError,
    ParamsError,
    ReadError,
    SessionError,
    SpawnError,
)
from .parser import Command, parse_command
from .session import ServerDescriptor, SessionLifecycleManager, SessionState, ToolDescriptor

__all__ = [
    "CallError",
    "ClientConfig",
    "Command",
    "CommandError",
    "FormatError",
    "InputDispatchLoop",
    "InteractiveClientError",
    "ParamsError",
    "ReadError",
    "ServerDescriptor",
    "SessionError",
    "SessionLifecycleManager",
    "SessionState",
    "SpawnError",
    "StdinLineSource",
    "ToolDescriptor",
    "open_process_transport",
    "parse_command",
]
