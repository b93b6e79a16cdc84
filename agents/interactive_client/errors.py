"""Exceptions raised by the interactive client.

Spawn and initialize failures end the run. Command, call and read failures are
reported and the interactive loop carries on (a read failure ends input, which
shuts the session down gracefully).
"""


class InteractiveClientError(Exception):
    """Base class for all interactive client errors."""


class SpawnError(InteractiveClientError):
    """The server executable could not be launched."""


class SessionError(InteractiveClientError):
    """The session handshake failed or the session is not in a usable state."""


class CommandError(InteractiveClientError):
    """A user-typed line could not be turned into a command."""


class FormatError(CommandError):
    """The line is missing the tool name or its parameters."""


class ParamsError(CommandError):
    """The parameters are not a valid JSON object."""


class CallError(InteractiveClientError):
    """A remote tool invocation failed or returned an error result."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Error calling tool {tool_name!r}: {message}")
        self.tool_name = tool_name
        self.message = message


class ReadError(InteractiveClientError):
    """The line input source failed."""
