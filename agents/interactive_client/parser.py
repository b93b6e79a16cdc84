"""Turn a typed line like ``echo {"message": "hi"}`` into a tool command."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .errors import FormatError, ParamsError

USAGE = "<tool_name> <json_params>"


@dataclass(frozen=True)
class Command:
    tool_name: str
    params: dict[str, Any]


def parse_command(line: str) -> Command:
    """
    Split ``line`` on its first whitespace run into a tool name and a JSON
    object of parameters.

    Raises:
        FormatError: the line has no parameters part.
        ParamsError: the parameters are not valid JSON, or not a JSON object.
    """
    parts = line.strip().split(None, 1)
    if len(parts) < 2:
        raise FormatError(f"Invalid input format, missing parameters. Use: {USAGE}")

    tool_name, params_text = parts
    try:
        params = json.loads(params_text)
    except json.JSONDecodeError as e:
        raise ParamsError(f"Invalid JSON parameters: {e}") from e

    if not isinstance(params, dict):
        raise ParamsError(f"Invalid JSON parameters: expected an object, got {type(params).__name__}")

    return Command(tool_name=tool_name, params=params)
