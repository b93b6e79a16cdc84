"""Runtime settings for the interactive client.

Every field has a default, may be overridden from the environment, and may be
overridden again from the command line (see ``cli.py``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_GRACE_PERIOD = 0.5
DEFAULT_INITIALIZE_TIMEOUT = 30.0
DEFAULT_QUEUE_CAPACITY = 10
DEFAULT_LOG_LEVEL = "INFO"


def _env_float(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def _timeout_or_none(value: Optional[float]) -> Optional[float]:
    # 0 means "no timeout"
    if value is None or value == 0:
        return None
    return value


@dataclass
class ClientConfig:
    grace_period: float = DEFAULT_GRACE_PERIOD
    """Seconds to wait after spawning the server before wiring the transport."""

    initialize_timeout: Optional[float] = DEFAULT_INITIALIZE_TIMEOUT
    """Upper bound on the initialize handshake; ``None`` waits forever."""

    call_timeout: Optional[float] = None
    """Upper bound on a single tool call; ``None`` waits forever."""

    queue_capacity: int = DEFAULT_QUEUE_CAPACITY
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """Build a config from ``MCP_CLIENT_*`` environment variables."""
        env = os.environ if env is None else env
        return cls(
            grace_period=_env_float(env, "MCP_CLIENT_GRACE_PERIOD", DEFAULT_GRACE_PERIOD),
            initialize_timeout=_timeout_or_none(
                _env_float(env, "MCP_CLIENT_INITIALIZE_TIMEOUT", DEFAULT_INITIALIZE_TIMEOUT)
            ),
            call_timeout=_timeout_or_none(_env_float(env, "MCP_CLIENT_CALL_TIMEOUT", None)),
            log_level=env.get("MCP_CLIENT_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL,
        )
