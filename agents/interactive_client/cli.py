"""Command line entry point: ``python -m agents.interactive_client [EXECUTABLE]``."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import anyio

from .bridge import open_process_transport
from .config import ClientConfig
from .dispatch import InputDispatchLoop, LineReader, log_usage
from .errors import SessionError, SpawnError
from .session import SessionLifecycleManager

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def prompt_executable(stream=None, output=None) -> str:
    """Ask for the server executable on the terminal; EOF yields an empty path."""
    output = output or sys.stdout
    print("Enter server executable path:", file=output)
    print("> ", end="", flush=True, file=output)
    return (stream or sys.stdin).readline().strip()


async def run_client(executable: str, config: ClientConfig, read_line: Optional[LineReader] = None) -> None:
    """
    Run one interactive session against ``executable``.

    Raises:
        SpawnError: the server could not be started.
        SessionError: the initialize handshake failed.
    """
    # The transport runs this body inside a task group, which would wrap a
    # failed handshake in an exception group; re-raise it after the child is gone.
    init_error: Optional[SessionError] = None

    async with open_process_transport(executable, grace_period=config.grace_period) as (read_stream, write_stream):
        async with SessionLifecycleManager(
            read_stream,
            write_stream,
            initialize_timeout=config.initialize_timeout,
            call_timeout=config.call_timeout,
        ) as manager:
            try:
                await manager.initialize()
            except SessionError as e:
                init_error = e
            else:
                await manager.list_tools()

                log_usage()
                loop = InputDispatchLoop(manager, read_line, capacity=config.queue_capacity)
                await loop.run()
                await manager.shutdown()

    if init_error is not None:
        raise init_error


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Interactive console for calling tools on an MCP server over stdio")
    ap.add_argument("executable", nargs="?", default=None,
                    help="Server executable to launch (prompted for when omitted)")
    ap.add_argument("--grace-period", type=float, default=None,
                    help="Seconds to wait after spawning before connecting (env MCP_CLIENT_GRACE_PERIOD)")
    ap.add_argument("--initialize-timeout", type=float, default=None,
                    help="Seconds allowed for the initialize handshake, 0 for no limit (env MCP_CLIENT_INITIALIZE_TIMEOUT)")
    ap.add_argument("--call-timeout", type=float, default=None,
                    help="Seconds allowed per tool call, 0 for no limit (env MCP_CLIENT_CALL_TIMEOUT)")
    ap.add_argument("--log-level", default=None,
                    help="Logging level (env MCP_CLIENT_LOG_LEVEL, default INFO)")
    return ap


def load_config(args: argparse.Namespace) -> ClientConfig:
    config = ClientConfig.from_env()
    if args.grace_period is not None:
        config.grace_period = args.grace_period
    if args.initialize_timeout is not None:
        config.initialize_timeout = args.initialize_timeout or None
    if args.call_timeout is not None:
        config.call_timeout = args.call_timeout or None
    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    try:
        config = load_config(args)
    except ValueError as e:
        ap.error(str(e))

    logging.basicConfig(
        format="%(asctime)s - %(levelname)s - %(message)s",
        level=getattr(logging, config.log_level, logging.INFO),
    )

    try:
        executable = args.executable if args.executable is not None else prompt_executable()
        anyio.run(run_client, executable, config)
    except (SpawnError, SessionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    return 0


if __name__ == "__main__":
    sys.exit(main())
