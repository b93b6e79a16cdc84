import stat
import sys
from pathlib import Path

import pytest

import agents.hello_world.server_stdio as server_stdio

SERVER_SCRIPT = Path(server_stdio.__file__).resolve()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def server_script() -> Path:
    return SERVER_SCRIPT


@pytest.fixture
def launcher(tmp_path: Path) -> str:
    """An argument-less executable that starts the demo server."""
    if sys.platform == "win32":  # pragma: no cover
        pytest.skip("launcher scripts need a POSIX shell")
    script = tmp_path / "hello-server"
    script.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{SERVER_SCRIPT}"\n')
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)
