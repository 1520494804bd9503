"""Tests for the command-line entry point and serve()."""

import asyncio
import os
import signal
from pathlib import Path

import pytest

from dailies.config import Settings
from dailies.main import parse_args, serve
from dailies.notifications.hub import NotificationHub

# -- parse_args ----------------------------------------------------------------


def test_defaults_without_flags() -> None:
    config = parse_args([])
    assert config.database_path == Path("data/dailies.db")
    assert config.server_port == 8080
    assert config.scheduler_timezone == "UTC"


def test_flags_override_settings() -> None:
    config = parse_args(["--db-path", "/tmp/d.db", "--port", "9090", "--tz", "America/Denver"])
    assert config.database_path == Path("/tmp/d.db")
    assert config.server_port == 9090
    assert config.scheduler_timezone == "America/Denver"


def test_invalid_timezone_flag_is_rejected() -> None:
    with pytest.raises(ValueError, match="invalid timezone"):
        parse_args(["--tz", "Nowhere/Special"])


# -- serve ---------------------------------------------------------------------


def _config(tmp_path: Path) -> Settings:
    return Settings(database_path=tmp_path / "d.db", server_host="127.0.0.1", server_port=0)


async def test_serve_stops_on_sigterm(tmp_path: Path) -> None:
    task = asyncio.create_task(serve(_config(tmp_path)))
    await asyncio.sleep(0.2)
    os.kill(os.getpid(), signal.SIGTERM)
    await asyncio.wait_for(task, timeout=5)


async def test_serve_surfaces_hub_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    async def broken_run(self) -> None:
        raise RuntimeError("hub loop died")

    monkeypatch.setattr(NotificationHub, "run", broken_run)
    with pytest.raises(RuntimeError, match="hub loop died"):
        await asyncio.wait_for(serve(_config(tmp_path)), timeout=5)
