"""Pytest configuration and shared fixtures."""

import os
import stat
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from fake_engine import FakeCDPServer

from lightpanda import Options

FAKE_ENGINE = Path(__file__).parent / "fake_engine.py"


@pytest.fixture
def fake_engine_path(tmp_path: Path) -> str:
    """Executable wrapper running the fake engine with this interpreter."""
    wrapper = tmp_path / "lightpanda"
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_ENGINE}" "$@"\n')
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(wrapper)


@pytest.fixture
def engine_options(fake_engine_path: str) -> Options:
    """Options spawning the fake engine on any free port."""
    return Options(
        port=0,
        browser_path=fake_engine_path,
        timeout=5.0,
        process_timeout=10.0,
        kill_timeout=2.0,
    )


@pytest.fixture
def engine_mode(monkeypatch: pytest.MonkeyPatch):
    """Select the fake engine's behaviour for the spawned process."""

    def set_mode(mode: str) -> None:
        monkeypatch.setenv("FAKE_ENGINE_MODE", mode)

    return set_mode


@pytest.fixture(autouse=True)
def _clean_engine_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FAKE_ENGINE_MODE", "LIGHTPANDA_DEFAULT_TIMEOUT", "LIGHTPANDA_PROCESS_TIMEOUT"):
        if name in os.environ:
            monkeypatch.delenv(name)


@pytest_asyncio.fixture
async def cdp_server():
    """In-process scripted CDP server."""
    async with FakeCDPServer() as server:
        yield server
