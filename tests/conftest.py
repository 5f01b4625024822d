import asyncio

import pytest

from fakes import FakeToolingClient


@pytest.fixture
def fake_client():
    """Factory for scripted Tooling clients."""
    return FakeToolingClient


@pytest.fixture
def sleeps():
    """Sleep stand-in that records the poll intervals waited for."""
    recorded: list[float] = []

    async def _sleep(seconds: float) -> None:
        recorded.append(seconds)
        await asyncio.sleep(0)

    _sleep.recorded = recorded
    return _sleep


@pytest.fixture(autouse=True)
def isolated_home(monkeypatch, tmp_path):
    """Keep tests away from the real ~/.config/apexcompile and sf defaults."""
    home = tmp_path / "apexcompile_home"
    monkeypatch.setenv("APEXCOMPILE_HOME", str(home))
    # set first so teardown also removes values loaded from .env files
    monkeypatch.setenv("SF_TARGET_ORG", "")
    monkeypatch.delenv("SF_TARGET_ORG")
    return home
