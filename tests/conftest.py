from __future__ import annotations

import pytest

from fakes import FakeRegistry, FakeSink, make_command, sequential_ids
from twitch_bot.commands.engine import CommandManagementEngine
from twitch_bot.core.guards import reset_cooldowns


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry(make_command("!greet", "Hello!"))


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def engine(registry: FakeRegistry, sink: FakeSink) -> CommandManagementEngine:
    return CommandManagementEngine(registry, sink, id_factory=sequential_ids())


@pytest.fixture(autouse=True)
def _clear_cooldowns():
    reset_cooldowns()
    yield
    reset_cooldowns()
