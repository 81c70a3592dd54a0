"""Tests for the asyncpg-backed custom command repository."""

from __future__ import annotations

import json
from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from fakes import make_command
from shared.errors import StorageError
from shared.repositories.custom_command import (
    CONFIG_CHANGE_CHANNEL,
    ChannelCommandRegistry,
    CustomCommandRepository,
)

pytestmark = pytest.mark.anyio


def _row(trigger: str, *, active: bool = True, count: int = 0) -> dict:
    return {
        "trigger": trigger,
        "active": active,
        "scan_whole_message": not trigger.startswith("!"),
        "cooldown_user": 0,
        "cooldown_global": 0,
        "effects": json.dumps(
            {"id": "l", "list": [{"id": "e", "type": "chat-reply", "message": "hi"}]}
        ),
        "restriction_data": json.dumps({"restrictions": []}),
        "count": count,
        "description": None,
        "created_by": None,
        "last_edited_by": None,
        "created_at": None,
        "updated_at": None,
    }


class _FakeConnection:
    def __init__(self, rows: list[dict]) -> None:
        self.fetch = AsyncMock(return_value=rows)
        self.execute = AsyncMock(return_value="INSERT 0 1")
        self.fetchval = AsyncMock(return_value=1)


class _FakePool:
    def __init__(self, conn: _FakeConnection) -> None:
        self.conn = conn

    def acquire(self):
        return self

    async def __aenter__(self) -> _FakeConnection:
        return self.conn

    async def __aexit__(self, *exc) -> bool:
        return False


@pytest.fixture(autouse=True)
def _clear_list_cache():
    CustomCommandRepository.list_all.cache.clear()
    yield
    CustomCommandRepository.list_all.cache.clear()


@pytest.fixture
def conn() -> _FakeConnection:
    return _FakeConnection([_row("!greet"), _row("good night", active=False)])


@pytest.fixture
def repo(conn: _FakeConnection) -> CustomCommandRepository:
    return CustomCommandRepository(_FakePool(conn))  # type: ignore[arg-type]


async def test_list_all_is_cached_per_channel(repo, conn) -> None:
    first = await repo.list_all("chan-1")
    second = await repo.list_all("chan-1")

    assert [c.trigger for c in first] == ["!greet", "good night"]
    assert second == first
    assert conn.fetch.await_count == 1

    await repo.list_all("chan-2")
    assert conn.fetch.await_count == 2


async def test_list_active_filters_disabled(repo) -> None:
    assert [c.trigger for c in await repo.list_active("chan-1")] == ["!greet"]


async def test_trigger_taken_is_case_insensitive(repo) -> None:
    assert await repo.is_trigger_taken("chan-1", "!GREET") is True
    assert await repo.is_trigger_taken("chan-1", "Good Night") is True
    assert await repo.is_trigger_taken("chan-1", "!bye") is False


async def test_save_serializes_and_invalidates(repo, conn) -> None:
    await repo.list_all("chan-1")
    command = make_command("!so", "Go follow!", count=2)

    await repo.save("chan-1", command, actor="mod_anna")

    args = conn.execute.await_args.args
    assert args[1:3] == ("chan-1", "!so")
    assert json.loads(args[7]) == command.effects.to_dict()
    assert json.loads(args[8]) == {"restrictions": []}
    assert args[9] == 2
    assert args[11:13] == ("mod_anna", "mod_anna")

    await repo.list_all("chan-1")
    assert conn.fetch.await_count == 2


async def test_save_keeps_original_creator(repo, conn) -> None:
    command = replace(make_command("!so"), created_by="anna")

    await repo.save("chan-1", command, actor="ben")

    assert conn.execute.await_args.args[11:13] == ("anna", "ben")


async def test_save_failure_raises_storage_error(repo, conn) -> None:
    conn.execute.side_effect = OSError("connection reset")

    with pytest.raises(StorageError):
        await repo.save("chan-1", make_command("!so"), actor="mod_anna")

    assert conn.execute.await_count == 2


async def test_delete_reports_whether_a_row_was_removed(repo, conn) -> None:
    conn.execute.return_value = "DELETE 1"
    assert await repo.delete_by_trigger("chan-1", "!greet") is True

    conn.execute.return_value = "DELETE 0"
    assert await repo.delete_by_trigger("chan-1", "!greet") is False


async def test_increment_count_returns_new_value(repo, conn) -> None:
    conn.fetchval.return_value = 8

    assert await repo.increment_count("chan-1", "!greet") == 8


async def test_notify_configuration_changed(repo, conn) -> None:
    await repo.notify_configuration_changed("chan-1")

    sql, channel, payload = conn.execute.await_args.args
    assert "pg_notify" in sql
    assert channel == CONFIG_CHANGE_CHANNEL
    assert json.loads(payload) == {"channel_id": "chan-1", "table": "custom_commands"}


async def test_stale_list_served_when_database_is_down(repo, conn) -> None:
    await repo.list_all("chan-1")
    repo.invalidate_cache("chan-1")
    conn.fetch.side_effect = OSError("database unavailable")

    commands = await repo.list_all("chan-1")

    assert [c.trigger for c in commands] == ["!greet", "good night"]


async def test_list_failure_without_cache_raises_storage_error(repo, conn) -> None:
    conn.fetch.side_effect = OSError("database unavailable")

    with pytest.raises(StorageError):
        await repo.list_all("chan-unseen")


async def test_channel_registry_reserves_builtin_triggers(repo, conn) -> None:
    registry = ChannelCommandRegistry(repo, "chan-1", reserved_triggers=["!Command"])

    assert await registry.is_trigger_taken("!command") is True
    assert await registry.is_trigger_taken("!greet") is True
    assert await registry.is_trigger_taken("!fresh") is False

    await registry.save(make_command("!fresh"), "mod_anna")
    assert conn.execute.await_args.args[1:3] == ("chan-1", "!fresh")
