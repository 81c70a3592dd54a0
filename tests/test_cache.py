"""Tests for the read-through list cache."""

from __future__ import annotations

import pytest

from shared.cache import ReadThroughCache, read_through
from shared.errors import StorageError

pytestmark = pytest.mark.anyio


class _Source:
    def __init__(self) -> None:
        self.calls = 0
        self.fail = False

    @read_through(ReadThroughCache(maxsize=4, ttl=60), key_func=lambda self, key: f"k:{key}")
    async def read(self, key: str) -> str:
        self.calls += 1
        if self.fail:
            raise StorageError("down")
        return f"{key}-{self.calls}"


@pytest.fixture(autouse=True)
def _clear_source_cache():
    _Source.read.cache.clear()


async def test_cached_read_hits_source_once() -> None:
    source = _Source()

    assert await source.read("a") == "a-1"
    assert await source.read("a") == "a-1"
    assert source.calls == 1


async def test_invalidate_forces_reload() -> None:
    source = _Source()
    await source.read("a")
    _Source.read.cache.invalidate("k:a")

    assert await source.read("a") == "a-2"


async def test_failed_reload_serves_last_known_value() -> None:
    source = _Source()
    await source.read("b")
    _Source.read.cache.invalidate("k:b")
    source.fail = True

    assert await source.read("b") == "b-1"


async def test_failure_without_last_known_value_propagates() -> None:
    source = _Source()
    source.fail = True

    with pytest.raises(StorageError):
        await source.read("never-loaded")


async def test_last_known_values_are_bounded() -> None:
    cache = ReadThroughCache(maxsize=2, ttl=60)
    for key in ("x", "y", "z"):
        await cache.get_or_load(key, _returning(key))

    cache.fresh.clear()

    assert "x" not in cache.last_known
    with pytest.raises(StorageError):
        await cache.get_or_load("x", _failing)
    assert await cache.get_or_load("z", _failing) == "z"


def _returning(value: str):
    async def load() -> str:
        return value

    return load


async def _failing() -> str:
    raise StorageError("down")
