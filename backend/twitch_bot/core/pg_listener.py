"""LISTEN on a PostgreSQL channel and forward decoded JSON notifications."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import asyncpg

LOGGER = logging.getLogger("PgListener")

_CONNECTION_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

PayloadHandler = Callable[[dict[str, Any]], Awaitable[None]]


class NotifyListener:
    """Holds one pooled connection in LISTEN mode until cancelled.

    Each NOTIFY payload is parsed as a JSON object and passed to
    ``on_payload``; malformed payloads are logged and dropped. A lost
    connection is replaced after ``reconnect_delay`` seconds.
    """

    def __init__(
        self,
        pool: asyncpg.Pool,
        channel: str,
        on_payload: PayloadHandler,
        *,
        keepalive_interval: float = 30,
        reconnect_delay: float = 10,
    ) -> None:
        self.pool = pool
        self.channel = channel
        self.on_payload = on_payload
        self.keepalive_interval = keepalive_interval
        self.reconnect_delay = reconnect_delay

    async def _on_notify(self, connection, pid, channel: str, payload: str) -> None:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            LOGGER.warning(f"[NOTIFY] Malformed '{channel}' payload: {e}")
            return
        if not isinstance(data, dict):
            LOGGER.warning(f"[NOTIFY] Ignoring non-object '{channel}' payload")
            return
        await self.on_payload(data)

    async def _detach(self, connection: asyncpg.Connection) -> None:
        try:
            await connection.remove_listener(self.channel, self._on_notify)
        except _CONNECTION_ERRORS as e:
            LOGGER.debug(f"remove_listener('{self.channel}') failed: {e}")
        try:
            await self.pool.release(connection)
        except _CONNECTION_ERRORS:
            connection.terminate()

    async def _hold(self, connection: asyncpg.Connection) -> None:
        # Pings keep poolers from dropping an otherwise idle LISTEN connection
        while True:
            await asyncio.sleep(self.keepalive_interval)
            await connection.execute("SELECT 1")

    async def run(self) -> None:
        while True:
            connection: asyncpg.Connection | None = None
            try:
                connection = await self.pool.acquire()
                await connection.add_listener(self.channel, self._on_notify)
                LOGGER.info(f"PostgreSQL LISTEN active on '{self.channel}'")
                await self._hold(connection)
            except asyncio.CancelledError:
                LOGGER.info(f"PostgreSQL LISTEN '{self.channel}' shutting down...")
                raise
            except _CONNECTION_ERRORS as e:
                LOGGER.error(f"LISTEN '{self.channel}' lost: {type(e).__name__}: {e}")
            finally:
                if connection is not None:
                    await self._detach(connection)
            LOGGER.warning(f"Reconnecting to '{self.channel}' in {self.reconnect_delay}s...")
            await asyncio.sleep(self.reconnect_delay)
