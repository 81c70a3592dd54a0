"""Repository for the custom_commands table."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable

import asyncpg

from shared.cache import ReadThroughCache, read_through
from shared.errors import StorageError
from shared.models.custom_command import CustomCommand

logger = logging.getLogger(__name__)

# Freshness is kept by explicit invalidation on writes and by the
# config_change listener in the bot.
_cmd_list_cache = ReadThroughCache(maxsize=32, ttl=3600)

_COLUMNS = (
    "trigger, active, scan_whole_message, cooldown_user, cooldown_global, "
    "effects, restriction_data, count, description, "
    "created_by, last_edited_by, created_at, updated_at"
)

CONFIG_CHANGE_CHANNEL = "config_change"


def _list_key(channel_id: str) -> str:
    return f"custom_cmd_list:{channel_id}"


async def _retry_on_db_error(func, max_retries: int = 2):
    """Run a write, retrying once; wrap the final failure in StorageError."""
    for attempt in range(1, max_retries + 1):
        try:
            return await func()
        except asyncio.CancelledError:
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError) as e:
            if attempt < max_retries:
                delay = 0.5 * attempt
                logger.warning(
                    f"DB write attempt {attempt}/{max_retries} failed: {type(e).__name__}, "
                    f"retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
            else:
                logger.error(f"DB write failed after {max_retries} attempts: {e}")
                raise StorageError(str(e)) from e


class CustomCommandRepository:
    """SQL operations for custom_commands, scoped by channel."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    @read_through(_cmd_list_cache, key_func=lambda self, channel_id: _list_key(channel_id))
    async def list_all(self, channel_id: str) -> list[CustomCommand]:
        """All commands for a channel, active or not, in creation order."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"SELECT {_COLUMNS} FROM custom_commands "
                    "WHERE channel_id = $1 ORDER BY created_at, trigger",
                    channel_id,
                )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError) as e:
            raise StorageError(str(e)) from e
        return [CustomCommand.from_row(row) for row in rows]

    async def list_active(self, channel_id: str) -> list[CustomCommand]:
        return [c for c in await self.list_all(channel_id) if c.active]

    async def get(self, channel_id: str, trigger: str) -> CustomCommand | None:
        for command in await self.list_all(channel_id):
            if command.trigger == trigger:
                return command
        return None

    async def is_trigger_taken(self, channel_id: str, trigger: str) -> bool:
        """Case-insensitive check across every command in the channel."""
        wanted = trigger.lower()
        return any(c.trigger.lower() == wanted for c in await self.list_all(channel_id))

    async def save(self, channel_id: str, command: CustomCommand, actor: str) -> None:
        """Insert or replace a command, attributing the write to *actor*."""

        async def _query():
            async with self.pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO custom_commands
                        (channel_id, trigger, active, scan_whole_message,
                         cooldown_user, cooldown_global, effects, restriction_data,
                         count, description, created_by, last_edited_by)
                    VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb, $8::jsonb,
                            $9, $10, $11, $12)
                    ON CONFLICT (channel_id, trigger) DO UPDATE SET
                        active = EXCLUDED.active,
                        scan_whole_message = EXCLUDED.scan_whole_message,
                        cooldown_user = EXCLUDED.cooldown_user,
                        cooldown_global = EXCLUDED.cooldown_global,
                        effects = EXCLUDED.effects,
                        restriction_data = EXCLUDED.restriction_data,
                        count = EXCLUDED.count,
                        description = EXCLUDED.description,
                        last_edited_by = EXCLUDED.last_edited_by,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    channel_id,
                    command.trigger,
                    command.active,
                    command.scan_whole_message,
                    command.cooldown.user_seconds,
                    command.cooldown.global_seconds,
                    json.dumps(command.effects.to_dict()),
                    json.dumps(command.restriction_data.to_dict()),
                    command.count,
                    command.description,
                    command.created_by or actor,
                    actor,
                )
                _cmd_list_cache.invalidate(_list_key(channel_id))

        await _retry_on_db_error(_query)
        logger.debug(f"Saved custom command '{command.trigger}' in {channel_id} by {actor}")

    async def delete_by_trigger(self, channel_id: str, trigger: str) -> bool:
        """Delete a command. Returns True if a row was removed."""

        async def _query():
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    "DELETE FROM custom_commands WHERE channel_id = $1 AND trigger = $2",
                    channel_id,
                    trigger,
                )
                _cmd_list_cache.invalidate(_list_key(channel_id))
                return result == "DELETE 1"

        return await _retry_on_db_error(_query)

    async def increment_count(self, channel_id: str, trigger: str) -> int:
        """Bump the usage counter and return the new value (0 if the row is gone)."""

        async def _query():
            async with self.pool.acquire() as conn:
                value = await conn.fetchval(
                    "UPDATE custom_commands SET count = count + 1 "
                    "WHERE channel_id = $1 AND trigger = $2 RETURNING count",
                    channel_id,
                    trigger,
                )
                _cmd_list_cache.invalidate(_list_key(channel_id))
                return value or 0

        return await _retry_on_db_error(_query)

    async def notify_configuration_changed(self, channel_id: str) -> None:
        """Publish a config_change notification so listeners reload."""
        payload = json.dumps({"channel_id": channel_id, "table": "custom_commands"})

        async def _query():
            async with self.pool.acquire() as conn:
                await conn.execute("SELECT pg_notify($1, $2)", CONFIG_CHANGE_CHANNEL, payload)

        await _retry_on_db_error(_query)

    def invalidate_cache(self, channel_id: str) -> None:
        _cmd_list_cache.invalidate(_list_key(channel_id))


class ChannelCommandRegistry:
    """Binds the repository to one channel for the management engine.

    ``reserved_triggers`` are the bot's own command triggers; they count as
    taken so a custom command can never shadow a built-in one.
    """

    def __init__(
        self,
        repo: CustomCommandRepository,
        channel_id: str,
        reserved_triggers: Iterable[str] = (),
    ) -> None:
        self.repo = repo
        self.channel_id = channel_id
        self.reserved_triggers = frozenset(t.lower() for t in reserved_triggers)

    async def is_trigger_taken(self, trigger: str) -> bool:
        if trigger.lower() in self.reserved_triggers:
            return True
        return await self.repo.is_trigger_taken(self.channel_id, trigger)

    async def list_active(self) -> list[CustomCommand]:
        return await self.repo.list_active(self.channel_id)

    async def list_all(self) -> list[CustomCommand]:
        return await self.repo.list_all(self.channel_id)

    async def save(self, command: CustomCommand, actor: str) -> None:
        await self.repo.save(self.channel_id, command, actor)

    async def delete_by_trigger(self, trigger: str) -> None:
        await self.repo.delete_by_trigger(self.channel_id, trigger)

    async def notify_configuration_changed(self) -> None:
        await self.repo.notify_configuration_changed(self.channel_id)
