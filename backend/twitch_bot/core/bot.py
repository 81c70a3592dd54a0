"""Twitch Bot class: lifecycle, component loading and custom command firing."""

from __future__ import annotations

import asyncio
import logging

import asyncpg
import twitchio
from twitchio import eventsub
from twitchio.ext import commands

from shared.errors import StorageError
from shared.repositories.custom_command import CONFIG_CHANGE_CHANNEL, CustomCommandRepository
from twitch_bot.commands.runtime import CustomCommandRuntime
from twitch_bot.core.pg_listener import NotifyListener

LOGGER: logging.Logger = logging.getLogger("Bot")

COMPONENT_MODULES = ("twitch_bot.components.command_manager",)


class Bot(commands.AutoBot):
    pool: asyncpg.Pool

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        bot_id: str,
        owner_id: str,
        conduit_id: str | None,
        pool: asyncpg.Pool,
        subs: list[eventsub.SubscriptionPayload],
        prefix: str = "!",
    ) -> None:
        self.pool = pool
        self.command_prefix = prefix
        self.custom_commands = CustomCommandRepository(pool)
        self.runtime = CustomCommandRuntime(self.custom_commands)
        self.config_listener = NotifyListener(
            pool, CONFIG_CHANGE_CHANNEL, self._handle_config_change
        )
        self._background_tasks: set[asyncio.Task] = set()

        init_kwargs: dict = dict(
            client_id=client_id,
            client_secret=client_secret,
            bot_id=bot_id,
            owner_id=owner_id,
            prefix=prefix,
            subscriptions=subs,
            force_subscribe=True,
        )
        if conduit_id:
            init_kwargs["conduit_id"] = conduit_id

        super().__init__(**init_kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def setup_hook(self) -> None:
        for module_name in COMPONENT_MODULES:
            try:
                await self.load_module(module_name)
            except commands.ModuleError as e:
                LOGGER.error(f"Failed to load component {module_name}: {e}")

        self._spawn(self.config_listener.run())

    async def close(self, **options) -> None:
        for task in list(self._background_tasks):
            task.cancel()
        await super().close(**options)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def event_ready(self) -> None:
        LOGGER.info("Successfully logged in as: %s", self.bot_id)

    async def event_oauth_authorized(
        self, payload: twitchio.authentication.UserTokenPayload
    ) -> None:
        await self.add_token(payload.access_token, payload.refresh_token)
        if payload.user_id:
            LOGGER.info(f"Token authorized for user {payload.user_id}")

    async def event_message(self, payload: twitchio.ChatMessage) -> None:
        if payload.broadcaster is None or payload.chatter.id == self.bot_id:
            return

        LOGGER.debug(f"[{payload.chatter.name}#{payload.broadcaster.name}]: {payload.text}")
        text = payload.text or ""

        # "!Command add ..." routes like "!command add ..."
        if text.startswith(self.command_prefix):
            head, _, rest = text.partition(" ")
            head = head.lower()
            if head[len(self.command_prefix) :] in self.commands:
                payload.text = f"{head} {rest}" if rest else head
                await super().event_message(payload)
                return

        if await self._fire_custom_command(payload):
            return
        await super().event_message(payload)

    # ------------------------------------------------------------------
    # Custom commands
    # ------------------------------------------------------------------

    async def _fire_custom_command(self, payload: twitchio.ChatMessage) -> bool:
        """Send the replies of the custom command the message triggers.

        Returns True if at least one reply was sent.
        """
        channel_id = payload.broadcaster.id
        try:
            replies = await self.runtime.handle(
                channel_id, payload.broadcaster.name or "", payload.chatter, payload.text or ""
            )
        except StorageError as e:
            LOGGER.warning(f"Custom commands unavailable in {channel_id}: {e}")
            return False

        for reply in replies:
            await payload.broadcaster.send_message(
                message=reply,
                sender=self.bot_id,
                token_for=self.bot_id,
                reply_to_message_id=str(payload.id),
            )
        return bool(replies)

    async def _handle_config_change(self, data: dict) -> None:
        """Drop the cached command list for the channel named in the notification."""
        channel_id = data.get("channel_id")
        if not channel_id or data.get("table") != "custom_commands":
            return
        LOGGER.info(f"[NOTIFY] Custom commands changed for {channel_id}")
        self.custom_commands.invalidate_cache(channel_id)
