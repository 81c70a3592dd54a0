import asyncio
import logging

from twitchio import eventsub

from shared.database import DatabaseManager, PoolConfig
from twitch_bot.core.bot import Bot
from twitch_bot.core.config import get_settings
from twitch_bot.core.database import setup_database_schema
from twitch_bot.core.logging import setup_logging

LOGGER: logging.Logger = logging.getLogger("Bot")


def build_subscriptions(channel_ids: list[str], bot_id: str) -> list[eventsub.SubscriptionPayload]:
    """Chat message subscriptions for every configured channel except the bot's own."""
    return [
        eventsub.ChatMessageSubscription(broadcaster_user_id=channel_id, user_id=bot_id)
        for channel_id in channel_ids
        if channel_id != bot_id
    ]


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)

    async def runner() -> None:
        db = DatabaseManager(settings.database_url, PoolConfig(max_size=5))
        pool = await db.connect()

        try:
            async with pool.acquire() as connection:
                await setup_database_schema(connection)

            subs = build_subscriptions(settings.channel_id_list, settings.bot_id)
            LOGGER.info(f"Starting bot with {len(subs)} initial subscriptions")

            async with Bot(
                client_id=settings.client_id,
                client_secret=settings.client_secret,
                bot_id=settings.bot_id,
                owner_id=settings.owner_id,
                conduit_id=settings.conduit_id or None,
                pool=pool,
                subs=subs,
                prefix=settings.command_prefix,
            ) as bot:
                await bot.start()
        finally:
            await db.disconnect()

    try:
        asyncio.run(runner())
    except KeyboardInterrupt:
        LOGGER.warning("Shutting down due to KeyboardInterrupt...")


if __name__ == "__main__":
    main()
