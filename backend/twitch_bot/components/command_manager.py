"""Chat-based custom command management: !command <operation>.

Syntax:
    !command add !trigger message          Add a prefix command
    !command add "some phrase" message     Add a command matched anywhere in chat
    !command response !trigger message     Replace the chat reply
    !command setcount !trigger N           Set the usage count
    !command description !trigger text     Set the description
    !command cooldown !trigger G U         Global / per-user cooldown in seconds
    !command restrict !trigger all|sub|vip|mod|streamer
    !command remove !trigger
    !command enable !trigger
    !command disable !trigger

Only moderators and the broadcaster may use it.
"""

import logging
from typing import TYPE_CHECKING

from twitchio.ext import commands

from shared.repositories.custom_command import ChannelCommandRegistry
from twitch_bot.commands.engine import CommandManagementEngine
from twitch_bot.core.guards import can_manage_commands

if TYPE_CHECKING:
    from twitch_bot.core.bot import Bot
else:
    from twitchio.ext.commands import Bot

LOGGER = logging.getLogger("CommandManagerComponent")

MANAGEMENT_COMMAND = "command"


class NotCommandManagerError(commands.GuardFailure):
    """Raised when a chatter without mod rights uses the management command."""

    ...


class ChatReplySink:
    """Sends engine feedback back into the invoking chat."""

    def __init__(self, ctx: commands.Context) -> None:
        self.ctx = ctx

    async def reply(self, text: str) -> None:
        await self.ctx.reply(text)


class CommandManagerComponent(commands.Component):
    def __init__(self, bot: commands.Bot) -> None:
        self.bot: Bot = bot  # type: ignore[assignment]
        LOGGER.info("CommandManager component initialized")

    async def component_command_error(self, payload: commands.CommandErrorPayload) -> bool | None:
        """Ignore management attempts from regular chatters."""
        if isinstance(payload.exception, NotCommandManagerError):
            LOGGER.debug(f"Ignored !{MANAGEMENT_COMMAND} from {payload.context.chatter.name}")
            return False
        return None

    @commands.Component.guard()
    def is_manager(self, ctx: commands.Context[Bot]) -> bool:
        if not can_manage_commands(ctx.chatter):
            raise NotCommandManagerError
        return True

    def _reserved_triggers(self) -> list[str]:
        prefix = self.bot.command_prefix
        return [f"{prefix}{name}" for name in self.bot.commands]

    @commands.command(name=MANAGEMENT_COMMAND)
    async def manage(self, ctx: commands.Context[Bot], *, args: str | None = None) -> None:
        """Create, edit or remove custom commands from chat."""
        registry = ChannelCommandRegistry(
            self.bot.custom_commands,
            str(ctx.channel.id),
            reserved_triggers=self._reserved_triggers(),
        )
        engine = CommandManagementEngine(
            registry,
            ChatReplySink(ctx),
            management_trigger=f"{self.bot.command_prefix}{MANAGEMENT_COMMAND}",
            prefix=self.bot.command_prefix,
        )
        await engine.dispatch((args or "").split(), actor=ctx.chatter.name)


async def setup(bot: commands.Bot) -> None:
    await bot.add_component(CommandManagerComponent(bot))
    LOGGER.info("CommandManager component loaded")


async def teardown(bot: commands.Bot) -> None:
    LOGGER.info("CommandManager component unloaded")
