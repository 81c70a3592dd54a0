"""Dispatch chat management operations against a command registry."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from typing import Protocol

from shared.errors import CommandManagementError, StorageError, UsageError
from shared.models.custom_command import CustomCommand
from twitch_bot.commands.handlers import (
    GENERAL_USAGE,
    HANDLERS,
    SUB_COMMANDS,
    HandlerContext,
    Operation,
    Outcome,
    RegistrySnapshot,
)
from twitch_bot.commands.parsing import parse_trigger

LOGGER = logging.getLogger("CommandManagement")


class CommandRegistry(Protocol):
    async def is_trigger_taken(self, trigger: str) -> bool: ...

    async def list_active(self) -> Sequence[CustomCommand]: ...

    async def list_all(self) -> Sequence[CustomCommand]: ...

    async def save(self, command: CustomCommand, actor: str) -> None: ...

    async def delete_by_trigger(self, trigger: str) -> None: ...

    async def notify_configuration_changed(self) -> None: ...


class FeedbackSink(Protocol):
    async def reply(self, text: str) -> None: ...


def _new_id() -> str:
    return str(uuid.uuid4())


class CommandManagementEngine:
    """Runs one management operation per call and replies exactly once.

    Usage (args exclude the management command itself):
        ["add", "!greet", "Hello!"]
        ["add", '"hello', 'there"', "Hi!"]
        ["cooldown", "!greet", "10", "5"]
    """

    def __init__(
        self,
        registry: CommandRegistry,
        sink: FeedbackSink,
        *,
        management_trigger: str = "!command",
        prefix: str = "!",
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.registry = registry
        self.sink = sink
        self.management_trigger = management_trigger
        self.prefix = prefix
        self.id_factory = id_factory

    def usage_for(self, operation: Operation | None) -> str:
        if operation is None:
            return f"{self.management_trigger} {GENERAL_USAGE}"
        return f"{self.management_trigger} {SUB_COMMANDS[operation].usage}"

    async def dispatch(self, args: Sequence[str], actor: str) -> Outcome | None:
        """Run the operation named by ``args[0]``.

        Returns the handler outcome, or None when the operation was rejected.
        """
        operation = Operation.from_name(args[0] if args else None)
        if operation is None:
            await self.sink.reply(f"Invalid command. Usage: {self.usage_for(None)}")
            return None

        try:
            outcome = await self._run(operation, args, actor)
        except CommandManagementError as e:
            LOGGER.debug(f"{operation.value} rejected for {actor}: {type(e).__name__}")
            await self.sink.reply(e.reply)
            return None
        except StorageError as e:
            LOGGER.error(f"Failed to persist {operation.value} by {actor}: {e}")
            trigger = parse_trigger(args).trigger
            await self.sink.reply(
                f"Unable to save changes for '{trigger}', please try again later."
            )
            return None

        await self.sink.reply(outcome.reply)
        return outcome

    async def _run(self, operation: Operation, args: Sequence[str], actor: str) -> Outcome:
        usage = self.usage_for(operation)
        parsed = parse_trigger(args)
        if len(args) < 2 or not parsed.trigger:
            raise UsageError(f"Invalid command. Usage: {usage}")

        snapshot = RegistrySnapshot(
            active=tuple(await self.registry.list_active()),
            all_commands=tuple(await self.registry.list_all()),
            trigger_taken=(
                await self.registry.is_trigger_taken(parsed.trigger)
                if operation is Operation.ADD
                else False
            ),
        )
        ctx = HandlerContext(
            operation=operation,
            snapshot=snapshot,
            trigger=parsed.trigger,
            remainder=parsed.remainder,
            actor=actor,
            usage=usage,
            prefix=self.prefix,
            new_id=self.id_factory,
        )
        outcome = HANDLERS[operation](ctx)
        await self._apply(outcome, actor)
        return outcome

    async def _apply(self, outcome: Outcome, actor: str) -> None:
        if outcome.save is not None:
            await self.registry.save(outcome.save, actor)
            LOGGER.info(f"Custom command saved: {outcome.save.trigger} by {actor}")
        if outcome.delete is not None:
            await self.registry.delete_by_trigger(outcome.delete)
            LOGGER.info(f"Custom command removed: {outcome.delete} by {actor}")
        if not outcome.refresh:
            return
        # The write already landed; a lost notification only delays other listeners
        try:
            await self.registry.notify_configuration_changed()
        except StorageError as e:
            LOGGER.warning(f"Config change notification failed after {actor}'s edit: {e}")
