"""Sub-command handlers for chat-based custom command management.

Each handler is a pure function of a ``HandlerContext``: it reads the
registry snapshot, validates its arguments and returns an ``Outcome``
describing the write to perform and the chat reply. Validation failures are
raised as ``CommandManagementError`` subclasses and never produce a write.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from shared.errors import ConflictError, NotFoundError, UsageError, ValidationError
from shared.models.custom_command import (
    CHAT_REPLY_EFFECT,
    Cooldown,
    CustomCommand,
    Effect,
    EffectList,
    Restriction,
    RestrictionData,
)
from twitch_bot.commands.permissions import INVALID, VALID_PHRASES_HINT, normalize_permission

_INTEGER = re.compile(r"[+-]?\d+")

# Counts and cooldowns live in INTEGER columns
MAX_STORED_INT = 2**31 - 1


class Operation(str, Enum):
    ADD = "add"
    RESPONSE = "response"
    SETCOUNT = "setcount"
    DESCRIPTION = "description"
    COOLDOWN = "cooldown"
    RESTRICT = "restrict"
    REMOVE = "remove"
    ENABLE = "enable"
    DISABLE = "disable"

    @classmethod
    def from_name(cls, name: str | None) -> Operation | None:
        if not name:
            return None
        try:
            return cls(name.lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class SubCommand:
    usage: str
    description: str


SUB_COMMANDS: dict[Operation, SubCommand] = {
    Operation.ADD: SubCommand(
        'add [!trigger or "phrase"] [message]',
        "Adds a new command with a given response message.",
    ),
    Operation.RESPONSE: SubCommand(
        'response [!trigger or "phrase"] [message]',
        "Updates the response message for a command with at most one chat reply.",
    ),
    Operation.SETCOUNT: SubCommand(
        'setcount [!trigger or "phrase"] count#',
        "Updates the command's usage count.",
    ),
    Operation.DESCRIPTION: SubCommand(
        'description [!trigger or "phrase"] [text]',
        "Updates the description for a command.",
    ),
    Operation.COOLDOWN: SubCommand(
        'cooldown [!trigger or "phrase"] [globalCooldownSecs] [userCooldownSecs]',
        "Changes the cooldown for a command.",
    ),
    Operation.RESTRICT: SubCommand(
        'restrict [!trigger or "phrase"] [All/Sub/Mod/Streamer/Custom Group]',
        "Updates permissions for a command.",
    ),
    Operation.REMOVE: SubCommand(
        'remove [!trigger or "phrase"]',
        "Removes the given command.",
    ),
    Operation.ENABLE: SubCommand(
        'enable [!trigger or "phrase"]',
        "Enables the given custom command.",
    ),
    Operation.DISABLE: SubCommand(
        'disable [!trigger or "phrase"]',
        "Disables the given custom command.",
    ),
}

GENERAL_USAGE = "[" + "|".join(op.value for op in Operation) + '] [!trigger or "phrase"] ...'


@dataclass(frozen=True)
class RegistrySnapshot:
    """Read-only view of the registry taken at the start of a dispatch."""

    active: tuple[CustomCommand, ...]
    all_commands: tuple[CustomCommand, ...]
    trigger_taken: bool = False

    def find_active(self, trigger: str) -> CustomCommand | None:
        return next((c for c in self.active if c.trigger == trigger), None)

    def find_any(self, trigger: str) -> CustomCommand | None:
        return next((c for c in self.all_commands if c.trigger == trigger), None)


@dataclass(frozen=True)
class HandlerContext:
    operation: Operation
    snapshot: RegistrySnapshot
    trigger: str
    remainder: str
    actor: str
    usage: str
    prefix: str
    new_id: Callable[[], str]

    def usage_error(self) -> UsageError:
        return UsageError(f"Invalid command. Usage: {self.usage}")

    def not_found(self) -> NotFoundError:
        return NotFoundError(
            f"Could not find a command with the trigger '{self.trigger}', please try again."
        )

    def require_active(self) -> CustomCommand:
        command = self.snapshot.find_active(self.trigger)
        if command is None:
            raise self.not_found()
        return command

    def require_any(self) -> CustomCommand:
        command = self.snapshot.find_any(self.trigger)
        if command is None:
            raise self.not_found()
        return command


@dataclass(frozen=True)
class Outcome:
    """What a handler wants done: at most one write plus the chat reply."""

    reply: str
    save: CustomCommand | None = None
    delete: str | None = None
    refresh: bool = False


def _parse_int(token: str) -> int | None:
    token = token.strip()
    if not _INTEGER.fullmatch(token):
        return None
    value = int(token)
    return value if value <= MAX_STORED_INT else None


def handle_add(ctx: HandlerContext) -> Outcome:
    if not ctx.remainder:
        raise ctx.usage_error()
    if ctx.snapshot.trigger_taken:
        raise ConflictError(f"The trigger '{ctx.trigger}' is already in use, please try again.")

    command = CustomCommand(
        trigger=ctx.trigger,
        active=True,
        scan_whole_message=not ctx.trigger.startswith(ctx.prefix),
        cooldown=Cooldown(user_seconds=0, global_seconds=0),
        effects=EffectList(
            id=ctx.new_id(),
            items=(Effect(id=ctx.new_id(), type=CHAT_REPLY_EFFECT, message=ctx.remainder),),
        ),
        created_by=ctx.actor,
    )
    return Outcome(reply=f"Added command '{ctx.trigger}'!", save=command)


def handle_response(ctx: HandlerContext) -> Outcome:
    if not ctx.remainder:
        raise ctx.usage_error()
    command = ctx.require_active()

    chat_replies = command.effects.chat_replies
    if len(chat_replies) > 1:
        raise ConflictError(
            f"The command '{ctx.trigger}' has more than one Chat Effect, "
            "preventing the response from being editable via chat."
        )

    if chat_replies:
        target = chat_replies[0]
        items = tuple(
            replace(e, message=ctx.remainder) if e is target else e for e in command.effects.items
        )
    else:
        new_effect = Effect(id=ctx.new_id(), type=CHAT_REPLY_EFFECT, message=ctx.remainder)
        items = command.effects.items + (new_effect,)

    updated = replace(command, effects=replace(command.effects, items=items))
    return Outcome(reply=f"Updated '{ctx.trigger}' with response: {ctx.remainder}", save=updated)


def handle_setcount(ctx: HandlerContext) -> Outcome:
    count = _parse_int(ctx.remainder)
    if count is None:
        raise ValidationError(f"Invalid command. Usage: {ctx.usage}")
    command = ctx.require_active()

    count = max(count, 0)
    return Outcome(
        reply=f"Updated usage count for '{ctx.trigger}' to: {count}",
        save=replace(command, count=count),
    )


def handle_description(ctx: HandlerContext) -> Outcome:
    command = ctx.require_active()
    if not ctx.remainder:
        raise UsageError(f"Please provide a description for '{ctx.trigger}'!")

    return Outcome(
        reply=f"Updated description for '{ctx.trigger}' to: {ctx.remainder}",
        save=replace(command, description=ctx.remainder),
    )


def handle_cooldown(ctx: HandlerContext) -> Outcome:
    parts = ctx.remainder.split()
    if len(parts) != 2:
        raise ctx.usage_error()
    global_cd, user_cd = _parse_int(parts[0]), _parse_int(parts[1])
    if global_cd is None or user_cd is None:
        raise ValidationError(f"Invalid command. Usage: {ctx.usage}")
    command = ctx.require_active()

    cooldown = Cooldown(user_seconds=max(user_cd, 0), global_seconds=max(global_cd, 0))
    return Outcome(
        reply=(
            f"Updated '{ctx.trigger}' with cooldowns: "
            f"{cooldown.user_seconds}s (user), {cooldown.global_seconds}s (global)"
        ),
        save=replace(command, cooldown=cooldown),
    )


def handle_restrict(ctx: HandlerContext) -> Outcome:
    if not ctx.remainder:
        raise ctx.usage_error()
    command = ctx.require_active()

    role_ids = normalize_permission(ctx.remainder)
    if role_ids is INVALID:
        raise ValidationError(f"Please provide a valid group name: {VALID_PHRASES_HINT}")

    restrictions: tuple[Restriction, ...] = ()
    if role_ids:
        restrictions = (Restriction(id=ctx.new_id(), role_ids=tuple(sorted(role_ids))),)

    return Outcome(
        reply=f"Updated '{ctx.trigger}' restrictions to: {ctx.remainder}",
        save=replace(command, restriction_data=RestrictionData(restrictions=restrictions)),
    )


def handle_remove(ctx: HandlerContext) -> Outcome:
    command = ctx.require_any()
    return Outcome(
        reply=f"Successfully removed command '{command.trigger}'.",
        delete=command.trigger,
    )


def handle_toggle(ctx: HandlerContext) -> Outcome:
    command = ctx.require_any()
    verb = ctx.operation.value
    enable = ctx.operation is Operation.ENABLE

    if command.active == enable:
        return Outcome(reply=f"{ctx.trigger} is already {verb}d.")

    return Outcome(
        reply=f'{verb.capitalize()}d "{ctx.trigger}"',
        save=replace(command, active=enable),
        refresh=True,
    )


HANDLERS: dict[Operation, Callable[[HandlerContext], Outcome]] = {
    Operation.ADD: handle_add,
    Operation.RESPONSE: handle_response,
    Operation.SETCOUNT: handle_setcount,
    Operation.DESCRIPTION: handle_description,
    Operation.COOLDOWN: handle_cooldown,
    Operation.RESTRICT: handle_restrict,
    Operation.REMOVE: handle_remove,
    Operation.ENABLE: handle_toggle,
    Operation.DISABLE: handle_toggle,
}
