"""In-memory collaborators for engine and runtime tests."""

from __future__ import annotations

import itertools

from shared.errors import StorageError
from shared.models.custom_command import (
    CHAT_REPLY_EFFECT,
    Cooldown,
    CustomCommand,
    Effect,
    EffectList,
    RestrictionData,
)


def make_command(
    trigger: str = "!greet",
    *messages: str,
    active: bool = True,
    count: int = 0,
    cooldown: Cooldown = Cooldown(),
    restriction_data: RestrictionData = RestrictionData(),
) -> CustomCommand:
    if not messages:
        messages = ("Hello!",)
    items = tuple(
        Effect(id=f"{trigger}-fx-{i}", type=CHAT_REPLY_EFFECT, message=m)
        for i, m in enumerate(messages)
    )
    return CustomCommand(
        trigger=trigger,
        effects=EffectList(id=f"{trigger}-list", items=items),
        active=active,
        scan_whole_message=not trigger.startswith("!"),
        count=count,
        cooldown=cooldown,
        restriction_data=restriction_data,
    )


def sequential_ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


class FakeRegistry:
    def __init__(self, *commands: CustomCommand, reserved: tuple[str, ...] = ()) -> None:
        self.commands: dict[str, CustomCommand] = {c.trigger: c for c in commands}
        self.reserved = reserved
        self.saves: list[tuple[CustomCommand, str]] = []
        self.deletes: list[str] = []
        self.notifications = 0
        self.fail_writes = False
        self.fail_notify = False

    @property
    def writes(self) -> int:
        return len(self.saves) + len(self.deletes)

    async def is_trigger_taken(self, trigger: str) -> bool:
        taken = {t.lower() for t in (*self.commands, *self.reserved)}
        return trigger.lower() in taken

    async def list_active(self) -> list[CustomCommand]:
        return [c for c in self.commands.values() if c.active]

    async def list_all(self) -> list[CustomCommand]:
        return list(self.commands.values())

    async def save(self, command: CustomCommand, actor: str) -> None:
        if self.fail_writes:
            raise StorageError("connection reset")
        self.saves.append((command, actor))
        self.commands[command.trigger] = command

    async def delete_by_trigger(self, trigger: str) -> None:
        if self.fail_writes:
            raise StorageError("connection reset")
        self.deletes.append(trigger)
        self.commands.pop(trigger, None)

    async def notify_configuration_changed(self) -> None:
        if self.fail_notify:
            raise StorageError("notify failed")
        self.notifications += 1


class FakeSink:
    def __init__(self) -> None:
        self.replies: list[str] = []

    async def reply(self, text: str) -> None:
        self.replies.append(text)

    @property
    def last(self) -> str:
        return self.replies[-1]
