"""Fire custom commands from chat messages."""

from __future__ import annotations

import logging
import random
import re
from collections.abc import Sequence

from shared.errors import StorageError
from shared.models.custom_command import CustomCommand
from shared.repositories.custom_command import CustomCommandRepository
from twitch_bot.core.guards import has_any_role, is_on_cooldown, record_cooldown

LOGGER = logging.getLogger("CustomCommandRuntime")

_RANDOM_PATTERN = re.compile(r"\$\(random\s+(-?\d+)\s*,\s*(-?\d+)\)")
_PICK_PATTERN = re.compile(r"\$\(pick\s+(.+?)\)")


def substitute_variables(text: str, *, user: str, query: str, channel: str, count: int) -> str:
    """Replace response variables in a chat reply.

    Supported variables:
        $(user)             Chatter display name
        $(query)            User input after the trigger
        $(channel)          Channel name
        $(count)            Command usage count, including this use
        $(random min,max)   Random integer in range [min, max]
        $(pick a,b,c)       Random pick from comma-separated items
    """
    text = text.replace("$(user)", user)
    text = text.replace("$(query)", query)
    text = text.replace("$(channel)", channel)
    text = text.replace("$(count)", str(count))

    def _random_replace(m: re.Match) -> str:
        lo, hi = int(m.group(1)), int(m.group(2))
        if lo > hi:
            lo, hi = hi, lo
        return str(random.randint(lo, hi))

    text = _RANDOM_PATTERN.sub(_random_replace, text)

    def _pick_replace(m: re.Match) -> str:
        items = [i.strip() for i in m.group(1).split(",") if i.strip()]
        return random.choice(items) if items else ""

    return _PICK_PATTERN.sub(_pick_replace, text)


def _phrase_pattern(trigger: str) -> re.Pattern:
    return re.compile(r"(?<!\S)" + re.escape(trigger) + r"(?!\S)", re.IGNORECASE)


def matches(command: CustomCommand, text: str) -> bool:
    """Prefix commands match the first word; scan commands match anywhere."""
    if command.scan_whole_message:
        return _phrase_pattern(command.trigger).search(text) is not None
    first, _, _ = text.strip().partition(" ")
    return first.lower() == command.trigger.lower()


def find_matching_command(text: str, commands: Sequence[CustomCommand]) -> CustomCommand | None:
    """Pick the command a message fires; prefix commands win over scan commands."""
    if not text or not text.strip():
        return None
    scan_match = None
    for command in commands:
        if not matches(command, text):
            continue
        if not command.scan_whole_message:
            return command
        if scan_match is None:
            scan_match = command
    return scan_match


def extract_query(command: CustomCommand, text: str) -> str:
    if command.scan_whole_message:
        return text.strip()
    _, _, rest = text.strip().partition(" ")
    return rest.strip()


def render_chat_replies(
    command: CustomCommand, *, user: str, query: str, channel: str, count: int
) -> list[str]:
    replies = []
    for effect in command.effects.chat_replies:
        if not effect.message:
            continue
        replies.append(
            substitute_variables(
                effect.message, user=user, query=query, channel=channel, count=count
            )
        )
    return replies


class CustomCommandRuntime:
    """Matches chat against a channel's active commands and renders replies."""

    def __init__(self, repo: CustomCommandRepository) -> None:
        self.repo = repo

    async def handle(
        self,
        channel_id: str,
        channel_name: str,
        chatter,
        text: str,
    ) -> list[str]:
        """Return the replies to send for *text*, or an empty list if nothing fires."""
        commands = await self.repo.list_active(channel_id)
        command = find_matching_command(text, commands)
        if command is None:
            return []

        if not has_any_role(chatter, command.restriction_data.role_ids):
            LOGGER.debug(f"{chatter.name} lacks roles for {command.trigger}")
            return []

        if is_on_cooldown(channel_id, command.trigger, chatter.id, command.cooldown):
            LOGGER.debug(f"{command.trigger} on cooldown for {chatter.name}")
            return []
        record_cooldown(channel_id, command.trigger, chatter.id, command.cooldown)

        try:
            count = await self.repo.increment_count(channel_id, command.trigger)
        except StorageError as e:
            LOGGER.warning(f"Failed to bump usage count for {command.trigger}: {e}")
            count = command.count + 1

        LOGGER.info(f"Custom command: {command.trigger} by {chatter.name}")
        return render_chat_replies(
            command,
            user=chatter.display_name or chatter.name or "",
            query=extract_query(command, text),
            channel=channel_name or "",
            count=count,
        )
