"""Shared command guards: role membership and cooldown tracking."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable

from cachetools import TLRUCache  # type: ignore[import-untyped]

from shared.models.custom_command import Cooldown

LOGGER = logging.getLogger("CommandGuard")

# Roles allowed to manage custom commands from chat
MANAGER_ROLES = frozenset({"broadcaster", "mod"})


def chatter_role_ids(chatter) -> frozenset[str]:
    """Role ids held by a twitchio chatter."""
    roles = set()
    if getattr(chatter, "broadcaster", False):
        roles.add("broadcaster")
    if getattr(chatter, "moderator", False):
        roles.add("mod")
    if getattr(chatter, "vip", False):
        roles.add("vip")
    if getattr(chatter, "subscriber", False):
        roles.add("sub")
    return frozenset(roles)


def has_any_role(chatter, role_ids: Iterable[str]) -> bool:
    """True if *role_ids* is empty, the chatter is the broadcaster, or they share a role."""
    required = frozenset(role_ids)
    if not required:
        return True
    held = chatter_role_ids(chatter)
    return "broadcaster" in held or bool(held & required)


def can_manage_commands(chatter) -> bool:
    return bool(chatter_role_ids(chatter) & MANAGER_ROLES)


def _windows(
    channel_id: str, trigger: str, user_id: str, cooldown: Cooldown
) -> tuple[tuple[str, int], tuple[str, int]]:
    base = f"{channel_id}:{trigger}"
    return (base, cooldown.global_seconds), (f"{base}:{user_id}", cooldown.user_seconds)


def _expires_at(key: str, entry: tuple[float, int], now: float) -> float:
    _, window = entry
    return now + window


class CooldownTracker:
    """In-memory last-use times, reset on bot restart.

    Keys are ``"{channel_id}:{trigger}"`` for the channel-wide window and
    ``"{channel_id}:{trigger}:{user_id}"`` per chatter. Each entry is dropped
    once its window has passed, so idle chatters cost nothing.
    """

    def __init__(self, maxsize: int = 10_000, timer: Callable[[], float] = time.monotonic):
        self.timer = timer
        self._last_used: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)

    def __len__(self) -> int:
        self._last_used.expire()
        return len(self._last_used)

    def is_on_cooldown(
        self, channel_id: str, trigger: str, user_id: str, cooldown: Cooldown
    ) -> bool:
        """Check both the channel-wide and the per-user windows."""
        now = self.timer()
        for key, window in _windows(channel_id, trigger, user_id, cooldown):
            if window <= 0:
                continue
            entry = self._last_used.get(key)
            if entry is not None and now - entry[0] < window:
                return True
        return False

    def record(self, channel_id: str, trigger: str, user_id: str, cooldown: Cooldown) -> None:
        """Start the command's windows after it fires."""
        now = self.timer()
        for key, window in _windows(channel_id, trigger, user_id, cooldown):
            if window > 0:
                self._last_used[key] = (now, window)

    def reset(self, channel_id: str | None = None) -> None:
        """Forget cooldowns for one channel, or for every channel."""
        if channel_id is None:
            self._last_used.clear()
            return
        stale = [k for k in list(self._last_used) if k.startswith(f"{channel_id}:")]
        for key in stale:
            self._last_used.pop(key, None)
        LOGGER.debug(f"Cleared {len(stale)} cooldown entries for {channel_id}")


_cooldowns = CooldownTracker()


def is_on_cooldown(channel_id: str, trigger: str, user_id: str, cooldown: Cooldown) -> bool:
    return _cooldowns.is_on_cooldown(channel_id, trigger, user_id, cooldown)


def record_cooldown(channel_id: str, trigger: str, user_id: str, cooldown: Cooldown) -> None:
    _cooldowns.record(channel_id, trigger, user_id, cooldown)


def reset_cooldowns(channel_id: str | None = None) -> None:
    _cooldowns.reset(channel_id)
