"""Tests for role and cooldown guards."""

from __future__ import annotations

from types import SimpleNamespace

from shared.models.custom_command import Cooldown
from twitch_bot.core.guards import (
    CooldownTracker,
    can_manage_commands,
    chatter_role_ids,
    has_any_role,
)


def _chatter(**roles) -> SimpleNamespace:
    flags = {"broadcaster": False, "moderator": False, "vip": False, "subscriber": False}
    flags.update(roles)
    return SimpleNamespace(**flags)


def test_chatter_role_ids() -> None:
    assert chatter_role_ids(_chatter(moderator=True, subscriber=True)) == {"mod", "sub"}
    assert chatter_role_ids(_chatter()) == frozenset()


def test_has_any_role() -> None:
    assert has_any_role(_chatter(), []) is True
    assert has_any_role(_chatter(vip=True), ["vip", "mod"]) is True
    assert has_any_role(_chatter(subscriber=True), ["vip"]) is False
    assert has_any_role(_chatter(broadcaster=True), ["sub"]) is True


def test_only_mods_and_broadcaster_manage_commands() -> None:
    assert can_manage_commands(_chatter(moderator=True)) is True
    assert can_manage_commands(_chatter(broadcaster=True)) is True
    assert can_manage_commands(_chatter(vip=True, subscriber=True)) is False


class _Clock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _tracker() -> tuple[CooldownTracker, _Clock]:
    clock = _Clock()
    return CooldownTracker(timer=clock), clock


def test_global_cooldown_applies_to_everyone() -> None:
    tracker, clock = _tracker()
    cd = Cooldown(user_seconds=0, global_seconds=10)
    tracker.record("c", "!greet", "u1", cd)

    clock.now = 105.0
    assert tracker.is_on_cooldown("c", "!greet", "u2", cd) is True
    clock.now = 110.0
    assert tracker.is_on_cooldown("c", "!greet", "u2", cd) is False


def test_user_cooldown_is_per_chatter() -> None:
    tracker, clock = _tracker()
    cd = Cooldown(user_seconds=10, global_seconds=0)
    tracker.record("c", "!greet", "u1", cd)

    clock.now = 105.0
    assert tracker.is_on_cooldown("c", "!greet", "u1", cd) is True
    assert tracker.is_on_cooldown("c", "!greet", "u2", cd) is False


def test_zero_cooldown_never_blocks_or_records() -> None:
    tracker, _ = _tracker()
    tracker.record("c", "!greet", "u1", Cooldown())

    assert tracker.is_on_cooldown("c", "!greet", "u1", Cooldown()) is False
    assert len(tracker) == 0


def test_entries_are_dropped_once_their_window_passes() -> None:
    tracker, clock = _tracker()
    cd = Cooldown(user_seconds=10, global_seconds=0)
    for user_id in ("u1", "u2", "u3"):
        tracker.record("c", "!greet", user_id, cd)
    assert len(tracker) == 3

    clock.now = 111.0
    tracker.record("c", "!greet", "u4", cd)

    assert len(tracker) == 1


def test_reset_cooldowns_for_one_channel() -> None:
    tracker, clock = _tracker()
    cd = Cooldown(user_seconds=10, global_seconds=10)
    tracker.record("a", "!greet", "u1", cd)
    tracker.record("b", "!greet", "u1", cd)

    tracker.reset("a")

    clock.now = 101.0
    assert tracker.is_on_cooldown("a", "!greet", "u1", cd) is False
    assert tracker.is_on_cooldown("b", "!greet", "u1", cd) is True
