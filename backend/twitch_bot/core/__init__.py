"""Core modules for Twitch bot."""

from .config import BOT_SCOPES, BROADCASTER_SCOPES, TWITCH_DIR, get_settings
from .guards import (
    CooldownTracker,
    can_manage_commands,
    chatter_role_ids,
    has_any_role,
    is_on_cooldown,
    record_cooldown,
    reset_cooldowns,
)
from .logging import setup_logging
from .pg_listener import NotifyListener

__all__ = [
    # Settings
    "get_settings",
    "TWITCH_DIR",
    "BOT_SCOPES",
    "BROADCASTER_SCOPES",
    # Setup functions
    "setup_logging",
    # Guards
    "CooldownTracker",
    "can_manage_commands",
    "chatter_role_ids",
    "has_any_role",
    "is_on_cooldown",
    "record_cooldown",
    "reset_cooldowns",
    # PG Listener
    "NotifyListener",
]
