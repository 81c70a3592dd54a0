"""Shared data models."""

from .custom_command import (
    CHAT_REPLY_EFFECT,
    ROLE_RESTRICTION,
    Cooldown,
    CustomCommand,
    Effect,
    EffectList,
    Restriction,
    RestrictionData,
)

__all__ = [
    "CHAT_REPLY_EFFECT",
    "ROLE_RESTRICTION",
    "Cooldown",
    "CustomCommand",
    "Effect",
    "EffectList",
    "Restriction",
    "RestrictionData",
]
