"""Shared repository layer."""

from .custom_command import ChannelCommandRegistry, CustomCommandRepository

__all__ = [
    "ChannelCommandRegistry",
    "CustomCommandRepository",
]
