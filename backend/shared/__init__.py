"""Shared models, repositories and infrastructure for the bot."""
