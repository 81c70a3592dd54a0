"""Twitch chat bot with chat-driven custom command management."""
