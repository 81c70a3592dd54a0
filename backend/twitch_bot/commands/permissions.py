"""Map chat permission phrases to role-id sets."""

from __future__ import annotations

from typing import TypeAlias

InvalidType: TypeAlias = object
INVALID: InvalidType = object()

VALID_PHRASES_HINT = "All, Sub, Mod, Streamer, or a custom group's name"

# Phrase -> role ids. An empty set means anyone may use the command.
PERMISSION_PHRASES: dict[str, frozenset[str]] = {
    "all": frozenset(),
    "everyone": frozenset(),
    "sub": frozenset({"sub"}),
    "vip": frozenset({"vip"}),
    "mod": frozenset({"mod"}),
    "streamer": frozenset({"broadcaster"}),
}


def normalize_permission(phrase: str | None) -> frozenset[str] | InvalidType:
    """Return the role ids for *phrase*, or ``INVALID`` if it is not recognised."""
    if not phrase:
        return frozenset()
    return PERMISSION_PHRASES.get(phrase.strip().lower(), INVALID)
