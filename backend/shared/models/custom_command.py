"""Data models for the custom_commands table."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

CHAT_REPLY_EFFECT = "chat-reply"
ROLE_RESTRICTION = "role-membership"
ROLES_MODE = "roles"


@dataclass(frozen=True)
class Cooldown:
    """Cooldown in seconds, tracked per user and across the channel."""

    user_seconds: int = 0
    global_seconds: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"user": self.user_seconds, "global": self.global_seconds}


@dataclass(frozen=True)
class Effect:
    """One action in a command's effect chain.

    Only chat-reply effects carry a ``message``; any other effect type keeps
    its payload untouched in ``data``.
    """

    id: str
    type: str
    message: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_chat_reply(self) -> bool:
        return self.type == CHAT_REPLY_EFFECT

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.data)
        payload.update(id=self.id, type=self.type)
        if self.message is not None:
            payload["message"] = self.message
        return payload

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Effect:
        data = {k: v for k, v in raw.items() if k not in ("id", "type", "message")}
        return cls(id=raw["id"], type=raw["type"], message=raw.get("message"), data=data)


@dataclass(frozen=True)
class EffectList:
    id: str
    items: tuple[Effect, ...] = ()

    @property
    def chat_replies(self) -> tuple[Effect, ...]:
        return tuple(e for e in self.items if e.is_chat_reply)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "list": [e.to_dict() for e in self.items]}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> EffectList:
        return cls(
            id=raw["id"],
            items=tuple(Effect.from_dict(e) for e in raw.get("list") or ()),
        )


@dataclass(frozen=True)
class Restriction:
    """Role-membership access rule. Empty ``role_ids`` means unrestricted."""

    id: str
    type: str = ROLE_RESTRICTION
    mode: str = ROLES_MODE
    role_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "mode": self.mode,
            "roleIds": list(self.role_ids),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Restriction:
        return cls(
            id=raw["id"],
            type=raw.get("type", ROLE_RESTRICTION),
            mode=raw.get("mode", ROLES_MODE),
            role_ids=tuple(raw.get("roleIds") or ()),
        )


@dataclass(frozen=True)
class RestrictionData:
    restrictions: tuple[Restriction, ...] = ()

    @property
    def role_ids(self) -> frozenset[str]:
        """Union of roles across role-membership restrictions."""
        return frozenset(
            role
            for r in self.restrictions
            if r.type == ROLE_RESTRICTION and r.mode == ROLES_MODE
            for role in r.role_ids
        )

    def to_dict(self) -> dict[str, Any]:
        return {"restrictions": [r.to_dict() for r in self.restrictions]}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> RestrictionData:
        if not raw:
            return cls()
        return cls(
            restrictions=tuple(Restriction.from_dict(r) for r in raw.get("restrictions") or ())
        )


@dataclass(frozen=True)
class CustomCommand:
    """Custom command record, one per (channel, trigger)."""

    trigger: str
    effects: EffectList
    active: bool = True
    scan_whole_message: bool = False
    cooldown: Cooldown = Cooldown()
    restriction_data: RestrictionData = RestrictionData()
    count: int = 0
    description: str | None = None
    created_by: str | None = None
    last_edited_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> CustomCommand:
        """Build a record from an asyncpg row (JSONB columns arrive as text)."""
        effects = _load_json(row["effects"])
        restriction_data = _load_json(row["restriction_data"])
        return cls(
            trigger=row["trigger"],
            active=row["active"],
            scan_whole_message=row["scan_whole_message"],
            cooldown=Cooldown(
                user_seconds=row["cooldown_user"],
                global_seconds=row["cooldown_global"],
            ),
            effects=EffectList.from_dict(effects),
            restriction_data=RestrictionData.from_dict(restriction_data),
            count=row["count"],
            description=row["description"],
            created_by=row["created_by"],
            last_edited_by=row["last_edited_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "trigger": self.trigger,
            "active": self.active,
            "scanWholeMessage": self.scan_whole_message,
            "cooldown": self.cooldown.to_dict(),
            "effects": self.effects.to_dict(),
            "restrictionData": self.restriction_data.to_dict(),
            "count": self.count,
            "description": self.description,
        }


def _load_json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value
