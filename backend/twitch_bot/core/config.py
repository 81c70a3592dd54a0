"""Twitch bot configuration"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# === Path Configuration ===
TWITCH_DIR = Path(__file__).parent.parent
BACKEND_DIR = TWITCH_DIR.parent

BOT_SCOPES = [
    "user:bot",  # Bot identifier
    "user:read:chat",  # Read chat messages
    "user:write:chat",  # Send chat messages
]

BROADCASTER_SCOPES = [
    "channel:bot",  # Allow bot to join channel
]


class TwitchBotSettings(BaseSettings):
    """Twitch bot settings"""

    model_config = SettingsConfigDict(
        env_file=BACKEND_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Twitch OAuth
    client_id: str = Field(..., description="Twitch OAuth Client ID")
    client_secret: str = Field(..., description="Twitch OAuth Client Secret")

    # Bot Configuration
    bot_id: str = Field(..., description="Bot User ID")
    owner_id: str = Field(..., description="Owner User ID")
    channel_ids: str = Field(default="", description="Comma-separated broadcaster IDs to join")

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")

    # EventSub
    conduit_id: str = Field(default="", description="Twitch EventSub Conduit ID")

    # Commands
    command_prefix: str = Field(default="!", description="Reserved prefix for bare triggers")

    # Environment
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL starts with postgresql://"""
        if not v.startswith("postgresql://"):
            raise ValueError("DATABASE_URL must start with 'postgresql://'")
        return v

    @field_validator("command_prefix")
    @classmethod
    def validate_command_prefix(cls, v: str) -> str:
        """Prefix must be a single non-space character"""
        if len(v) != 1 or v.isspace():
            raise ValueError("COMMAND_PREFIX must be a single non-space character")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @property
    def channel_id_list(self) -> list[str]:
        return [c.strip() for c in self.channel_ids.split(",") if c.strip()]


@lru_cache
def get_settings() -> TwitchBotSettings:
    """Get cached settings instance"""
    return TwitchBotSettings()  # type: ignore[call-arg]
