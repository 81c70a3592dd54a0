import asyncpg


async def setup_database_schema(connection: asyncpg.Connection) -> None:
    """Initialize the custom_commands table."""
    await connection.execute(
        """CREATE TABLE IF NOT EXISTS custom_commands(
            channel_id TEXT NOT NULL,
            trigger TEXT NOT NULL,
            active BOOLEAN NOT NULL DEFAULT true,
            scan_whole_message BOOLEAN NOT NULL DEFAULT false,
            cooldown_user INTEGER NOT NULL DEFAULT 0 CHECK (cooldown_user >= 0),
            cooldown_global INTEGER NOT NULL DEFAULT 0 CHECK (cooldown_global >= 0),
            effects JSONB NOT NULL,
            restriction_data JSONB NOT NULL DEFAULT '{"restrictions": []}'::jsonb,
            count INTEGER NOT NULL DEFAULT 0 CHECK (count >= 0),
            description TEXT,
            created_by TEXT,
            last_edited_by TEXT,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (channel_id, trigger)
        )"""
    )

    await connection.execute(
        """CREATE UNIQUE INDEX IF NOT EXISTS custom_commands_trigger_ci
            ON custom_commands (channel_id, lower(trigger))"""
    )
