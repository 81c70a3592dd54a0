"""Database connection management for the bot.

Supabase connection modes:
  - Session Pooler  (port 5432) : persistent servers, supports prepared statements
  - Transaction Pooler (port 6543) : serverless/edge, no prepared statement support
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)


@dataclass
class PoolConfig:
    """Database pool configuration."""

    min_size: int = 1
    max_size: int = 5
    timeout: float = 5.0
    command_timeout: float = 15.0
    max_inactive_connection_lifetime: float = 30.0
    max_retries: int = 3
    retry_delay: float = 3.0
    ssl: str | None = "require"


class DatabaseManager:
    """Owns the asyncpg pool: creation with retry, and shutdown."""

    def __init__(self, database_url: str, config: PoolConfig | None = None):
        self.database_url = database_url
        self.config = config or PoolConfig()
        self._pool: asyncpg.Pool | None = None
        self.pooler_mode: str = "transaction" if ":6543" in database_url else "session"

    def pool_kwargs(self) -> dict[str, Any]:
        """Build asyncpg.create_pool kwargs for the detected pooler mode.

        PgBouncer in transaction mode cannot keep prepared statements or idle
        connections, so the cache and min_size are zeroed there.
        """
        cfg = self.config
        kwargs: dict[str, Any] = {
            "dsn": self.database_url,
            "min_size": cfg.min_size,
            "max_size": cfg.max_size,
            "timeout": cfg.timeout,
            "command_timeout": cfg.command_timeout,
            "statement_cache_size": 100,
            "max_inactive_connection_lifetime": cfg.max_inactive_connection_lifetime,
        }
        if cfg.ssl:
            kwargs["ssl"] = cfg.ssl
        if self.pooler_mode == "transaction":
            kwargs.update(min_size=0, statement_cache_size=0, max_inactive_connection_lifetime=0)
        return kwargs

    async def connect(self) -> asyncpg.Pool:
        """Create the pool, retrying with exponential backoff."""
        if self._pool is not None:
            logger.warning("Database pool already initialized")
            return self._pool

        cfg = self.config
        kwargs = self.pool_kwargs()
        logger.info(f"Connecting with {self.pooler_mode} pooler mode")

        for attempt in range(1, cfg.max_retries + 1):
            try:
                pool = await asyncpg.create_pool(**kwargs)
                async with pool.acquire() as conn:
                    await conn.fetchval("SELECT 1")
                self._pool = pool
                logger.info(
                    f"Database pool created (mode={self.pooler_mode}, "
                    f"size={kwargs['min_size']}-{cfg.max_size})"
                )
                return pool
            except (asyncpg.PostgresError, OSError, TimeoutError) as e:
                if attempt == cfg.max_retries:
                    logger.exception(
                        f"Database connection failed after {cfg.max_retries} attempts: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise
                delay = cfg.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Database connection attempt {attempt}/{cfg.max_retries} failed: "
                    f"{type(e).__name__}: {e}, retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
        raise RuntimeError("PoolConfig.max_retries must be at least 1")

    async def disconnect(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        logger.info("Database pool closed")

    @property
    def pool(self) -> asyncpg.Pool:
        """The connection pool. Raises if not connected."""
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self._pool
