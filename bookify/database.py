import time
import logging
import asyncpg
from contextlib import asynccontextmanager
from typing import Optional
from bookify.config import settings
from bookify.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class DatabasePool:
    """Process-wide asyncpg pool, opened on first use"""

    _pool: Optional[asyncpg.Pool] = None

    @classmethod
    async def get_pool(cls) -> asyncpg.Pool:
        if cls._pool is not None:
            return cls._pool

        try:
            cls._pool = await asyncpg.create_pool(
                **settings.db_connection_params,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                max_inactive_connection_lifetime=300,
                command_timeout=60,
                timeout=30
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error(f"Could not open pool for {settings.db_name}@{settings.db_host}: {e}")
            raise DatabaseError("Database unavailable") from e

        logger.info(
            f"Pool ready for {settings.db_name}@{settings.db_host} "
            f"({settings.db_pool_min_size}-{settings.db_pool_max_size} connections)"
        )
        return cls._pool

    @classmethod
    async def close_pool(cls):
        if cls._pool is None:
            return
        await cls._pool.close()
        cls._pool = None
        logger.info("Pool closed")


@asynccontextmanager
async def get_db_connection(use_transaction: bool = True):
    """
    Borrow a pooled connection for one unit of work.

    With use_transaction=True (writes) everything inside the block commits
    together or not at all. Reads pass use_transaction=False:

        async with get_db_connection(use_transaction=False) as conn:
            rows = await conn.fetch("SELECT id, name FROM categories")
    """
    pool = await DatabasePool.get_pool()
    async with pool.acquire() as connection:
        if not use_transaction:
            yield connection
            return
        async with connection.transaction():
            yield connection


async def check_database() -> dict:
    """Round-trip a trivial query and report status and latency"""
    started = time.perf_counter()
    try:
        async with get_db_connection(use_transaction=False) as conn:
            await conn.fetchval("SELECT 1")
    except (DatabaseError, OSError, asyncpg.PostgresError) as e:
        logger.warning(f"Health probe failed: {e}")
        return {"status": "disconnected", "name": settings.db_name}

    return {
        "status": "connected",
        "name": settings.db_name,
        "latency_ms": round((time.perf_counter() - started) * 1000, 1)
    }
