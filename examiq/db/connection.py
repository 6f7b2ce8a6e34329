"""Database connection utilities."""
import asyncpg
from examiq.config import settings

_pool: asyncpg.Pool | None = None

SCHEMA = """
CREATE TABLE IF NOT EXISTS materials (
    id SERIAL PRIMARY KEY,
    title TEXT NOT NULL,
    subject TEXT NOT NULL,
    content TEXT NOT NULL,
    type TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS scores (
    id SERIAL PRIMARY KEY,
    subject TEXT NOT NULL,
    score INTEGER NOT NULL,
    total INTEGER NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""


async def get_db_pool() -> asyncpg.Pool:
    """Get or create database connection pool."""
    global _pool

    if _pool is None:
        _pool = await asyncpg.create_pool(
            settings.DATABASE_URL,
            min_size=2,
            max_size=10,
        )

    return _pool


async def close_db_pool():
    """Close database connection pool."""
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None


async def init_schema():
    """Create the materials and scores tables if they do not exist."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA)


async def execute_query(query: str, *args):
    """Execute a database query."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        return await conn.fetch(query, *args)


async def execute_one(query: str, *args):
    """Execute a query and return one result."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        return await conn.fetchrow(query, *args)


async def execute_update(query: str, *args):
    """Execute an update/insert query."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        return await conn.execute(query, *args)
