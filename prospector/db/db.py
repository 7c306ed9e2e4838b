import asyncpg
from loguru import logger
from prospector.config import settings
from typing import Optional

pool: Optional[asyncpg.Pool] = None


async def init_pool() -> asyncpg.Pool:
    global pool
    if pool is None:
        pool = await asyncpg.create_pool(
            host=settings.database_host,
            port=settings.database_port,
            database=settings.database_name,
            user=settings.database_user,
            password=settings.database_password,
            min_size=settings.database_pool_min,
            max_size=settings.database_pool_max,
            ssl="disable",
        )
        logger.info("Database connection pool initialised")
    return pool


async def close_pool():
    global pool
    if pool:
        await pool.close()
        pool = None


class Database:
    async def get_pool(self) -> asyncpg.Pool:
        global pool
        if pool is None:
            pool = await init_pool()
        return pool


db = Database()
