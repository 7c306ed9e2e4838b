import os
from typing import AsyncGenerator

import asyncpg
import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

SCHEMA_DIR = os.path.join(os.path.dirname(__file__), "..", "prospector", "db", "models")


@pytest.fixture(scope="session")
def postgres_container():
    """Start a PostgreSQL container for integration tests."""
    postgres = PostgresContainer(
        image="postgres:16-alpine",
        username="testuser",
        password="testpass",
        dbname="testdb",
    )
    postgres.start()

    yield postgres

    postgres.stop()


@pytest_asyncio.fixture(scope="function")
async def test_db_pool(postgres_container) -> AsyncGenerator[asyncpg.Pool, None]:
    """A pool on a freshly created schema."""
    pool = await asyncpg.create_pool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database=postgres_container.dbname,
        user=postgres_container.username,
        password=postgres_container.password,
        min_size=1,
        max_size=10,
    )

    async with pool.acquire() as conn:
        await conn.execute("DROP TABLE IF EXISTS claimed_prospects CASCADE")
        await conn.execute("DROP TABLE IF EXISTS search_jobs CASCADE")
        for schema_file in sorted(os.listdir(SCHEMA_DIR)):
            if schema_file.endswith(".sql"):
                with open(os.path.join(SCHEMA_DIR, schema_file), "r") as f:
                    await conn.execute(f.read())

    yield pool

    await pool.close()


@pytest.fixture
def test_db(test_db_pool, monkeypatch):
    """Point the repository layer at the test pool."""
    monkeypatch.setattr("prospector.db.db.pool", test_db_pool)
    return test_db_pool
