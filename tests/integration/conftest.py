import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from ob_s3.config.settings import Settings
from ob_s3.database.connection import close_pool, get_connection, init_pool


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "ob_s3_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def state_key(db_conn: psycopg.Connection[Any]) -> Generator[str, None, None]:
    key = f"test-{uuid.uuid4()}"
    yield key
    with db_conn.cursor() as cur:
        cur.execute("DELETE FROM ob_s3_state WHERE key = %s", (key,))
    db_conn.commit()
