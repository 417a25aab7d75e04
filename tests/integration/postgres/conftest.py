"""
Fixtures for PostgreSQL-specific integration tests.
"""
import pytest
import sqlalchemy as sa

import config


@pytest.fixture
def pg_engine(conn):
    """SQLAlchemy engine on the test container through the psycopg dialect."""
    url = sa.URL.create(
        'postgresql+psycopg',
        username=config.postgresql.username,
        password=config.postgresql.password,
        host=config.postgresql.hostname,
        port=config.postgresql.port,
        database=config.postgresql.database,
    )
    engine = sa.create_engine(url)
    yield engine
    engine.dispose()
