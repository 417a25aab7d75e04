"""
Fixtures for SQLite-specific integration tests.
"""
import pytest

CONNECTION_FIXTURES = {
    'sqlite3': 'sqlite_conn',
    'sqlalchemy_connection': 'sqlalchemy_conn',
    'sqlalchemy_engine': 'sqlite_engine',
}


@pytest.fixture(params=list(CONNECTION_FIXTURES))
def any_conn(request):
    """The employees database through each connection shape SQLite supports."""
    return request.getfixturevalue(CONNECTION_FIXTURES[request.param])
