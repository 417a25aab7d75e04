import pathlib
import site

import pytest

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture
def catalog(models_catalog):
    """Sealed catalog with every test record type registered."""
    models_catalog.seal()
    return models_catalog


pytest_plugins = [
    'tests.fixtures.models',
    'tests.fixtures.sqlite',
    'tests.fixtures.sqlalchemy_fixtures',
    'tests.fixtures.postgres',
]
