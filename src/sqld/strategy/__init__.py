"""
Execution strategy dispatch over connection shapes.
"""
import logging
from functools import lru_cache
from typing import Any

from sqld.context import QueryContext
from sqld.converters import ConverterRegistry
from sqld.exceptions import UnsupportedConnection
from sqld.scanner import scan
from sqld.schema import RecordSchema
from sqld.sql import Statement
from sqld.strategy.base import _STRATEGY_REGISTRY
from sqld.strategy.base import ExecutionStrategy as ExecutionStrategy
from sqld.strategy.base import register_strategy as register_strategy
from sqld.strategy.engine import SQLAlchemyStrategy as SQLAlchemyStrategy
from sqld.strategy.postgres import PostgresStrategy as PostgresStrategy
from sqld.strategy.sqlite import SQLiteStrategy as SQLiteStrategy

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def _get_strategy(cls: type[ExecutionStrategy]) -> ExecutionStrategy:
    """Get cached strategy instance for a strategy class."""
    return cls()


def get_strategy(connection: Any) -> ExecutionStrategy:
    """Get the execution strategy for a connection object.

    Raises
        UnsupportedConnection: If no registered strategy handles the connection
    """
    for cls in _STRATEGY_REGISTRY.values():
        if cls.handles(connection):
            return _get_strategy(cls)
    available = list(_STRATEGY_REGISTRY.keys())
    raise UnsupportedConnection(
        f'unsupported connection type: {type(connection).__module__}.'
        f'{type(connection).__name__} (available: {available})')


def get_available_strategies() -> list[str]:
    """Return list of registered strategy names."""
    return list(_STRATEGY_REGISTRY.keys())


def execute(ctx: QueryContext, connection: Any, statement: Statement,
            schema: RecordSchema, converters: ConverterRegistry | None = None) -> list[Any]:
    """Run a statement and scan the rows into records of `schema`'s type.
    """
    strategy = get_strategy(connection)
    rows = strategy.execute(ctx, connection, statement)
    return scan(rows, schema, converters)
