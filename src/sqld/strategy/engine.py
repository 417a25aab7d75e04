"""
Generic driver-based execution through SQLAlchemy.

Accepts a `sqlalchemy.engine.Connection`, or an `Engine` from which one
connection is checked out per statement. Markers become `(:pk)` bind
parameters of a `text()` clause; colons SQLAlchemy would otherwise read as
bind parameters are escaped.

Cancellation is delegated to the strategy of the underlying DB-API
connection (psycopg or sqlite3).
"""
import logging
import re
from typing import Any

import sqlalchemy as sa

from sqld.context import QueryContext
from sqld.exceptions import UnsupportedConnection
from sqld.sql import Statement, translate_markers
from sqld.strategy.base import _STRATEGY_REGISTRY, ExecutionStrategy, dumpsql
from sqld.strategy.base import register_strategy

logger = logging.getLogger(__name__)

# same pattern sqlalchemy.sql.elements.TextClause uses to find bind names
_BIND_PARAMS = re.compile(r'(?<![:\w\x5c]):(\w+)(?!:)', re.UNICODE)


def _escape_colons(text: str) -> str:
    return _BIND_PARAMS.sub(r'\\:\1', text)


def _driver_connection(connection: sa.engine.Connection) -> Any:
    """Extract the raw DB-API connection behind a SQLAlchemy connection."""
    return connection.connection.driver_connection


@register_strategy('sqlalchemy')
class SQLAlchemyStrategy(ExecutionStrategy):
    """SQLAlchemy Connection/Engine execution.
    """

    @classmethod
    def handles(cls, connection: Any) -> bool:
        return isinstance(connection, sa.engine.Connection | sa.engine.Engine)

    def translate(self, statement: Statement) -> tuple[sa.TextClause, dict[str, Any]]:
        # parenthesized so a trailing `::type` cast is not read as part of the name
        sql = translate_markers(statement, lambda i: f'(:p{i})', escape=_escape_colons)
        params = {f'p{i}': value for i, value in enumerate(statement.args, start=1)}
        return sa.text(sql), params

    def execute(self, ctx: QueryContext, connection: Any,
                statement: Statement) -> list[dict[str, Any]]:
        if isinstance(connection, sa.engine.Engine):
            ctx.raise_if_done()
            with connection.connect() as cn:
                return super().execute(ctx, cn, statement)
        return super().execute(ctx, connection, statement)

    @dumpsql
    def fetch(self, connection: sa.engine.Connection, sql: sa.TextClause,
              params: dict[str, Any]) -> list[dict[str, Any]]:
        result = connection.execute(sql, params)
        if not result.returns_rows:
            return []
        return [dict(row) for row in result.mappings()]

    def _driver_strategy(self, connection: sa.engine.Connection) -> tuple[ExecutionStrategy, Any]:
        raw = _driver_connection(connection)
        for cls in _STRATEGY_REGISTRY.values():
            if cls is not SQLAlchemyStrategy and cls.handles(raw):
                return cls(), raw
        raise UnsupportedConnection(
            f'cannot cancel statements on driver connection {type(raw).__name__}')

    def cancel(self, connection: sa.engine.Connection) -> None:
        strategy, raw = self._driver_strategy(connection)
        strategy.cancel(raw)

    def is_cancellation(self, connection: Any, err: BaseException) -> bool:
        if not isinstance(err, sa.exc.DBAPIError) or err.orig is None:
            return False
        try:
            strategy, raw = self._driver_strategy(connection)
        except UnsupportedConnection:
            return False
        return strategy.is_cancellation(raw, err.orig)
