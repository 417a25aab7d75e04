"""
PostgreSQL execution through the native psycopg client.

psycopg uses pyformat placeholders, so `$k` becomes `%(pk)s` with a dict of
parameters, and every literal `%` in the text is doubled. Statements are
cancelled with `Connection.cancel_safe()`, which psycopg reports as
`QueryCanceled`.

The caller owns the connection's transaction state: after a failed or
cancelled statement on a non-autocommit connection the caller must roll
back.
"""
import logging
from typing import Any

import psycopg
from psycopg.rows import dict_row

from sqld.sql import Statement, translate_markers
from sqld.strategy.base import ExecutionStrategy, dumpsql, register_strategy

logger = logging.getLogger(__name__)


def _escape_percent(text: str) -> str:
    return text.replace('%', '%%')


@register_strategy('postgresql')
class PostgresStrategy(ExecutionStrategy):
    """psycopg.Connection execution.
    """

    @classmethod
    def handles(cls, connection: Any) -> bool:
        return isinstance(connection, psycopg.Connection)

    def translate(self, statement: Statement) -> tuple[str, dict[str, Any] | None]:
        if not statement.args:
            # without parameters psycopg leaves % untouched
            return translate_markers(statement, lambda i: f'%(p{i})s'), None
        sql = translate_markers(statement, lambda i: f'%(p{i})s', escape=_escape_percent)
        params = {f'p{i}': value for i, value in enumerate(statement.args, start=1)}
        return sql, params

    @dumpsql
    def fetch(self, connection: psycopg.Connection, sql: str,
              params: dict[str, Any] | None) -> list[dict[str, Any]]:
        with connection.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            if cursor.description is None:
                return []
            return cursor.fetchall()

    def cancel(self, connection: psycopg.Connection) -> None:
        connection.cancel_safe()

    def is_cancellation(self, connection: Any, err: BaseException) -> bool:
        return isinstance(err, psycopg.errors.QueryCanceled)
