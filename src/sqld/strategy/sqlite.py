"""
SQLite execution through the standard library DB-API driver.

SQLite accepts numbered qmark parameters, so `$k` maps directly to `?k`
and a parameter used twice is bound once.
"""
import logging
import sqlite3
from typing import Any

from sqld.sql import Statement, translate_markers
from sqld.strategy.base import ExecutionStrategy, dumpsql, register_strategy

logger = logging.getLogger(__name__)


@register_strategy('sqlite')
class SQLiteStrategy(ExecutionStrategy):
    """sqlite3.Connection execution.
    """

    @classmethod
    def handles(cls, connection: Any) -> bool:
        return isinstance(connection, sqlite3.Connection)

    def translate(self, statement: Statement) -> tuple[str, tuple]:
        return translate_markers(statement, lambda i: f'?{i}'), statement.args

    @dumpsql
    def fetch(self, connection: sqlite3.Connection, sql: str,
              params: tuple) -> list[dict[str, Any]]:
        cursor = connection.cursor()
        try:
            cursor.execute(sql, params)
            if cursor.description is None:
                return []
            columns = [desc[0] for desc in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def cancel(self, connection: sqlite3.Connection) -> None:
        connection.interrupt()

    def is_cancellation(self, connection: Any, err: BaseException) -> bool:
        return isinstance(err, sqlite3.OperationalError) and 'interrupted' in str(err)
