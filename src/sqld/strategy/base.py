"""
Base execution strategy.

Each supported connection shape has one strategy. A strategy knows three
driver-specific things:

- how to translate a `Statement`'s `$k` markers into the driver's own style
- how to run the translated SQL and return rows as dicts
- how to cancel a statement running on that connection from another thread

Everything else (the cancellation watch, error classification, logging) is
shared here, so adding a driver means adding a strategy and nothing else.
"""
import logging
import time
from abc import ABC, abstractmethod
from functools import wraps
from typing import Any

from sqld.context import QueryContext
from sqld.exceptions import ExecutionCancelled, ExecutionError
from sqld.sql import Statement

logger = logging.getLogger(__name__)

# Ordered registry of strategy classes; the first one that handles a
# connection wins
_STRATEGY_REGISTRY: dict[str, type['ExecutionStrategy']] = {}


def register_strategy(name: str):
    """Decorator to register a strategy class.

    Usage:
        @register_strategy('sqlite')
        class SQLiteStrategy(ExecutionStrategy):
            ...
    """
    def decorator(cls: type['ExecutionStrategy']) -> type['ExecutionStrategy']:
        _STRATEGY_REGISTRY[name] = cls
        cls.name = name
        return cls
    return decorator


def dumpsql(func):
    """Decorator for logging SQL statements and their timing."""
    @wraps(func)
    def wrapper(self, connection: Any, sql: Any, params: Any):
        start = time.time()
        count = len(params) if params else 0
        logger.debug(f'SQL ({self.name}):\n{sql}\nargs: {count}')
        try:
            rows = func(self, connection, sql, params)
            logger.debug(f'Query returned {len(rows)} rows')
            return rows
        except Exception:
            logger.error(f'Error with query ({self.name}):\nSQL:\n{sql}\nargs: {count}')
            raise
        finally:
            logger.debug(f'Query time: {time.time() - start:.4f}s')
    return wrapper


class ExecutionStrategy(ABC):
    """Base class for connection-specific execution.
    """

    name: str = 'base'

    @classmethod
    @abstractmethod
    def handles(cls, connection: Any) -> bool:
        """Return True if this strategy can run statements on `connection`."""

    @abstractmethod
    def translate(self, statement: Statement) -> tuple[Any, Any]:
        """Convert a statement into driver SQL and driver parameters.

        Args:
            statement: Statement with `$k` markers

        Returns
            Tuple of (sql, params) in the driver's placeholder style
        """

    @abstractmethod
    def fetch(self, connection: Any, sql: Any, params: Any) -> list[dict[str, Any]]:
        """Run translated SQL and return every row as a dict keyed by column.

        Args:
            connection: Connection this strategy handles
            sql: Translated SQL
            params: Driver parameters

        Returns
            list: Rows in the order the database returned them
        """

    @abstractmethod
    def cancel(self, connection: Any) -> None:
        """Cancel the statement currently running on `connection`.

        Called from a thread other than the one running the statement.
        """

    def is_cancellation(self, connection: Any, err: BaseException) -> bool:
        """Return True if `err` is the driver reporting a cancelled statement."""
        return False

    def execute(self, ctx: QueryContext, connection: Any,
                statement: Statement) -> list[dict[str, Any]]:
        """Translate and run a statement under `ctx`.

        Raises
            ExecutionCancelled: If `ctx` was cancelled or expired
            ExecutionError: On any driver failure, with the cause chained
        """
        sql, params = self.translate(statement)
        with ctx.watch(lambda: self.cancel(connection)):
            try:
                return self.fetch(connection, sql, params)
            except Exception as err:
                if ctx.done or self.is_cancellation(connection, err):
                    raise ExecutionCancelled(
                        f'query cancelled: {ctx.reason or err}') from err
                raise ExecutionError(f'failed to execute query: {err}') from err
