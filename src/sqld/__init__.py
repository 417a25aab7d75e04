"""
Typed, injection-safe query execution over PostgreSQL, SQLite and SQLAlchemy.

Structured queries are validated against a registered record schema and
built into parameterized SQL. Raw queries name their parameters with
`{{name}}` tokens and are type-checked against a parameter record.

Queries can be run either as:
- Module functions: sqld.execute(catalog, cn, Employee, request)
- Catalog methods: catalog.execute(cn, Employee, request)
"""
__version__ = '0.1.0'

from typing import Any

from sqld.catalog import Catalog
from sqld.context import QueryContext, background
from sqld.converters import Converter, ConverterRegistry, SimpleConverter
from sqld.exceptions import CatalogSealed, ExecutionCancelled, ExecutionError
from sqld.exceptions import NotRegistered, RewriteError, ScanError, SchemaError
from sqld.exceptions import SqldError, UnsupportedConnection, ValidationError
from sqld.exceptions import is_client_error, is_transient_error
from sqld.options import QueryOptions
from sqld.pagination import PaginationRequest, Window
from sqld.projector import QueryResponse
from sqld.request import OrderBy, QueryRequest
from sqld.schema import RecordSchema, column
from sqld.strategy import get_available_strategies, register_strategy


def execute(catalog: Catalog, cn: Any, record_type: type,
            request: QueryRequest | dict[str, Any],
            ctx: QueryContext | None = None) -> QueryResponse:
    """Run a structured query against a registered record type.
    """
    return catalog.execute(cn, record_type, request, ctx)


def execute_raw(catalog: Catalog, cn: Any, params_type: type, result_type: type,
                text: str, param_map: dict[str, Any] | None = None,
                ctx: QueryContext | None = None) -> QueryResponse:
    """Run caller-written SQL with `{{name}}` parameters.
    """
    return catalog.execute_raw(cn, params_type, result_type, text, param_map, ctx)


__all__ = [
    'Catalog',
    'QueryOptions',
    'QueryContext',
    'background',
    'column',
    'RecordSchema',
    'Converter',
    'ConverterRegistry',
    'SimpleConverter',
    'QueryRequest',
    'OrderBy',
    'PaginationRequest',
    'Window',
    'QueryResponse',
    'execute',
    'execute_raw',
    'register_strategy',
    'get_available_strategies',
    'is_client_error',
    'is_transient_error',
    'SqldError',
    'SchemaError',
    'NotRegistered',
    'CatalogSealed',
    'ValidationError',
    'RewriteError',
    'ExecutionError',
    'UnsupportedConnection',
    'ExecutionCancelled',
    'ScanError',
]
