"""
End-to-end query pipelines.

Structured:

    request -> validate -> build -> execute -> scan -> project(select) -> response

Raw:

    text, params -> extract -> validate -> rewrite -> execute -> scan -> project -> response

Every failure surfaces as an exception from `sqld.exceptions`; nothing is
retried. Wrap the result with `QueryResponse.from_error` to build the
`{data, error}` envelope for a failed request.
"""
import logging
from typing import TYPE_CHECKING, Any

from sqld import strategy
from sqld.builder import build, validate
from sqld.context import QueryContext
from sqld.projector import QueryResponse, project
from sqld.request import QueryRequest

if TYPE_CHECKING:
    from sqld.catalog import Catalog

logger = logging.getLogger(__name__)

__all__ = ['execute', 'execute_raw']


def _context(catalog: 'Catalog', ctx: QueryContext | None) -> QueryContext:
    if ctx is not None:
        return ctx
    return QueryContext(timeout=catalog.options.timeout or None)


def execute(catalog: 'Catalog', connection: Any, record_type: type,
            request: QueryRequest | dict[str, Any],
            ctx: QueryContext | None = None) -> QueryResponse:
    """Run a structured query and project the selected fields.

    Args:
        catalog: Catalog holding the record type's schema
        connection: Any connection a registered strategy handles
        record_type: Registered record type; its storage location is the table
        request: QueryRequest or its wire dict
        ctx: Cancellation context, defaults to one with the catalog's timeout

    Returns
        QueryResponse whose data holds one dict per row keyed by the select list

    Raises
        NotRegistered: If record_type has no schema
        ValidationError: If the request does not match the schema
        UnsupportedConnection: If no strategy handles the connection
        ExecutionError: If the database reports an error
        ScanError: If a column value does not fit its attribute
    """
    if isinstance(request, dict):
        request = QueryRequest.from_dict(request)

    schema = catalog.lookup(record_type)
    window = validate(request, schema, catalog.converters, catalog.options)
    statement = build(request, schema, window, catalog.converters)

    records = strategy.execute(_context(catalog, ctx), connection, statement,
                               schema, catalog.converters)

    keys = list(request.select)
    rows = project(records, schema, keys)
    return QueryResponse(data=catalog.options.data_loader(rows, keys))


def execute_raw(catalog: 'Catalog', connection: Any, params_type: type, result_type: type,
                text: str, param_map: dict[str, Any] | None = None,
                ctx: QueryContext | None = None) -> QueryResponse:
    """Run caller-written SQL with `{{name}}` parameters.

    Every attribute of `result_type` that maps a column is projected.

    Raises
        NotRegistered: If either record type has no schema
        ValidationError: If a parameter is undeclared or has the wrong type
        RewriteError: If the text holds a malformed placeholder
        UnsupportedConnection: If no strategy handles the connection
        ExecutionError: If the database reports an error
        ScanError: If a column value does not fit its attribute
    """
    spec = catalog.raw_query(text, params_type, result_type)
    statement = spec.prepare(catalog, param_map)

    result_schema = catalog.lookup(result_type)
    records = strategy.execute(_context(catalog, ctx), connection, statement,
                               result_schema, catalog.converters)

    keys = result_schema.keys
    rows = project(records, result_schema)
    return QueryResponse(data=catalog.options.data_loader(rows, keys))
