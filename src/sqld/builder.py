"""
Structured query builder.

Two phases: `validate` checks a request against a record schema, `build`
turns a validated request into a parameterized `Statement`. `build` is
never reached when validation fails, so an invalid request cannot produce
SQL.

Filters are AND-joined equality comparisons only; there is no OR and no
range operator in the structured path. Statements that need those are
written as raw queries instead.
"""
import logging
from typing import Any

from sqld.converters import ConverterRegistry
from sqld.exceptions import ValidationError
from sqld.options import QueryOptions
from sqld.pagination import Window, calculate
from sqld.request import QueryRequest
from sqld.schema import AttributeDescriptor, RecordSchema
from sqld.sql import Statement, quote_identifier
from sqld.types import Kind, is_compatible, runtime_type

logger = logging.getLogger(__name__)

__all__ = ['validate', 'build', 'build_query', 'bind_value']


def _resolve(schema: RecordSchema, key: str, clause: str) -> AttributeDescriptor:
    attr = schema.attribute(key)
    if attr is None:
        raise ValidationError(f'unknown field {key!r} in {clause} for {schema.name}')
    return attr


def validate(request: QueryRequest, schema: RecordSchema,
             converters: ConverterRegistry | None = None,
             options: QueryOptions | None = None) -> Window:
    """Check a request against a schema and compute its window.

    Returns
        The effective limit/offset window

    Raises
        ValidationError: On an empty select list, an unknown field, a filter
            value of the wrong type or invalid pagination bounds
    """
    if not schema.table:
        raise ValidationError(f'record type {schema.name} has no storage location')
    if not request.select:
        raise ValidationError('select must name at least one field')

    for key in request.select:
        _resolve(schema, key, 'select')

    for key, value in request.where.items():
        attr = _resolve(schema, key, 'where')
        if attr.type.kind is Kind.ANY:
            continue
        actual = runtime_type(value, converters)
        if not is_compatible(actual, attr.type, attr.nullable):
            raise ValidationError(
                f'filter {key!r} type mismatch: got {actual}, want {attr.type}')

    for clause in request.order_by:
        _resolve(schema, clause.field, 'orderBy')

    return calculate(request.pagination, request.limit, request.offset, options)


def bind_value(attr: AttributeDescriptor, value: Any,
               converters: ConverterRegistry | None) -> Any:
    """Convert a typed value into what the driver binds."""
    if value is None or attr.converter is None or converters is None:
        return value
    return converters.lookup(attr.converter).to_db(value)


def build(request: QueryRequest, schema: RecordSchema, window: Window,
          converters: ConverterRegistry | None = None) -> Statement:
    """Emit the parameterized SELECT for a validated request.

    Only schema-derived identifiers appear in the text; every filter value,
    limit and offset is bound as an argument.
    """
    args: list[Any] = []

    def marker(value: Any) -> str:
        args.append(value)
        return f'${len(args)}'

    columns = ', '.join(quote_identifier(schema.attribute(key).storage)
                        for key in request.select)
    sql = f'SELECT {columns} FROM {quote_identifier(schema.table)}'

    conditions = []
    for key, value in request.where.items():
        attr = schema.attribute(key)
        column = quote_identifier(attr.storage)
        if value is None:
            conditions.append(f'{column} IS NULL')
        else:
            conditions.append(f'{column} = {marker(bind_value(attr, value, converters))}')
    if conditions:
        sql += ' WHERE ' + ' AND '.join(conditions)

    if request.order_by:
        ordering = ', '.join(
            f'{quote_identifier(schema.attribute(o.field).storage)} {"DESC" if o.desc else "ASC"}'
            for o in request.order_by)
        sql += f' ORDER BY {ordering}'

    if window.limit is not None:
        sql += f' LIMIT {marker(window.limit)}'
    if window.offset is not None:
        sql += f' OFFSET {marker(window.offset)}'

    logger.debug(f'Built statement for {schema.name} with {len(args)} arguments')
    return Statement(sql, tuple(args))


def build_query(request: QueryRequest, schema: RecordSchema,
                converters: ConverterRegistry | None = None,
                options: QueryOptions | None = None) -> Statement:
    """Validate then build."""
    window = validate(request, schema, converters, options)
    return build(request, schema, window, converters)
