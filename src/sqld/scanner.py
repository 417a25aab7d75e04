"""
Scan driver rows into typed records.

Rows arrive as dicts keyed by column name. Each attribute with a storage key
is filled from the column of that name; columns with no attribute are
ignored and attributes without a returned column stay None.

Drivers disagree on how some types come back (SQLite has no boolean or
timestamp storage class), so native values are normalized per semantic type.
Custom types go through their registered converter.
"""
import datetime
import decimal
import logging
from typing import Any

import dateutil.parser

from sqld.converters import ConverterRegistry
from sqld.exceptions import ScanError
from sqld.schema import AttributeDescriptor, RecordSchema
from sqld.types import Kind

logger = logging.getLogger(__name__)


def _to_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError('boolean is not an integer')
    if isinstance(value, int):
        return value
    if isinstance(value, decimal.Decimal) and value == value.to_integral_value():
        return int(value)
    raise TypeError(f'cannot scan {type(value).__name__} as integer')


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError('boolean is not a float')
    if isinstance(value, (int, float, decimal.Decimal)):
        return float(value)
    raise TypeError(f'cannot scan {type(value).__name__} as float')


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in {0, 1}:
        return bool(value)
    raise TypeError(f'cannot scan {value!r} as boolean')


def _to_timestamp(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, bytes):
        value = value.decode()
    if isinstance(value, str):
        return dateutil.parser.isoparse(value)
    raise TypeError(f'cannot scan {type(value).__name__} as timestamp')


def _to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    raise TypeError(f'cannot scan {type(value).__name__} as string')


_NATIVE_SCANNERS = {
    Kind.INTEGER: _to_integer,
    Kind.FLOAT: _to_float,
    Kind.BOOLEAN: _to_boolean,
    Kind.TIMESTAMP: _to_timestamp,
    Kind.STRING: _to_string,
    Kind.ANY: lambda value: value,
}


def scan_value(attr: AttributeDescriptor, value: Any,
               converters: ConverterRegistry | None = None) -> Any:
    """Convert one raw column value for an attribute.

    Raises
        ScanError: If the value is NULL for a non-nullable attribute or
            cannot be converted
    """
    if value is None:
        if attr.nullable or attr.type.kind is Kind.ANY:
            return None
        raise ScanError(f'column {attr.storage!r} is NULL but {attr.name} is not nullable')

    try:
        if attr.type.is_custom:
            converter = converters.lookup(attr.converter) if converters else None
            if converter is None:
                raise LookupError(f'no converter registered for {attr.converter!r}')
            return converter.from_db(value)
        return _NATIVE_SCANNERS[attr.type.kind](value)
    except Exception as err:
        raise ScanError(f'cannot scan column {attr.storage!r} into '
                        f'{attr.name} ({attr.type}): {err}') from err


def scan_row(row: dict[str, Any], schema: RecordSchema,
             converters: ConverterRegistry | None = None) -> Any:
    """Build one record instance from a row dict."""
    values = {
        attr.name: scan_value(attr, row[attr.storage], converters)
        for attr in schema
        if attr.storage in row
    }
    try:
        return schema.record_type(**values)
    except TypeError as err:
        raise ScanError(f'cannot construct {schema.name}: {err}') from err


def scan(rows: list[dict[str, Any]], schema: RecordSchema,
         converters: ConverterRegistry | None = None) -> list[Any]:
    """Scan rows into records of the schema's record type, preserving order."""
    records = [scan_row(row, schema, converters) for row in rows]
    logger.debug(f'Scanned {len(records)} rows into {schema.name}')
    return records
