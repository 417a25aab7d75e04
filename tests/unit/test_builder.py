import datetime
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import pytest
from sqld import Catalog, OrderBy, PaginationRequest, QueryOptions, QueryRequest
from sqld import Window, column
from sqld.builder import build, build_query, validate
from sqld.exceptions import ValidationError

from tests.fixtures.models import Employee, EmployeeID, EmployeeSummary, Person


def test_filter_on_flag(catalog):
    """Filtering on a boolean binds the value, selects only requested columns"""
    schema = catalog.lookup(Person)
    request = QueryRequest(select=['id', 'name'], where={'active': True})

    sql, args = build_query(request, schema, catalog.converters)

    assert sql == 'SELECT "id", "name" FROM "t" WHERE "is_active" = $1'
    assert args == (True,)


def test_full_statement(catalog):
    schema = catalog.lookup(Employee)
    request = QueryRequest(
        select=['name', 'salary'],
        where={'department': 'Eng', 'active': True},
        order_by=[OrderBy('salary', desc=True), OrderBy('name')],
        pagination=PaginationRequest(page=2, page_size=10),
    )

    statement = build_query(request, schema, catalog.converters)

    assert statement.text == (
        'SELECT "name", "salary" FROM "employees" '
        'WHERE "department" = $1 AND "is_active" = $2 '
        'ORDER BY "salary" DESC, "name" ASC '
        'LIMIT $3 OFFSET $4'
    )
    assert statement.args == ('Eng', True, 10, 10)


def test_select_only(catalog):
    """No WHERE, ORDER BY or window clauses when none are requested"""
    statement = build_query(QueryRequest(select=['id']), catalog.lookup(Person))
    assert statement.text == 'SELECT "id" FROM "t"'
    assert statement.args == ()


def test_limit_only(catalog):
    schema = catalog.lookup(Person)
    statement = build_query(QueryRequest(select=['id'], limit=5), schema)
    assert statement.text == 'SELECT "id" FROM "t" LIMIT $1'
    assert statement.args == (5,)


def test_null_filter(catalog):
    """A None filter on a nullable attribute becomes IS NULL with no argument"""
    schema = catalog.lookup(Employee)
    request = QueryRequest(select=['name'], where={'department': None, 'salary': 70000})
    statement = build_query(request, schema, catalog.converters)
    assert statement.text == (
        'SELECT "name" FROM "employees" WHERE "department" IS NULL AND "salary" = $1')
    assert statement.args == (70000,)


def test_null_filter_on_required_attribute(catalog):
    request = QueryRequest(select=['name'], where={'salary': None})
    with pytest.raises(ValidationError, match="filter 'salary' type mismatch"):
        validate(request, catalog.lookup(Employee), catalog.converters)


def test_custom_filter_converted(catalog):
    """Converter-backed filters are bound as the driver value"""
    schema = catalog.lookup(Employee)
    request = QueryRequest(select=['name'], where={'id': EmployeeID(3)})
    statement = build_query(request, schema, catalog.converters)
    assert statement.args == (3,)
    assert type(statement.args[0]) is int


def test_custom_filter_rejects_native(catalog):
    request = QueryRequest(select=['name'], where={'id': 3})
    with pytest.raises(ValidationError, match='got integer, want employee_id'):
        validate(request, catalog.lookup(Employee), catalog.converters)


def test_timestamp_filter(catalog):
    hired = datetime.datetime(2020, 1, 15, 9)
    request = QueryRequest(select=['name'], where={'hired_at': hired})
    assert build_query(request, catalog.lookup(Employee), catalog.converters).args == (hired,)


@pytest.mark.parametrize(('request_', 'message'), [
    (QueryRequest(select=[]), 'select must name at least one field'),
    (QueryRequest(select=['nope']), "unknown field 'nope' in select"),
    (QueryRequest(select=['id'], where={'nope': 1}), "unknown field 'nope' in where"),
    (QueryRequest(select=['id'], order_by=[OrderBy('nope')]), "unknown field 'nope' in orderBy"),
    (QueryRequest(select=['id'], where={'active': 'yes'}),
     "filter 'active' type mismatch: got string, want boolean"),
    (QueryRequest(select=['id'], where={'id': 1.0}),
     "filter 'id' type mismatch: got float, want integer"),
    (QueryRequest(select=['id'], pagination=PaginationRequest(page=0)), 'page must be at least 1'),
])
def test_invalid_requests(catalog, request_, message):
    with pytest.raises(ValidationError, match=message):
        validate(request_, catalog.lookup(Person), catalog.converters)


def test_storage_key_is_not_an_external_key(catalog):
    """Requests use external keys; the column name is not accepted"""
    with pytest.raises(ValidationError, match="unknown field 'is_active'"):
        validate(QueryRequest(select=['is_active']), catalog.lookup(Person))


def test_record_without_table(catalog):
    with pytest.raises(ValidationError, match='has no storage location'):
        validate(QueryRequest(select=['id']), catalog.lookup(EmployeeSummary))


def test_validate_returns_window(catalog):
    options = QueryOptions(default_page_size=5)
    request = QueryRequest(select=['id'], pagination=PaginationRequest(page=3))
    assert validate(request, catalog.lookup(Person), options=options) == Window(5, 10)


def test_values_never_enter_text(catalog):
    """Hostile filter values stay in the argument list"""
    hostile = "x'; DROP TABLE t; --"
    statement = build_query(QueryRequest(select=['name'], where={'name': hostile}),
                            catalog.lookup(Person))
    assert hostile not in statement.text
    assert statement.args == (hostile,)


@dataclass
class Setting:
    __tablename__ = 'settings'
    key: str = column('key', key='key')
    payload: Any = column('payload', key='payload', nullable=True)


@pytest.mark.parametrize('value', [
    Decimal('1.5'),
    b'\x00\x01',
    [1, 2],
    {'a': 1},
    'text',
])
def test_any_filter_accepts_every_value(value):
    """An attribute typed Any binds whatever value it is given"""
    catalog = Catalog()
    schema = catalog.register(Setting)
    request = QueryRequest(select=['key'], where={'payload': value})

    statement = build_query(request, schema, catalog.converters)

    assert statement.text == 'SELECT "key" FROM "settings" WHERE "payload" = $1'
    assert statement.args == (value,)


def test_quoted_identifiers():
    @dataclass
    class Odd:
        __tablename__ = 'odd"table'
        a: int = column('we"ird', key='a')

    catalog = Catalog()
    statement = build(QueryRequest(select=['a']), catalog.register(Odd), Window())
    assert statement.text == 'SELECT "we""ird" FROM "odd""table"'


if __name__ == '__main__':
    __import__('pytest').main([__file__])
