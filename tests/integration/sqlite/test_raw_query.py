from dataclasses import dataclass

import pytest
import sqld
from sqld import column
from sqld.exceptions import RewriteError, ScanError, ValidationError

from tests.fixtures.models import DeptSalaryParams, EmployeeFilterParams, EmployeeID
from tests.fixtures.models import EmployeeSummary, NoParams

DEPT_SALARY = """
SELECT id, name, salary
FROM employees
WHERE department = {{d}} AND salary >= {{m}}
ORDER BY id
"""

OPTIONAL_FILTERS = """
SELECT id, name, salary
FROM employees
WHERE ({{department}} IS NULL OR department = {{department}})
  AND ({{min_salary}} IS NULL OR salary >= {{min_salary}})
  AND ({{employee_id}} IS NULL OR id = {{employee_id}})
ORDER BY id
"""


def test_named_parameters(catalog, any_conn):
    """Every mapped attribute of the result record is projected"""
    response = catalog.execute_raw(any_conn, DeptSalaryParams, EmployeeSummary,
                                   DEPT_SALARY, {'d': 'Eng', 'm': 100000})
    assert response.data == [{'id': 1, 'name': 'Alice', 'salary': 120000}]


def test_optional_parameters(catalog, any_conn):
    """Omitted parameters are bound as NULL"""
    response = catalog.execute_raw(any_conn, EmployeeFilterParams, EmployeeSummary,
                                   OPTIONAL_FILTERS, {'min_salary': 65000})
    assert [r['name'] for r in response.data] == ['Alice', 'Bob', 'Diana']

    response = catalog.execute_raw(any_conn, EmployeeFilterParams, EmployeeSummary,
                                   OPTIONAL_FILTERS, {})
    assert len(response) == 5


def test_custom_parameter(catalog, any_conn):
    response = catalog.execute_raw(any_conn, EmployeeFilterParams, EmployeeSummary,
                                   OPTIONAL_FILTERS, {'employee_id': EmployeeID(2)})
    assert response.data == [{'id': 2, 'name': 'Bob', 'salary': 95000}]
    assert isinstance(response.data[0]['id'], EmployeeID)


def test_no_parameters(catalog, any_conn):
    response = catalog.execute_raw(any_conn, NoParams, EmployeeSummary,
                                   'SELECT id, name FROM employees WHERE id = 5')
    assert response.data == [{'id': 5, 'name': 'Ethan', 'salary': None}]


def test_literals_preserved(catalog, sqlite_conn):
    """Colons, percents and dollar signs in literals reach the database unchanged"""
    text = ("SELECT id, name || ' 10:30 50% $1' AS name FROM employees "
            "WHERE department = {{d}} AND salary >= {{m}} ORDER BY id")
    response = catalog.execute_raw(sqlite_conn, DeptSalaryParams, EmployeeSummary,
                                   text, {'d': 'Sales', 'm': 0})
    assert [r['name'] for r in response.data] == [
        'Charlie 10:30 50% $1',
        'Ethan 10:30 50% $1',
    ]


def test_hostile_value_is_data(catalog, any_conn):
    response = catalog.execute_raw(any_conn, DeptSalaryParams, EmployeeSummary,
                                   DEPT_SALARY, {'d': "Eng' OR '1'='1", 'm': 0})
    assert response.data == []


def test_type_mismatch(catalog, sqlite_conn):
    with pytest.raises(ValidationError, match='parameter m type mismatch: got string, want integer'):
        catalog.execute_raw(sqlite_conn, DeptSalaryParams, EmployeeSummary,
                            DEPT_SALARY, {'d': 'Eng', 'm': '100000'})


def test_undeclared_placeholder(catalog, sqlite_conn):
    with pytest.raises(ValidationError, match='no type information for parameter dept'):
        catalog.execute_raw(sqlite_conn, DeptSalaryParams, EmployeeSummary,
                            'SELECT id FROM employees WHERE department = {{dept}}', {})


def test_malformed_placeholder(catalog, sqlite_conn):
    with pytest.raises(RewriteError):
        catalog.execute_raw(sqlite_conn, DeptSalaryParams, EmployeeSummary,
                            'SELECT id FROM employees WHERE department = {{ d }}', {'d': 'Eng'})


def test_null_into_required_attribute(catalog, sqlite_conn):
    with pytest.raises(ScanError, match="column 'name' is NULL"):
        catalog.execute_raw(sqlite_conn, NoParams, EmployeeSummary,
                            'SELECT id, NULL AS name FROM employees')


def test_repeatable(catalog, any_conn):
    args = (any_conn, DeptSalaryParams, EmployeeSummary, DEPT_SALARY, {'d': 'Eng', 'm': 0})
    assert catalog.execute_raw(*args).data == catalog.execute_raw(*args).data


def test_module_facade(catalog, sqlite_conn):
    response = sqld.execute_raw(catalog, sqlite_conn, DeptSalaryParams, EmployeeSummary,
                                DEPT_SALARY, {'d': 'Sales', 'm': 0})
    assert [r['id'] for r in response.data] == [3, 5]


def test_unregistered_result_type(catalog, sqlite_conn):
    @dataclass
    class Unregistered:
        id: int = column('id', key='id')

    with pytest.raises(sqld.NotRegistered):
        catalog.execute_raw(sqlite_conn, NoParams, Unregistered, 'SELECT id FROM employees')


if __name__ == '__main__':
    __import__('pytest').main([__file__])
