"""
Semantic types and value compatibility.

A semantic type is the logical type of an attribute or of a supplied value:

- STRING, INTEGER, FLOAT, BOOLEAN, TIMESTAMP: values the drivers represent natively
- CUSTOM: a named type backed by a registered converter
- ANY: declared-only, accepts every value
- NULL: runtime-only, the type of None

Compatibility is exact: a value matches a declared type only when its
runtime semantic type is the same, with no numeric or string coercion.
"""
import datetime
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqld.exceptions import ValidationError

if TYPE_CHECKING:
    from sqld.converters import ConverterRegistry


class Kind(Enum):
    STRING = 'string'
    INTEGER = 'integer'
    FLOAT = 'float'
    BOOLEAN = 'boolean'
    TIMESTAMP = 'timestamp'
    NULL = 'null'
    ANY = 'any'
    CUSTOM = 'custom'


@dataclass(frozen=True, slots=True)
class SemanticType:
    """Logical type of an attribute or value."""
    kind: Kind
    name: str | None = None

    def __str__(self) -> str:
        if self.kind is Kind.CUSTOM:
            return self.name
        return self.kind.value

    @property
    def is_custom(self) -> bool:
        return self.kind is Kind.CUSTOM


STRING = SemanticType(Kind.STRING)
INTEGER = SemanticType(Kind.INTEGER)
FLOAT = SemanticType(Kind.FLOAT)
BOOLEAN = SemanticType(Kind.BOOLEAN)
TIMESTAMP = SemanticType(Kind.TIMESTAMP)
NULL = SemanticType(Kind.NULL)
ANY = SemanticType(Kind.ANY)


def custom(name: str) -> SemanticType:
    """Semantic type for a converter-backed type id."""
    return SemanticType(Kind.CUSTOM, name)


# Exact class lookup; bool is deliberately its own entry
native_types: dict[type, SemanticType] = {
    str: STRING,
    int: INTEGER,
    float: FLOAT,
    bool: BOOLEAN,
    datetime.datetime: TIMESTAMP,
}

_named_types: dict[str, SemanticType] = {
    t.kind.value: t for t in (STRING, INTEGER, FLOAT, BOOLEAN, TIMESTAMP, ANY)
}


def parse_type(name: str, converters: 'ConverterRegistry | None' = None) -> SemanticType:
    """Resolve a type name such as 'integer' or a converter id.

    Raises
        KeyError: If the name is neither a native type nor a registered converter
    """
    if name in _named_types:
        return _named_types[name]
    if converters is not None and converters.lookup(name) is not None:
        return custom(name)
    raise KeyError(name)


def type_for_class(cls: Any, converters: 'ConverterRegistry | None' = None) -> SemanticType | None:
    """Map a Python class to its semantic type, or None if unknown."""
    if cls is Any:
        return ANY
    if cls in native_types:
        return native_types[cls]
    if converters is not None:
        type_id = converters.lookup_class(cls)
        if type_id is not None:
            return custom(type_id)
    return None


def runtime_type(value: Any, converters: 'ConverterRegistry | None' = None) -> SemanticType:
    """Return the semantic type of a supplied value.

    Raises
        ValidationError: If the value's class has no semantic type
    """
    if value is None:
        return NULL
    semantic = type_for_class(type(value), converters)
    if semantic is None or semantic is ANY:
        raise ValidationError(f'unsupported value type {type(value).__name__}')
    return semantic


def is_compatible(actual: SemanticType, declared: SemanticType, nullable: bool = False) -> bool:
    """Check a runtime type against a declared type.

    >>> is_compatible(INTEGER, INTEGER)
    True
    >>> is_compatible(INTEGER, FLOAT)
    False
    >>> is_compatible(NULL, STRING, nullable=True)
    True
    >>> is_compatible(BOOLEAN, ANY)
    True
    """
    if declared.kind is Kind.ANY:
        return True
    if actual.kind is Kind.NULL:
        return nullable
    return actual == declared


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
