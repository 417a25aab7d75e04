"""
Record schemas and the schema registry.

Record types are dataclasses whose queryable attributes are declared with
`column()`. Each declaration pairs a storage key (the column name) with an
external key (the name callers use in requests and responses):

    @dataclass
    class Employee:
        __tablename__ = 'employees'

        id: EmployeeID = column('id', key='id')
        first_name: str = column('first_name', key='first_name')
        is_active: bool = column('is_active', key='active')

Registering the type builds an immutable `RecordSchema` once; everything
downstream reads that schema.
"""
import dataclasses
import logging
import threading
import types
import typing
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from sqld.converters import ConverterRegistry
from sqld.exceptions import CatalogSealed, NotRegistered, SchemaError
from sqld.types import Kind, SemanticType, custom, parse_type, type_for_class

logger = logging.getLogger(__name__)

METADATA_KEY = 'sqld'

__all__ = [
    'column',
    'AttributeDescriptor',
    'RecordSchema',
    'SchemaRegistry',
    'build_schema',
]


def column(storage: str | None = None, *, key: str | None = None,
           type: SemanticType | str | None = None, nullable: bool | None = None,
           converter: str | None = None, default: Any = None, **kwargs: Any) -> Any:
    """Declare a queryable attribute on a record dataclass.

    Args:
        storage: Storage key, the column name in the database
        key: External key used in requests and responses
        type: Semantic type, overriding the one inferred from the annotation
        nullable: Whether NULL is accepted, overriding `X | None` inference
        converter: Converter id, for attributes whose annotation does not name
            the converter's class
        default: Dataclass default, None unless given
        **kwargs: Passed through to `dataclasses.field`

    Returns
        A dataclass field carrying the attribute mapping
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[METADATA_KEY] = {
        'storage': storage,
        'key': key,
        'type': type,
        'nullable': nullable,
        'converter': converter,
    }
    return field(default=default, metadata=metadata, **kwargs)


@dataclass(frozen=True, slots=True)
class AttributeDescriptor:
    """One queryable attribute of a record type."""
    name: str
    key: str
    storage: str
    type: SemanticType
    nullable: bool = False
    converter: str | None = None


@dataclass(frozen=True)
class RecordSchema:
    """Immutable description of a record type's queryable attributes."""
    record_type: type
    attributes: tuple[AttributeDescriptor, ...]
    table: str | None = None

    def __post_init__(self):
        object.__setattr__(self, '_by_key', types.MappingProxyType(
            {attr.key: attr for attr in self.attributes}))
        object.__setattr__(self, '_by_storage', types.MappingProxyType(
            {attr.storage: attr for attr in self.attributes}))

    def attribute(self, key: str) -> AttributeDescriptor | None:
        """Resolve an external key."""
        return self._by_key.get(key)

    def by_storage(self, storage: str) -> AttributeDescriptor | None:
        """Resolve a storage key."""
        return self._by_storage.get(storage)

    @property
    def keys(self) -> list[str]:
        return [attr.key for attr in self.attributes]

    @property
    def name(self) -> str:
        return self.record_type.__name__

    def __iter__(self) -> Iterator[AttributeDescriptor]:
        return iter(self.attributes)

    def __len__(self) -> int:
        return len(self.attributes)

    def __repr__(self) -> str:
        return f'RecordSchema({self.name}, table={self.table!r}, keys={self.keys})'


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    """Split `X | None` into (X, True); other hints return (hint, False)."""
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        optional = len(args) < len(typing.get_args(hint))
        if len(args) == 1:
            return args[0], optional
        return hint, optional
    return hint, False


def _resolve_attribute(record_type: type, f: dataclasses.Field, hint: Any,
                       mapping: dict, converters: ConverterRegistry) -> AttributeDescriptor:
    """Build the descriptor for one declared field."""
    base, optional = _unwrap_optional(hint)

    declared = mapping['type']
    converter_id = mapping['converter']
    if isinstance(declared, str):
        try:
            declared = parse_type(declared, converters)
        except KeyError:
            raise SchemaError(
                f'{record_type.__name__}.{f.name}: unknown semantic type {declared!r}') from None
    if declared is None and converter_id is not None:
        if converter_id not in converters:
            raise SchemaError(
                f'{record_type.__name__}.{f.name}: no converter registered for {converter_id!r}')
        declared = custom(converter_id)
    if declared is None:
        declared = type_for_class(base, converters)
    if declared is None:
        raise SchemaError(
            f'{record_type.__name__}.{f.name}: cannot map annotation {hint!r} to a semantic type')
    if declared.kind is Kind.NULL:
        raise SchemaError(f'{record_type.__name__}.{f.name}: null is not a declarable type')
    if declared.is_custom and declared.name not in converters:
        raise SchemaError(
            f'{record_type.__name__}.{f.name}: no converter registered for {declared.name!r}')

    nullable = mapping['nullable']
    if nullable is None:
        nullable = optional

    return AttributeDescriptor(
        name=f.name,
        key=mapping['key'],
        storage=mapping['storage'],
        type=declared,
        nullable=nullable,
        converter=declared.name if declared.is_custom else None,
    )


def build_schema(record_type: Any, converters: ConverterRegistry,
                 table: str | None = None) -> RecordSchema:
    """Inspect a record dataclass and build its schema.

    Raises
        SchemaError: If the type is not a dataclass, a field declares only one
            half of the storage/external key pair, or keys collide
    """
    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        raise SchemaError(f'{record_type!r} is not a record type (expected a dataclass)')

    try:
        hints = typing.get_type_hints(record_type)
    except (NameError, TypeError) as err:
        raise SchemaError(f'cannot resolve annotations of {record_type.__name__}: {err}') from err

    attributes = []
    seen_keys: dict[str, str] = {}
    seen_storage: dict[str, str] = {}

    for f in dataclasses.fields(record_type):
        mapping = f.metadata.get(METADATA_KEY)
        if mapping is None:
            continue
        storage, key = mapping['storage'], mapping['key']
        if storage is None and key is None:
            continue
        if storage and not key:
            raise SchemaError(
                f'field {record_type.__name__}.{f.name} has storage key {storage!r} but no external key')
        if key and not storage:
            raise SchemaError(
                f'field {record_type.__name__}.{f.name} has external key {key!r} but no storage key')
        if key in seen_keys:
            raise SchemaError(
                f'{record_type.__name__}: external key {key!r} declared by both '
                f'{seen_keys[key]} and {f.name}')
        if storage in seen_storage:
            raise SchemaError(
                f'{record_type.__name__}: storage key {storage!r} declared by both '
                f'{seen_storage[storage]} and {f.name}')
        seen_keys[key] = f.name
        seen_storage[storage] = f.name

        attributes.append(_resolve_attribute(record_type, f, hints.get(f.name, Any),
                                             mapping, converters))

    table = table or getattr(record_type, '__tablename__', None)
    return RecordSchema(record_type=record_type, attributes=tuple(attributes), table=table)


class SchemaRegistry:
    """Maps record types to their schemas.

    Populated during initialization; `seal()` rejects further writes so the
    no-writes-while-serving rule is enforced rather than assumed.
    """

    def __init__(self, converters: ConverterRegistry) -> None:
        self._converters = converters
        self._schemas: dict[type, RecordSchema] = {}
        self._lock = threading.RLock()
        self._sealed = False

    def register(self, record_type: type, table: str | None = None) -> RecordSchema:
        """Build and store the schema for a record type.

        Re-registering a type replaces its schema.
        """
        with self._lock:
            if self._sealed:
                raise CatalogSealed(
                    f'cannot register {getattr(record_type, "__name__", record_type)}: catalog is sealed')
            schema = build_schema(record_type, self._converters, table=table)
            if record_type in self._schemas:
                logger.warning(f'Replacing schema for {schema.name}')
            self._schemas[record_type] = schema
            logger.debug(f'Registered {schema!r}')
            return schema

    def lookup(self, record_type: type) -> RecordSchema:
        """Return the schema for a record type.

        Raises
            NotRegistered: If the type was never registered
        """
        try:
            return self._schemas[record_type]
        except KeyError:
            name = getattr(record_type, '__name__', repr(record_type))
            raise NotRegistered(f'record type {name} is not registered') from None

    def schemas(self) -> typing.Mapping[type, RecordSchema]:
        return types.MappingProxyType(self._schemas)

    def seal(self) -> None:
        with self._lock:
            self._sealed = True

    def __contains__(self, record_type: type) -> bool:
        return record_type in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)
