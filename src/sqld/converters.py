"""
Converter registry for types the database drivers cannot represent natively.

A converter turns a raw driver value into a typed value and back. Registering
one makes its type id a first-class semantic type: attributes annotated with
the converter's class validate against it and are scanned through it.

Usage:
    class EmployeeID(int):
        pass

    converters.register('employee_id', lambda: SimpleConverter(
        EmployeeID, from_db=EmployeeID, to_db=int))
"""
import logging
import threading
from collections.abc import Callable
from typing import Any

from sqld.exceptions import CatalogSealed, SchemaError

logger = logging.getLogger(__name__)


class Converter:
    """Base class for bidirectional value converters.
    """

    python_type: type = object

    def from_db(self, value: Any) -> Any:
        """Convert a raw driver value into the typed value."""
        raise NotImplementedError

    def to_db(self, value: Any) -> Any:
        """Convert a typed value into a value the driver can bind."""
        raise NotImplementedError


class SimpleConverter(Converter):
    """Converter assembled from a class and two callables."""

    def __init__(self, python_type: type, from_db: Callable[[Any], Any],
                 to_db: Callable[[Any], Any]) -> None:
        self.python_type = python_type
        self._from_db = from_db
        self._to_db = to_db

    def from_db(self, value: Any) -> Any:
        return self._from_db(value)

    def to_db(self, value: Any) -> Any:
        return self._to_db(value)

    def __repr__(self) -> str:
        return f'SimpleConverter({self.python_type.__name__})'


class ConverterRegistry:
    """Maps semantic type ids to converters.

    Writes are serialized; reads are lock-free and expected to dominate once
    the owning catalog is sealed.
    """

    def __init__(self) -> None:
        self._converters: dict[str, Converter] = {}
        self._classes: dict[type, str] = {}
        self._lock = threading.RLock()
        self._sealed = False

    def register(self, type_id: str, factory: Callable[[], Converter]) -> Converter:
        """Associate a semantic type id with a converter built by `factory`.

        Raises
            SchemaError: If another type id's converter already produces the
                same class
        """
        with self._lock:
            if self._sealed:
                raise CatalogSealed(f'cannot register converter {type_id!r}: catalog is sealed')
            converter = factory()
            owner = self._classes.get(converter.python_type)
            if owner is not None and owner != type_id:
                raise SchemaError(f'{converter.python_type.__name__} is already '
                                  f'converted by {owner!r}, cannot register {type_id!r}')
            previous = self._converters.get(type_id)
            if previous is not None:
                if self._classes.get(previous.python_type) == type_id:
                    del self._classes[previous.python_type]
                logger.debug(f'Replacing converter for {type_id}')
            self._converters[type_id] = converter
            self._classes[converter.python_type] = type_id
            logger.debug(f'Registered converter {converter!r} for {type_id}')
            return converter

    def lookup(self, type_id: str) -> Converter | None:
        """Return the converter for a type id, or None."""
        return self._converters.get(type_id)

    def lookup_class(self, cls: type) -> str | None:
        """Return the type id whose converter produces `cls`, or None."""
        return self._classes.get(cls)

    def seal(self) -> None:
        with self._lock:
            self._sealed = True

    def __contains__(self, type_id: str) -> bool:
        return type_id in self._converters

    def __len__(self) -> int:
        return len(self._converters)
