"""
Catalog of record schemas, converters and prepared raw statements.

A catalog is populated at startup, sealed, then shared by every request:

    catalog = Catalog(QueryOptions(timeout=5))
    catalog.register_converter('EmployeeID', lambda: EmployeeIDConverter())
    catalog.register(Employee)
    catalog.seal()

    response = catalog.execute(cn, Employee, {'select': ['id', 'name']})
"""
import logging
import threading
from collections.abc import Callable
from typing import Any

from cachetools import LRUCache

from sqld import executor
from sqld.context import QueryContext
from sqld.converters import Converter, ConverterRegistry
from sqld.exceptions import CatalogSealed
from sqld.options import QueryOptions
from sqld.projector import QueryResponse
from sqld.raw import RawQuerySpec
from sqld.request import QueryRequest
from sqld.schema import RecordSchema, SchemaRegistry

logger = logging.getLogger(__name__)


class Catalog:
    """Schema and converter registries plus the raw statement cache.
    """

    def __init__(self, options: QueryOptions | None = None) -> None:
        self.options = options or QueryOptions()
        self.converters = ConverterRegistry()
        self.schemas = SchemaRegistry(self.converters)
        self._statements = LRUCache(maxsize=self.options.statement_cache_size)
        self._lock = threading.RLock()
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, record_type: type, table: str | None = None) -> RecordSchema:
        """Derive and register the schema of a dataclass record type."""
        with self._lock:
            if self._sealed:
                name = getattr(record_type, '__name__', record_type)
                raise CatalogSealed(f'cannot register {name}: catalog is sealed')
            return self.schemas.register(record_type, table)

    def register_converter(self, type_id: str, factory: Callable[[], Converter]) -> Converter:
        """Register a converter for a custom semantic type."""
        with self._lock:
            if self._sealed:
                raise CatalogSealed(f'cannot register converter {type_id}: catalog is sealed')
            return self.converters.register(type_id, factory)

    def lookup(self, record_type: type) -> RecordSchema:
        return self.schemas.lookup(record_type)

    def seal(self) -> None:
        """Make both registries read-only."""
        with self._lock:
            self.converters.seal()
            self.schemas.seal()
            self._sealed = True
        logger.debug(f'Catalog sealed with {len(self.schemas)} schemas '
                     f'and {len(self.converters)} converters')

    def raw_query(self, text: str, params: type, result: type) -> RawQuerySpec:
        """Get the prepared raw query for text and record types.

        Both schemas are looked up here, so an unregistered type fails
        before any statement runs.
        """
        cache_key = (text, params, result)
        spec = self._statements.get(cache_key)
        if spec is not None:
            logger.debug(f'Raw statement cache hit for {params.__name__}/{result.__name__}')
            return spec

        self.lookup(params)
        self.lookup(result)
        spec = RawQuerySpec(text, params, result)
        with self._lock:
            self._statements[cache_key] = spec
        logger.debug(f'Raw statement cache miss for {params.__name__}/{result.__name__}, '
                     f'{len(spec.placeholders)} placeholders')
        return spec

    def clear_cache(self) -> None:
        with self._lock:
            self._statements.clear()

    def execute(self, connection: Any, record_type: type,
                request: QueryRequest | dict[str, Any],
                ctx: QueryContext | None = None) -> QueryResponse:
        """Run a structured query. See `sqld.executor.execute`."""
        return executor.execute(self, connection, record_type, request, ctx)

    def execute_raw(self, connection: Any, params_type: type, result_type: type,
                    text: str, param_map: dict[str, Any] | None = None,
                    ctx: QueryContext | None = None) -> QueryResponse:
        """Run a raw named-parameter query. See `sqld.executor.execute_raw`."""
        return executor.execute_raw(self, connection, params_type, result_type, text,
                                    param_map, ctx)

    def __repr__(self) -> str:
        return (f'Catalog(schemas={len(self.schemas)}, converters={len(self.converters)}, '
                f'sealed={self._sealed})')
