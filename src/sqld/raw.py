"""
Named-parameter raw query processor.

Caller-written SQL names its parameters with `{{name}}` tokens:

    SELECT id FROM t WHERE dept = {{d}} AND sal >= {{m}}

Processing runs three steps:

    text -> extract -> validate_and_order -> rewrite -> Statement

1. `extract` collects the distinct identifiers in order of first appearance.
2. `validate_and_order` checks each supplied value against the parameter
   record's declared type and lays the values out in identifier order.
   Identifiers are matched against the parameter record's storage keys. A
   declared but unsupplied parameter becomes an explicit NULL, which lets
   SQL written as `({{x}} IS NULL OR col = {{x}})` treat it as optional.
3. `rewrite` replaces every occurrence of `{{name}}` with `$k`, k being the
   1-based position of `name` in the identifier list.

The rewritten text and the ordered arguments are all that reaches the
driver; parameter values never enter the SQL text.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from sqld.builder import bind_value
from sqld.converters import ConverterRegistry
from sqld.exceptions import RewriteError, ValidationError
from sqld.schema import RecordSchema
from sqld.sql import Statement, TokenType, tokenize_sql
from sqld.types import Kind, is_compatible, runtime_type

logger = logging.getLogger(__name__)

__all__ = [
    'RawQuerySpec',
    'extract',
    'validate_and_order',
    'rewrite',
]

_PLACEHOLDER = re.compile(r'\{\{([a-zA-Z0-9_]+)\}\}')

# anything that still looks like a placeholder after rewriting
_MALFORMED = re.compile(r'\{\{[^{}]*\}\}|\{\{|\}\}')


def extract(text: str) -> list[str]:
    """Find the distinct `{{name}}` identifiers in order of first appearance.

    >>> extract('... {{a}} ... {{b}} ... {{a}} ...')
    ['a', 'b']
    >>> extract('select 1')
    []
    """
    return list(dict.fromkeys(_PLACEHOLDER.findall(text)))


def validate_and_order(param_map: dict[str, Any], param_schema: RecordSchema,
                       identifiers: list[str],
                       converters: ConverterRegistry | None = None) -> list[Any]:
    """Check supplied values and order them to match `identifiers`.

    Raises
        ValidationError: If an identifier has no declaration in the parameter
            schema or a value's type differs from the declared type
    """
    args = []
    for name in identifiers:
        attr = param_schema.by_storage(name)
        if attr is None:
            raise ValidationError(f'no type information for parameter {name}')

        if name not in param_map:
            args.append(None)
            continue

        value = param_map[name]
        if attr.type.kind is Kind.ANY:
            args.append(value)
            continue
        actual = runtime_type(value, converters)
        if not is_compatible(actual, attr.type, attr.nullable):
            raise ValidationError(
                f'parameter {name} type mismatch: got {actual}, want {attr.type}')
        args.append(bind_value(attr, value, converters))

    return args


def rewrite(text: str, identifiers: list[str]) -> str:
    """Replace each `{{name}}` with `$k` for its 1-based identifier index.

    >>> rewrite('WHERE a = {{a}} AND b = {{b}} OR a2 = {{a}}', ['a', 'b'])
    'WHERE a = $1 AND b = $2 OR a2 = $1'

    Raises
        RewriteError: If a placeholder is not in `identifiers` or a malformed
            placeholder survives outside string literals
    """
    positions = {name: index for index, name in enumerate(identifiers, start=1)}

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in positions:
            raise RewriteError(f'placeholder {{{{{name}}}}} has no parameter position')
        return f'${positions[name]}'

    rewritten = _PLACEHOLDER.sub(substitute, text)

    for token in tokenize_sql(rewritten):
        if token.type == TokenType.SQL_TEXT:
            leftover = _MALFORMED.search(token.text)
            if leftover:
                raise RewriteError(f'malformed placeholder {leftover.group(0)!r}')

    return rewritten


@dataclass(frozen=True)
class RawQuerySpec:
    """Raw SQL text with its parameter and result record types.

    Placeholders are extracted once, when the spec is constructed.
    """
    text: str
    params: type
    result: type
    placeholders: tuple[str, ...] = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'placeholders', tuple(extract(self.text)))

    def bind(self, param_schema: RecordSchema, param_map: dict[str, Any] | None,
             converters: ConverterRegistry | None = None) -> Statement:
        """Validate `param_map` and produce the executable statement."""
        param_map = param_map or {}
        identifiers = list(self.placeholders)
        args = validate_and_order(param_map, param_schema, identifiers, converters)
        unused = set(param_map) - set(identifiers)
        if unused:
            logger.debug(f'Ignoring parameters without placeholders: {sorted(unused)}')
        return Statement(rewrite(self.text, identifiers), tuple(args))

    def prepare(self, catalog, param_map: dict[str, Any] | None) -> Statement:
        """Bind against the parameter schema registered in `catalog`."""
        return self.bind(catalog.lookup(self.params), param_map, catalog.converters)
