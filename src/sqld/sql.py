"""
Statement text handling.

Both query styles produce a `Statement`: SQL text whose parameters are
`$k` positional markers (1-based) plus the ordered argument tuple. Execution
strategies translate the markers into their driver's own style:

    $1, $2   -> ?1, ?2            sqlite3 (numbered qmark)
    $1, $2   -> %(p1)s, %(p2)s    psycopg (named pyformat)
    $1, $2   -> (:p1), (:p2)      SQLAlchemy text()

Translation is literal-aware: markers inside quoted strings or quoted
identifiers are left alone.
"""
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from sqld.exceptions import RewriteError


class TokenType(Enum):
    """Token types identified during SQL scanning."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENTIFIER = auto()
    MARKER = auto()


@dataclass(slots=True)
class Token:
    type: TokenType
    text: str
    index: int | None = None


@dataclass(frozen=True, slots=True)
class Statement:
    """Parameterized SQL with `$k` markers and its ordered arguments."""
    text: str
    args: tuple[Any, ...] = ()

    def __iter__(self):
        # allows `sql, args = statement`
        return iter((self.text, self.args))


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*')
    |(?P<ident>"(?:[^"]|"")*")
    |(?P<marker>\$(?P<index>\d+))
""", re.VERBOSE)


def tokenize_sql(sql: str) -> list[Token]:
    """Split SQL into literals, markers and plain text in a single pass.
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()
        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start]))

        if match.group('string'):
            tokens.append(Token(TokenType.STRING_LITERAL, match.group(0)))
        elif match.group('ident'):
            tokens.append(Token(TokenType.QUOTED_IDENTIFIER, match.group(0)))
        else:
            tokens.append(Token(TokenType.MARKER, match.group(0), int(match.group('index'))))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:]))

    return tokens


def marker_indexes(sql: str) -> list[int]:
    """Return the marker indexes in order of appearance.

    >>> marker_indexes("select $1, '$2', $1, $3")
    [1, 1, 3]
    """
    return [t.index for t in tokenize_sql(sql) if t.type == TokenType.MARKER]


def translate_markers(statement: Statement, render: Callable[[int], str],
                      escape: Callable[[str], str] | None = None) -> str:
    """Rewrite `$k` markers with `render(k)`.

    Args:
        statement: Statement to translate
        render: Produces the driver marker for a 1-based index
        escape: Applied to every non-marker fragment, for drivers that give
            characters such as `%` or `:` a special meaning

    Raises
        RewriteError: If a marker refers to an argument that does not exist
    """
    count = len(statement.args)
    parts = []
    for token in tokenize_sql(statement.text):
        if token.type == TokenType.MARKER:
            if not 1 <= token.index <= count:
                raise RewriteError(
                    f'marker {token.text} has no argument ({count} supplied)')
            parts.append(render(token.index))
        elif escape is not None:
            parts.append(escape(token.text))
        else:
            parts.append(token.text)
    return ''.join(parts)


def quote_identifier(identifier: str) -> str:
    """Safely quote a table or column name with standard SQL double quotes.

    >>> quote_identifier('is_active')
    '"is_active"'
    >>> quote_identifier('we"ird')
    '"we""ird"'
    """
    return '"' + identifier.replace('"', '""') + '"'


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
