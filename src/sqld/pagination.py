"""
Pagination calculator.

Turns a page-based request or a direct limit/offset pair into one
normalized window. Page-based requests take precedence when both are given.
"""
import logging
from dataclasses import dataclass
from typing import Any

from sqld.exceptions import ValidationError
from sqld.options import QueryOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PaginationRequest:
    """Page-based window request; None fields take their defaults."""
    page: int | None = None
    page_size: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'PaginationRequest':
        """Parse the `{page, pageSize}` wire shape."""
        if not isinstance(data, dict):
            raise ValidationError('pagination must be an object')
        return cls(page=_optional_int(data.get('page'), 'pagination.page'),
                   page_size=_optional_int(data.get('pageSize', data.get('page_size')),
                                           'pagination.pageSize'))


@dataclass(frozen=True, slots=True)
class Window:
    """Normalized limit/offset; None means not applied."""
    limit: int | None = None
    offset: int | None = None

    @property
    def unbounded(self) -> bool:
        return self.limit is None and self.offset is None


def _optional_int(value: Any, name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{name} must be an integer, got {type(value).__name__}')
    return value


def calculate(pagination: PaginationRequest | None = None, limit: int | None = None,
              offset: int | None = None, options: QueryOptions | None = None) -> Window:
    """Compute the effective window.

    >>> calculate(PaginationRequest(page=2, page_size=10))
    Window(limit=10, offset=10)
    >>> calculate(PaginationRequest(page=1, page_size=500))
    Window(limit=100, offset=0)
    >>> calculate(limit=5)
    Window(limit=5, offset=None)
    >>> calculate()
    Window(limit=None, offset=None)
    """
    options = options or QueryOptions()

    if pagination is not None:
        if limit is not None or offset is not None:
            logger.warning('Both pagination and limit/offset supplied; using pagination')
        page = 1 if pagination.page is None else _optional_int(pagination.page, 'page')
        page_size = (options.default_page_size if pagination.page_size is None
                     else _optional_int(pagination.page_size, 'page_size'))
        if page < 1:
            raise ValidationError(f'page must be at least 1, got {page}')
        if page_size < 1:
            raise ValidationError(f'page_size must be at least 1, got {page_size}')
        page_size = min(page_size, options.max_page_size)
        return Window(limit=page_size, offset=(page - 1) * page_size)

    limit = _optional_int(limit, 'limit')
    offset = _optional_int(offset, 'offset')
    if limit is not None and limit < 0:
        raise ValidationError(f'limit cannot be negative, got {limit}')
    if offset is not None and offset < 0:
        raise ValidationError(f'offset cannot be negative, got {offset}')
    return Window(limit=limit, offset=offset)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
