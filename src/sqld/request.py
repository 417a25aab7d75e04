"""
Structured query request and its wire shape.

    {
        "select": ["id", "name"],
        "where": {"active": true},
        "orderBy": [{"field": "name", "desc": false}],
        "pagination": {"page": 1, "pageSize": 10},
        "limit": null,
        "offset": null
    }
"""
from dataclasses import dataclass, field
from typing import Any

from sqld.exceptions import ValidationError
from sqld.pagination import PaginationRequest


@dataclass(frozen=True, slots=True)
class OrderBy:
    field: str
    desc: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'OrderBy':
        if not isinstance(data, dict) or not isinstance(data.get('field'), str):
            raise ValidationError('orderBy entries must be objects with a string "field"')
        desc = data.get('desc', False)
        if not isinstance(desc, bool):
            raise ValidationError(f'orderBy.desc must be a boolean for field {data["field"]}')
        return cls(field=data['field'], desc=desc)


@dataclass
class QueryRequest:
    """Fields to return, equality filters, ordering and window."""
    select: list[str] = field(default_factory=list)
    where: dict[str, Any] = field(default_factory=dict)
    order_by: list[OrderBy] = field(default_factory=list)
    pagination: PaginationRequest | None = None
    limit: int | None = None
    offset: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'QueryRequest':
        """Parse a decoded JSON request body.

        Raises
            ValidationError: If the payload does not have the request shape
        """
        if not isinstance(data, dict):
            raise ValidationError('request must be an object')

        select = data.get('select') or []
        if not isinstance(select, list) or not all(isinstance(s, str) for s in select):
            raise ValidationError('select must be a list of strings')

        where = data.get('where') or {}
        if not isinstance(where, dict):
            raise ValidationError('where must be an object')

        order_by = data.get('orderBy', data.get('order_by')) or []
        if not isinstance(order_by, list):
            raise ValidationError('orderBy must be a list')

        pagination = data.get('pagination')
        return cls(
            select=list(select),
            where=dict(where),
            order_by=[OrderBy.from_dict(o) for o in order_by],
            pagination=PaginationRequest.from_dict(pagination) if pagination is not None else None,
            limit=data.get('limit'),
            offset=data.get('offset'),
        )
