"""
Result projection and the response envelope.
"""
from dataclasses import dataclass, field
from typing import Any

from sqld.schema import RecordSchema


def project(records: list[Any], schema: RecordSchema,
            keys: list[str] | None = None) -> list[dict[str, Any]]:
    """Convert typed records into dicts keyed by external key.

    Args:
        records: Scanned records, in row order
        schema: Schema of the records' type
        keys: External keys to expose; every mapped attribute when None

    Returns
        One dict per record, in the same order
    """
    if keys is None:
        attributes = list(schema)
    else:
        attributes = [schema.attribute(key) for key in keys]
    return [{attr.key: getattr(record, attr.name) for attr in attributes}
            for record in records]


@dataclass
class QueryResponse:
    """`{data: [...], error?: str}`"""
    data: Any = field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_error(cls, exc: BaseException) -> 'QueryResponse':
        return cls(data=[], error=str(exc))

    def to_dict(self) -> dict[str, Any]:
        result = {'data': self.data}
        if self.error is not None:
            result['error'] = self.error
        return result

    def __len__(self) -> int:
        return len(self.data)
