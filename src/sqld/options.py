from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pandas as pd
import pyarrow as pa

__all__ = [
    'QueryOptions',
    'iterdict_data_loader',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
]


def iterdict_data_loader(rows: list[dict], keys: list[str], **kwargs) -> list[dict]:
    """Minimal data loader.

    Returns the projected rows unchanged, which is the documented response
    shape.
    """
    if not rows:
        return []
    return list(rows)


def _empty_dataframe(keys: list[str]) -> pd.DataFrame:
    """Create empty DataFrame that keeps the projected columns."""
    return pd.DataFrame(columns=keys)


def pandas_numpy_data_loader(rows: list[dict], keys: list[str], **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader using NumPy.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    """
    if not rows:
        return _empty_dataframe(keys)
    return pd.DataFrame.from_records(rows, columns=keys)


def pandas_pyarrow_data_loader(rows: list[dict], keys: list[str], **kwargs) -> pd.DataFrame:
    """PyArrow-based pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    """
    if not rows:
        return _empty_dataframe(keys)

    columns_data = [[row.get(key) for row in rows] for key in keys]
    return pa.table(columns_data, names=keys).to_pandas(types_mapper=pd.ArrowDtype)


@dataclass
class QueryOptions:
    """Options

    - default_page_size: page size used when a pagination request omits one (default: 10)
    - max_page_size: upper bound applied to requested page sizes (default: 100)
    - statement_cache_size: number of prepared raw statements kept per catalog (default: 128)
    - timeout: per-statement deadline in seconds, 0 disables it (default: 0)
    - data_loader: callable shaping projected rows into the response data
    """
    default_page_size: int = 10
    max_page_size: int = 100
    statement_cache_size: int = 128
    timeout: float = 0
    data_loader: Callable[..., Any] | None = None

    def __post_init__(self):
        if self.max_page_size < 1:
            raise ValueError('max_page_size must be at least 1')
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ValueError(f'default_page_size must be between 1 and {self.max_page_size}')
        if self.statement_cache_size < 1:
            raise ValueError('statement_cache_size must be at least 1')
        if self.timeout < 0:
            raise ValueError('timeout cannot be negative')
        if self.data_loader is None:
            self.data_loader = iterdict_data_loader
