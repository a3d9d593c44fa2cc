"""
Internal metadata store for SingleCellExperiment.

Structural bookkeeping lives in tables that are separate fields from the
user-visible feature/sample metadata, so user columns can never overwrite it:

    row internal     one row per feature; spike-in flag columns
    column internal  one row per sample; size-factor columns plus the two
                     reserved composite fields (reduced dims, alt exps)
    internal meta    declared spike-in and size-factor set names

Both tables use a positional RangeIndex; identity of rows/columns comes from
the base container's ids.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

import numpy as np
import pandas as pd
import scipy.sparse as sp

__all__ = [
    'CURRENT_VERSION',
    'REGISTRY_VERSION',
    'RED_DIM_FIELD',
    'ALT_EXP_FIELD',
    'SIZE_FACTOR_FIELD',
    'SPIKE_FIELD',
    'size_factor_field',
    'spike_field',
    'take_rows',
    'empty_row_internal',
    'take_row_internal',
    'InternalColumnData',
]

# Schema version written by this release
CURRENT_VERSION: tuple[int, ...] = (1, 7, 1)
# Objects at or above this version must carry the reduced-dim and alt-exp fields
REGISTRY_VERSION: tuple[int, ...] = (1, 7, 1)

RED_DIM_FIELD = "reduced_dims"
ALT_EXP_FIELD = "alt_exps"
SIZE_FACTOR_FIELD = "size_factor"
SPIKE_FIELD = "is_spike"


def size_factor_field(type: Optional[str] = None) -> str:
    """Column-internal field holding the size factors of set ``type`` (None = default set)."""
    if type is None:
        return SIZE_FACTOR_FIELD
    return f"{SIZE_FACTOR_FIELD}_{type}"


def spike_field(type: str) -> str:
    """Row-internal field flagging rows of spike-in set ``type``."""
    return f"{SPIKE_FIELD}_{type}"


def take_rows(value: Any, positions: np.ndarray) -> Any:
    """Positional row subset of an embedding (ndarray, sparse matrix or DataFrame)."""
    if isinstance(value, pd.DataFrame):
        return value.iloc[positions]
    if sp.issparse(value) and value.format not in ('csr', 'csc'):
        value = value.tocsr()
    return value[positions]


def empty_row_internal(n: int) -> pd.DataFrame:
    return pd.DataFrame(index=pd.RangeIndex(n))


def take_row_internal(table: pd.DataFrame, positions: np.ndarray) -> pd.DataFrame:
    return table.iloc[positions].reset_index(drop=True)


def _freeze(mapping: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    if mapping is None or isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True, eq=False)
class InternalColumnData:
    """
    Per-sample internal table plus the two reserved registry fields.

    Attributes:
        table: One row per sample, scalar bookkeeping columns (size factors)
        reduced_dims: Read-only name -> embedding mapping, or None when the
            field is absent (objects older than REGISTRY_VERSION)
        alt_exps: Read-only name -> SingleCellExperiment mapping, or None when
            the field is absent

    Registry updates build a new mapping of references; matrices and nested
    experiments are shared with the previous instance, never copied.
    """
    table: pd.DataFrame
    reduced_dims: Optional[Mapping[str, Any]] = field(default_factory=dict)
    alt_exps: Optional[Mapping[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'reduced_dims', _freeze(self.reduced_dims))
        object.__setattr__(self, 'alt_exps', _freeze(self.alt_exps))

    @classmethod
    def empty(cls, n: int) -> InternalColumnData:
        """Internal column data for ``n`` samples with empty registries."""
        return cls(table=pd.DataFrame(index=pd.RangeIndex(n)))

    def __len__(self) -> int:
        return len(self.table)

    @property
    def fields(self) -> list[str]:
        """Names of all fields present, reserved composite fields included."""
        names = list(self.table.columns)
        if self.reduced_dims is not None:
            names.append(RED_DIM_FIELD)
        if self.alt_exps is not None:
            names.append(ALT_EXP_FIELD)
        return names

    def has_field(self, name: str) -> bool:
        return name in self.fields

    def take(self, positions: np.ndarray) -> InternalColumnData:
        """Subset samples: table rows, embedding rows and alt exp columns."""
        reduced_dims = None
        if self.reduced_dims is not None:
            reduced_dims = {k: take_rows(v, positions) for k, v in self.reduced_dims.items()}
        alt_exps = None
        if self.alt_exps is not None:
            alt_exps = {k: v.take(cols=positions) for k, v in self.alt_exps.items()}
        return InternalColumnData(
            table=self.table.iloc[positions].reset_index(drop=True),
            reduced_dims=reduced_dims,
            alt_exps=alt_exps,
        )

    def with_reduced_dims(self, reduced_dims: Optional[Mapping[str, Any]]) -> InternalColumnData:
        return replace(self, reduced_dims=reduced_dims)

    def with_alt_exps(self, alt_exps: Optional[Mapping[str, Any]]) -> InternalColumnData:
        return replace(self, alt_exps=alt_exps)

    def with_column(self, name: str, values: Any) -> InternalColumnData:
        """Add or replace a scalar column; ``values`` is matched by position."""
        table = self.table.copy(deep=False)
        table[name] = np.asarray(values)
        return replace(self, table=table)

    def without_columns(self, names: Iterable[str]) -> InternalColumnData:
        drop = [n for n in names if n in self.table.columns]
        if not drop:
            return self
        return replace(self, table=self.table.drop(columns=drop))

    def __getstate__(self) -> dict:
        return {
            'table': self.table,
            'reduced_dims': None if self.reduced_dims is None else dict(self.reduced_dims),
            'alt_exps': None if self.alt_exps is None else dict(self.alt_exps),
        }

    def __setstate__(self, state: dict) -> None:
        object.__setattr__(self, 'table', state['table'])
        object.__setattr__(self, 'reduced_dims', _freeze(state.get('reduced_dims')))
        object.__setattr__(self, 'alt_exps', _freeze(state.get('alt_exps')))
