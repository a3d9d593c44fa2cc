"""
Reduced-dimension registry: named per-sample coordinate matrices.

Each embedding (PCA, t-SNE, UMAP, ...) is a matrix with one row per sample
and any number of columns; widths may differ between embeddings. Subsetting
samples slices every embedding's rows; subsetting features never touches
them.

Examples:
    >>> sce = sce.with_reduced_dim("PCA", pcs)        # pcs: n_samples x 10
    >>> sce.reduced_dim_names()
    ['PCA']
    >>> sce[:, :4].reduced_dim("PCA").shape
    (4, 10)
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union

import pandas as pd

from cellexperiment.core.registry import lookup, named_entries, renamed
from cellexperiment.errors import DimensionMismatchError

logger = logging.getLogger(__name__)

__all__ = ['ReducedDimMixin']


class ReducedDimMixin:
    """Reduced-dimension accessors for SingleCellExperiment."""

    def _reduced_dim_registry(self) -> Mapping[str, Any]:
        return self.col_internal.reduced_dims or {}

    def _check_reduced_dim(self, name: str, value: Any) -> None:
        shape = getattr(value, 'shape', None)
        if shape is None or len(shape) != 2:
            raise TypeError(
                f"reduced dim '{name}' must be a 2-D matrix or DataFrame, got {type(value)}"
            )
        if shape[0] != self.n_samples:
            raise DimensionMismatchError(
                f"reduced dim '{name}' has {shape[0]} rows, expected one per sample ({self.n_samples})"
            )

    def reduced_dim(self, which: Union[str, int] = 0, with_dimnames: bool = True) -> Any:
        """
        Retrieve one embedding by name or position.

        Args:
            which: Embedding name, or position in insertion order
            with_dimnames: Label DataFrame rows with the current sample ids

        Raises:
            NotFoundError: If no embedding has that name
            IndexOutOfRange: If the position is beyond the number of embeddings
        """
        value = lookup(self._reduced_dim_registry(), which, "reduced dim")
        if with_dimnames and isinstance(value, pd.DataFrame):
            value = value.set_axis(self.sample_ids, axis=0)
        return value

    def reduced_dims(self, with_dimnames: bool = True) -> Mapping[str, Any]:
        """All embeddings, in insertion order, as a read-only mapping."""
        return MappingProxyType({
            name: self.reduced_dim(name, with_dimnames=with_dimnames)
            for name in self._reduced_dim_registry()
        })

    def reduced_dim_names(self) -> list[str]:
        """Embedding names in insertion order."""
        return list(self._reduced_dim_registry())

    def with_reduced_dim(self, name: str, value: Any):
        """
        Add, replace or remove (value=None) one embedding.

        Replacing keeps the entry's position; new entries go last.

        Raises:
            DimensionMismatchError: If the row count differs from n_samples
        """
        registry = dict(self._reduced_dim_registry())
        if value is None:
            if name not in registry:
                return self
            del registry[name]
            logger.debug(f"Removed reduced dim '{name}'")
        else:
            self._check_reduced_dim(name, value)
            registry[name] = value
            logger.debug(f"Set reduced dim '{name}' with shape {tuple(value.shape)}")
        return self._with_col_internal(self.col_internal.with_reduced_dims(registry))

    def without_reduced_dim(self, name: str):
        """Remove one embedding (no-op if absent)."""
        return self.with_reduced_dim(name, None)

    def with_reduced_dims(self, entries: Union[Mapping[str, Any], Sequence[Any], None]):
        """
        Replace the whole registry.

        Either every entry validates and the new registry is installed, or an
        error is raised and nothing changes.

        Args:
            entries: Mapping, sequence of matrices, or sequence of (name, matrix)
                pairs; unnamed entries get positional names ("unnamed1", ...)
        """
        pairs = named_entries(entries)
        for name, value in pairs:
            self._check_reduced_dim(name, value)
        logger.debug(f"Replaced reduced dims with {[name for name, _ in pairs]}")
        return self._with_col_internal(self.col_internal.with_reduced_dims(dict(pairs)))

    def with_reduced_dim_names(self, names: Sequence[str]):
        """Rename every embedding, keeping order."""
        registry = renamed(self._reduced_dim_registry(), names, "reduced dim")
        return self._with_col_internal(self.col_internal.with_reduced_dims(registry))
