"""
Selector resolution for row and column subsetting.

Every subsetting path in the package turns user selectors into positional
integer arrays first, so that assays, metadata tables, internal tables and
embeddings can all be sliced with the same positions.

Accepted selectors:
    - None or ``slice(None)``: everything
    - slice: positional slice
    - int: a single position (the axis is kept, never dropped)
    - str: a single label
    - boolean mask (list, ndarray, Series) of the axis length
    - integer positions (negative values count from the end)
    - labels (list, ndarray, pd.Index) looked up against the axis ids
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

__all__ = ['resolve_indexer', 'split_key', 'selects_all']


def split_key(key: Any) -> tuple[Any, Any]:
    """Split ``obj[key]`` into (row_selector, col_selector)."""
    if isinstance(key, tuple):
        if len(key) == 1:
            return key[0], None
        if len(key) != 2:
            raise IndexError(f"expected at most 2 selectors, got {len(key)}")
        return key[0], key[1]
    return key, None


def selects_all(selector: Any) -> bool:
    """True for None or a bare slice(None), which leave the axis untouched."""
    if selector is None:
        return True
    return (
        isinstance(selector, slice)
        and selector.start is None
        and selector.stop is None
        and selector.step is None
    )


def _lookup_labels(values: np.ndarray, labels: pd.Index, axis: str) -> np.ndarray:
    if labels.is_unique:
        positions = labels.get_indexer(values)
    else:
        # First occurrence wins for duplicated ids
        first: dict = {}
        for pos, label in enumerate(labels):
            first.setdefault(label, pos)
        positions = np.array([first.get(v, -1) for v in values], dtype=np.intp)
    missing = [v for v, p in zip(values, positions) if p < 0]
    if missing:
        raise KeyError(f"{axis} labels not found: {missing[:5]}")
    return np.asarray(positions, dtype=np.intp)


def resolve_indexer(selector: Any, labels: pd.Index, axis: str = "axis") -> np.ndarray:
    """
    Convert a selector into positional indices along one axis.

    Args:
        selector: Any of the selector forms listed in the module docstring
        labels: Ids along this axis (feature_ids or sample_ids)
        axis: Axis name used in error messages

    Returns:
        1-D ``np.intp`` array of positions in selection order

    Raises:
        IndexError: If an integer position is out of bounds
        KeyError: If a label is not present
        ValueError: If a boolean mask has the wrong length

    Examples:
        >>> ids = pd.Index(["a", "b", "c"])
        >>> resolve_indexer([True, False, True], ids)
        array([0, 2])
        >>> resolve_indexer(["c", "a"], ids)
        array([2, 0])
    """
    n = len(labels)

    if selector is None:
        return np.arange(n, dtype=np.intp)
    if isinstance(selector, slice):
        return np.arange(n, dtype=np.intp)[selector]
    if isinstance(selector, (int, np.integer)) and not isinstance(selector, (bool, np.bool_)):
        selector = [int(selector)]
    elif isinstance(selector, str):
        selector = [selector]

    if isinstance(selector, (pd.Series, pd.Index)):
        values = selector.to_numpy()
    else:
        values = np.asarray(selector)

    if values.ndim != 1:
        raise ValueError(f"{axis} selector must be 1-dimensional, got shape {values.shape}")

    if values.dtype == bool:
        if len(values) != n:
            raise ValueError(
                f"{axis} mask length ({len(values)}) must match {axis} length ({n})"
            )
        return np.flatnonzero(values).astype(np.intp)

    if len(values) == 0:
        return np.empty(0, dtype=np.intp)

    if np.issubdtype(values.dtype, np.integer):
        positions = values.astype(np.intp)
        out_of_bounds = (positions >= n) | (positions < -n)
        if out_of_bounds.any():
            raise IndexError(
                f"{axis} index {positions[out_of_bounds][0]} out of bounds for length {n}"
            )
        return np.where(positions < 0, positions + n, positions)

    return _lookup_labels(values, labels, axis)
