"""
Column-wise concatenation of experiments.

combine_columns() joins experiments measured on the same features but on
different cells (e.g., several sequencing runs). Everything indexed by
sample is concatenated in argument order; everything indexed by feature is
taken from the first experiment and must agree across inputs.

Requirements on the inputs:
    - identical feature ids
    - identical assay, reduced dim and alt exp names (same order)
    - identical declared size-factor and spike-in sets
    - reduced dims of the same name have the same width
"""

from __future__ import annotations

import logging
from typing import Any, Sequence, Union

import numpy as np
import pandas as pd
import scipy.sparse as sp

from cellexperiment.core.biomatrix import BioMatrix
from cellexperiment.core.experiment import SingleCellExperiment
from cellexperiment.core.internal import InternalColumnData

logger = logging.getLogger(__name__)

__all__ = ['combine_columns']


def _hstack(blocks: list[Any]) -> Any:
    if any(sp.issparse(b) for b in blocks):
        return sp.hstack(blocks, format='csr')
    return np.hstack(blocks)


def _vstack(name: str, blocks: list[Any]) -> Any:
    widths = {b.shape[1] for b in blocks}
    if len(widths) != 1:
        raise ValueError(f"reduced dim '{name}' has differing widths across experiments: {sorted(widths)}")
    if all(isinstance(b, pd.DataFrame) for b in blocks):
        return pd.concat(blocks, axis=0, ignore_index=True)
    if any(sp.issparse(b) for b in blocks):
        return sp.vstack(blocks, format='csr')
    return np.vstack([np.asarray(b) for b in blocks])


def _check_compatible(first: SingleCellExperiment, other: SingleCellExperiment, position: int) -> None:
    checks = [
        ("feature ids", first.feature_ids.equals(other.feature_ids)),
        ("assay names", first.assay_names() == other.assay_names()),
        ("reduced dim names", first.reduced_dim_names() == other.reduced_dim_names()),
        ("alt exp names", first.alt_exp_names() == other.alt_exp_names()),
        ("size factor sets", tuple(first.internal_metadata.get('size_factor_names', ()))
            == tuple(other.internal_metadata.get('size_factor_names', ()))),
        ("spike-in sets", tuple(first.internal_metadata.get('spike_names', ()))
            == tuple(other.internal_metadata.get('spike_names', ()))),
    ]
    for label, ok in checks:
        if not ok:
            raise ValueError(f"experiment {position} has different {label} than experiment 0")


def combine_columns(
    *experiments: Union[SingleCellExperiment, Sequence[SingleCellExperiment]],
) -> SingleCellExperiment:
    """
    Concatenate experiments along samples.

    Args:
        *experiments: Experiments to join, or a single list of them

    Returns:
        New experiment with all samples in argument order; alt exps are
        combined recursively

    Raises:
        ValueError: If the experiments are not compatible (see module docstring)

    Examples:
        >>> merged = combine_columns(run1, run2)
        >>> merged.n_samples == run1.n_samples + run2.n_samples
        True
    """
    if len(experiments) == 1 and isinstance(experiments[0], (list, tuple)):
        experiments = tuple(experiments[0])
    if not experiments:
        raise ValueError("combine_columns() needs at least one experiment")

    first = experiments[0]
    for position, other in enumerate(experiments[1:], start=1):
        _check_compatible(first, other, position)

    sample_ids = first.sample_ids.append([e.sample_ids for e in experiments[1:]])
    base = BioMatrix(
        assays={
            name: _hstack([e.assay(name) for e in experiments])
            for name in first.assay_names()
        },
        feature_ids=first.feature_ids,
        sample_ids=sample_ids,
        feature_metadata=first.feature_metadata,
        sample_metadata=pd.concat([e.sample_metadata for e in experiments], axis=0).set_axis(sample_ids, axis=0),
        metadata=first.metadata,
    )

    reduced_dims = {
        name: _vstack(name, [e.reduced_dim(name, with_dimnames=False) for e in experiments])
        for name in first.reduced_dim_names()
    }
    alt_exps = {
        name: combine_columns(*[e.alt_exp(name, with_coldata=False) for e in experiments])
        for name in first.alt_exp_names()
    }
    col_internal = InternalColumnData(
        table=pd.concat([e.col_internal.table for e in experiments], axis=0, ignore_index=True),
        reduced_dims=reduced_dims,
        alt_exps=alt_exps,
    )

    logger.info(f"Combined {len(experiments)} experiments into {len(sample_ids)} samples")
    return SingleCellExperiment._from_parts(
        base=base,
        row_internal=first.row_internal,
        col_internal=col_internal,
        internal_metadata=first.internal_metadata,
        main_exp_name=first.main_exp_name,
    )
