"""
Core data structures for single-cell experiments.

1. BioMatrix: Parallel assay matrices with feature/sample metadata
2. SingleCellExperiment: BioMatrix + reduced dims + alt exps + legacy sets
3. Validity checker: Structural invariants shared by every constructor

Design Philosophy:
    - Immutability: All operations return new instances (functional style)
    - Shared structure: Unchanged matrices are referenced, not copied
    - Validation: Every instance passes the validity checker

Examples:
    >>> from cellexperiment.core import SingleCellExperiment
    >>> sce = SingleCellExperiment({"counts": counts})
    >>> sce = sce.with_reduced_dim("PCA", pcs)
    >>> subset = sce[:, sce.sample_metadata["batch"] == "A"]
"""

from cellexperiment.core.biomatrix import BioMatrix
from cellexperiment.core.combine import combine_columns
from cellexperiment.core.experiment import SingleCellExperiment
from cellexperiment.core.internal import CURRENT_VERSION, InternalColumnData
from cellexperiment.core.validity import check_validity, is_valid, validity_messages

__all__ = [
    'BioMatrix',
    'SingleCellExperiment',
    'InternalColumnData',
    'CURRENT_VERSION',
    'combine_columns',
    'check_validity',
    'is_valid',
    'validity_messages',
]
