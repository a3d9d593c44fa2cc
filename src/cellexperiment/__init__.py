"""
cellexperiment - Validated in-memory containers for single-cell data

Assays, per-cell embeddings and alternative experiments kept consistent
through subsetting, renaming and assignment.
"""

__version__ = "0.1.0"

from cellexperiment.config import ExperimentConfig, get_config, set_config
from cellexperiment.core.biomatrix import BioMatrix
from cellexperiment.core.combine import combine_columns
from cellexperiment.core.experiment import SingleCellExperiment
from cellexperiment.core.validity import check_validity, is_valid, validity_messages
from cellexperiment.errors import (
    ColumnMismatchError,
    DimensionMismatchError,
    ExperimentError,
    IndexOutOfRange,
    NotFoundError,
    ValidityError,
)

__all__ = [
    "BioMatrix",
    "SingleCellExperiment",
    "combine_columns",
    "check_validity",
    "is_valid",
    "validity_messages",
    "ExperimentConfig",
    "get_config",
    "set_config",
    "ExperimentError",
    "DimensionMismatchError",
    "ColumnMismatchError",
    "NotFoundError",
    "IndexOutOfRange",
    "ValidityError",
]
