"""
Base rectangular container for expression measurements.

BioMatrix holds one or more same-shaped assay matrices together with row
(feature) and column (sample) identifiers and annotation tables. It is the
plain rectangular layer that SingleCellExperiment builds upon: it knows
nothing about embeddings, alternative experiments or internal bookkeeping.

Biological Context:
    Expression matrices are the fundamental data structure in genomics:
    - Rows = features (genes, transcripts, spike-in controls)
    - Columns = samples (cells)
    - Assays = parallel measurements of the same features x samples grid
      (raw counts, normalized counts, log-expression, ...)

Engineering Design:
    - Immutable: Operations return new instances (functional style)
    - Type-safe: NumPy/SciPy sparse matrices for assays, Pandas for metadata
    - Memory-efficient: Unchanged assays are shared between instances
    - Validated: Constructor checks shape consistency

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from cellexperiment.core.biomatrix import BioMatrix
    >>>
    >>> counts = np.array([[10, 20], [30, 40]])
    >>> matrix = BioMatrix(
    ...     assays={"counts": counts},
    ...     feature_ids=pd.Index(["ENSG001", "ENSG002"]),
    ...     sample_ids=pd.Index(["CELL_001", "CELL_002"]),
    ...     sample_metadata=pd.DataFrame(
    ...         {"batch": ["A", "B"]}, index=["CELL_001", "CELL_002"]
    ...     ),
    ... )
    >>> batch_a = matrix.select_samples(matrix.sample_metadata["batch"] == "A")
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

import numpy as np
import pandas as pd
import scipy.sparse as sp

from cellexperiment.core.indexing import resolve_indexer
from cellexperiment.errors import DimensionMismatchError, IndexOutOfRange, NotFoundError

__all__ = ['BioMatrix', 'take_matrix']


def take_matrix(matrix: Any, rows: Optional[np.ndarray] = None, cols: Optional[np.ndarray] = None) -> Any:
    """
    Positional 2-D subset of a dense or sparse matrix.

    None on an axis keeps the whole axis without copying it.
    """
    if rows is None and cols is None:
        return matrix
    if sp.issparse(matrix):
        if matrix.format not in ('csr', 'csc'):
            matrix = matrix.tocsr()
        if rows is not None:
            matrix = matrix[rows, :]
        if cols is not None:
            matrix = matrix[:, cols]
        return matrix
    if rows is not None and cols is not None:
        return matrix[np.ix_(rows, cols)]
    if rows is not None:
        return matrix[rows, :]
    return matrix[:, cols]


def _is_matrix(value: Any) -> bool:
    return isinstance(value, np.ndarray) or sp.issparse(value)


class BioMatrix:
    """
    Immutable container for parallel assay matrices + feature/sample metadata.

    Attributes:
        assays: Read-only ordered mapping of assay name -> matrix (features x samples)
        feature_ids: Row identifiers (e.g., Ensembl gene IDs)
        sample_ids: Column identifiers (e.g., cell barcodes)
        feature_metadata: Feature annotations, indexed by feature_ids
        sample_metadata: Sample annotations, indexed by sample_ids
        metadata: Free-form experiment-level annotations

    Shape Invariants:
        - every assay has shape (len(feature_ids), len(sample_ids))
        - feature_metadata.index equals feature_ids
        - sample_metadata.index equals sample_ids
    """

    def __init__(
        self,
        assays: Optional[Mapping[str, Any]],
        feature_ids: pd.Index,
        sample_ids: pd.Index,
        feature_metadata: Optional[pd.DataFrame] = None,
        sample_metadata: Optional[pd.DataFrame] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        """
        Initialize BioMatrix with validation.

        Args:
            assays: Mapping of assay name -> 2-D ndarray or scipy.sparse matrix.
                May be empty, in which case the shape comes from the ids.
            feature_ids: Row identifiers
            sample_ids: Column identifiers
            feature_metadata: DataFrame indexed by feature_ids (empty if None)
            sample_metadata: DataFrame indexed by sample_ids (empty if None)
            metadata: Experiment-level annotations

        Raises:
            ValueError: If shapes are inconsistent or indices don't match
            TypeError: If data types are incorrect
        """
        assays = dict(assays) if assays is not None else {}

        # Type validation
        if not isinstance(feature_ids, pd.Index):
            raise TypeError(f"feature_ids must be pd.Index, got {type(feature_ids)}")
        if not isinstance(sample_ids, pd.Index):
            raise TypeError(f"sample_ids must be pd.Index, got {type(sample_ids)}")
        if feature_metadata is None:
            feature_metadata = pd.DataFrame(index=feature_ids)
        if sample_metadata is None:
            sample_metadata = pd.DataFrame(index=sample_ids)
        if not isinstance(feature_metadata, pd.DataFrame):
            raise TypeError(f"feature_metadata must be pd.DataFrame, got {type(feature_metadata)}")
        if not isinstance(sample_metadata, pd.DataFrame):
            raise TypeError(f"sample_metadata must be pd.DataFrame, got {type(sample_metadata)}")

        expected = (len(feature_ids), len(sample_ids))
        for name, matrix in assays.items():
            if not isinstance(name, str):
                raise TypeError(f"assay names must be str, got {type(name)}")
            if not _is_matrix(matrix):
                raise TypeError(
                    f"assay '{name}' must be np.ndarray or scipy.sparse matrix, got {type(matrix)}"
                )
            if matrix.ndim != 2:
                raise ValueError(f"assay '{name}' must be 2D, got shape {matrix.shape}")
            if tuple(matrix.shape) != expected:
                raise ValueError(
                    f"assay '{name}' shape {tuple(matrix.shape)} must match "
                    f"(n_features, n_samples) = {expected}"
                )

        # Index validation
        if not feature_metadata.index.equals(feature_ids):
            raise ValueError(
                "feature_metadata.index must match feature_ids exactly. "
                f"Got {len(feature_metadata.index)} metadata rows for {len(feature_ids)} features."
            )
        if not sample_metadata.index.equals(sample_ids):
            raise ValueError(
                "sample_metadata.index must match sample_ids exactly. "
                f"Got {len(sample_metadata.index)} metadata rows for {len(sample_ids)} samples."
            )

        # Store as private attributes (immutability by convention)
        self._assays = MappingProxyType(assays)
        self._feature_ids = feature_ids
        self._sample_ids = sample_ids
        self._feature_metadata = feature_metadata
        self._sample_metadata = sample_metadata
        self._metadata = MappingProxyType(dict(metadata) if metadata is not None else {})

    @property
    def assays(self) -> Mapping[str, Any]:
        """Read-only mapping of assay name -> matrix."""
        return self._assays

    @property
    def assay_names(self) -> list[str]:
        """Assay names in insertion order."""
        return list(self._assays)

    @property
    def feature_ids(self) -> pd.Index:
        """Row identifiers (genes, transcripts, etc.)."""
        return self._feature_ids

    @property
    def sample_ids(self) -> pd.Index:
        """Column identifiers (cells)."""
        return self._sample_ids

    @property
    def feature_metadata(self) -> pd.DataFrame:
        """Annotations for features."""
        return self._feature_metadata

    @property
    def sample_metadata(self) -> pd.DataFrame:
        """Annotations for samples."""
        return self._sample_metadata

    @property
    def metadata(self) -> Mapping[str, Any]:
        """Experiment-level annotations."""
        return self._metadata

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_features, n_samples)."""
        return (len(self._feature_ids), len(self._sample_ids))

    @property
    def n_features(self) -> int:
        """Number of features."""
        return len(self._feature_ids)

    @property
    def n_samples(self) -> int:
        """Number of samples."""
        return len(self._sample_ids)

    def _replace(self, **changes: Any) -> BioMatrix:
        parts = dict(
            assays=self._assays,
            feature_ids=self._feature_ids,
            sample_ids=self._sample_ids,
            feature_metadata=self._feature_metadata,
            sample_metadata=self._sample_metadata,
            metadata=self._metadata,
        )
        parts.update(changes)
        return BioMatrix(**parts)

    def assay(self, which: Union[str, int] = 0) -> Any:
        """
        Retrieve one assay by name or position.

        Raises:
            NotFoundError: If no assay has that name
            IndexOutOfRange: If the position is beyond the number of assays
        """
        if isinstance(which, str):
            if which not in self._assays:
                raise NotFoundError(f"assay '{which}' not found; available: {self.assay_names}")
            return self._assays[which]
        names = self.assay_names
        if not -len(names) <= which < len(names):
            raise IndexOutOfRange(
                f"assay index {which} out of range for {len(names)} assay(s)"
            )
        return self._assays[names[which]]

    def with_assay(self, name: str, matrix: Any) -> BioMatrix:
        """
        Return a new BioMatrix with one assay added, replaced or removed.

        Replacing keeps the assay's position; new assays go last; None removes.

        Raises:
            DimensionMismatchError: If the matrix shape differs from self.shape
        """
        assays = dict(self._assays)
        if matrix is None:
            assays.pop(name, None)
            return self._replace(assays=assays)
        if not _is_matrix(matrix):
            raise TypeError(
                f"assay '{name}' must be np.ndarray or scipy.sparse matrix, got {type(matrix)}"
            )
        if tuple(matrix.shape) != self.shape:
            raise DimensionMismatchError(
                f"assay '{name}' shape {tuple(matrix.shape)} must match {self.shape}"
            )
        assays[name] = matrix
        return self._replace(assays=assays)

    def with_assays(self, assays: Mapping[str, Any]) -> BioMatrix:
        """Return a new BioMatrix whose assay list is replaced wholesale."""
        for name, matrix in assays.items():
            if _is_matrix(matrix) and tuple(matrix.shape) != self.shape:
                raise DimensionMismatchError(
                    f"assay '{name}' shape {tuple(matrix.shape)} must match {self.shape}"
                )
        return self._replace(assays=dict(assays))

    def take(self, rows: Optional[np.ndarray] = None, cols: Optional[np.ndarray] = None) -> BioMatrix:
        """
        Positional subset on both axes.

        Args:
            rows: Integer positions of features to keep (None keeps all)
            cols: Integer positions of samples to keep (None keeps all)
        """
        feature_ids = self._feature_ids if rows is None else self._feature_ids[rows]
        sample_ids = self._sample_ids if cols is None else self._sample_ids[cols]
        feature_metadata = (
            self._feature_metadata if rows is None else self._feature_metadata.iloc[rows]
        )
        sample_metadata = (
            self._sample_metadata if cols is None else self._sample_metadata.iloc[cols]
        )
        return BioMatrix(
            assays={name: take_matrix(m, rows, cols) for name, m in self._assays.items()},
            feature_ids=feature_ids,
            sample_ids=sample_ids,
            feature_metadata=feature_metadata,
            sample_metadata=sample_metadata,
            metadata=self._metadata,
        )

    def select_samples(self, mask: np.ndarray | pd.Series) -> BioMatrix:
        """
        Subset matrix by samples (columns).

        Args:
            mask: Boolean array/Series indicating which samples to keep.
                If Series, uses values and ignores index.

        Raises:
            ValueError: If mask length doesn't match n_samples
        """
        if isinstance(mask, pd.Series):
            mask = mask.values
        return self.take(cols=resolve_indexer(np.asarray(mask, dtype=bool), self._sample_ids, "sample"))

    def select_features(self, mask: np.ndarray | pd.Series) -> BioMatrix:
        """
        Subset matrix by features (rows).

        Args:
            mask: Boolean array/Series indicating which features to keep.
                If Series, uses values and ignores index.

        Raises:
            ValueError: If mask length doesn't match n_features
        """
        if isinstance(mask, pd.Series):
            mask = mask.values
        return self.take(rows=resolve_indexer(np.asarray(mask, dtype=bool), self._feature_ids, "feature"))

    def with_feature_ids(self, feature_ids: Any) -> BioMatrix:
        """Return a new BioMatrix with renamed features."""
        feature_ids = pd.Index(feature_ids)
        if len(feature_ids) != self.n_features:
            raise DimensionMismatchError(
                f"got {len(feature_ids)} feature ids for {self.n_features} features"
            )
        return self._replace(
            feature_ids=feature_ids,
            feature_metadata=self._feature_metadata.set_axis(feature_ids, axis=0),
        )

    def with_sample_ids(self, sample_ids: Any) -> BioMatrix:
        """Return a new BioMatrix with renamed samples."""
        sample_ids = pd.Index(sample_ids)
        if len(sample_ids) != self.n_samples:
            raise DimensionMismatchError(
                f"got {len(sample_ids)} sample ids for {self.n_samples} samples"
            )
        return self._replace(
            sample_ids=sample_ids,
            sample_metadata=self._sample_metadata.set_axis(sample_ids, axis=0),
        )

    def with_feature_metadata(self, feature_metadata: pd.DataFrame) -> BioMatrix:
        """Replace feature annotations; rows are matched by position."""
        if len(feature_metadata) != self.n_features:
            raise DimensionMismatchError(
                f"feature_metadata has {len(feature_metadata)} rows for {self.n_features} features"
            )
        return self._replace(feature_metadata=feature_metadata.set_axis(self._feature_ids, axis=0))

    def with_sample_metadata(self, sample_metadata: pd.DataFrame) -> BioMatrix:
        """Replace sample annotations; rows are matched by position."""
        if len(sample_metadata) != self.n_samples:
            raise DimensionMismatchError(
                f"sample_metadata has {len(sample_metadata)} rows for {self.n_samples} samples"
            )
        return self._replace(sample_metadata=sample_metadata.set_axis(self._sample_ids, axis=0))

    def with_metadata(self, metadata: Mapping[str, Any]) -> BioMatrix:
        """Replace experiment-level annotations."""
        return self._replace(metadata=metadata)

    def copy(self, deep: bool = True) -> BioMatrix:
        """
        Create a copy of this matrix.

        Args:
            deep: If True, copy all arrays. If False, share arrays (faster but mutable)
        """
        if not deep:
            return self._replace()
        return BioMatrix(
            assays={name: m.copy() for name, m in self._assays.items()},
            feature_ids=self._feature_ids.copy(),
            sample_ids=self._sample_ids.copy(),
            feature_metadata=self._feature_metadata.copy(),
            sample_metadata=self._sample_metadata.copy(),
            metadata=dict(self._metadata),
        )

    def __getstate__(self) -> dict:
        # mappingproxy cannot be pickled
        state = self.__dict__.copy()
        state['_assays'] = dict(self._assays)
        state['_metadata'] = dict(self._metadata)
        return state

    def __setstate__(self, state: dict) -> None:
        state = dict(state)
        state['_assays'] = MappingProxyType(dict(state['_assays']))
        state['_metadata'] = MappingProxyType(dict(state['_metadata']))
        self.__dict__.update(state)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"BioMatrix({self.n_features} features × {self.n_samples} samples)\n"
            f"  Assays: {self.assay_names}\n"
            f"  Sample metadata columns: {list(self._sample_metadata.columns)}"
        )

    def __str__(self) -> str:
        """Human-readable string representation."""
        return self.__repr__()
