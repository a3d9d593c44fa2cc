"""
SingleCellExperiment: the composite single-cell container.

A SingleCellExperiment wraps a BioMatrix (features x samples, several
parallel assays, feature/sample metadata) and adds:

    - reduced dims: per-sample embeddings of any width
    - alt exps: nested experiments with other features on the same samples
    - conventional assay accessors (counts, logcounts, ...)
    - legacy size-factor and spike-in sets

Biological Context:
    A single-cell dataset is rarely a single matrix. Besides the raw counts
    there are normalized and log-transformed versions, PCA/UMAP coordinates
    computed from them, and measurements on other feature types (spike-in
    transcripts, antibody tags) taken from the same cells. All of these must
    stay aligned with the cells when cells are filtered or reordered.

Engineering Design:
    - Immutable: every mutator returns a new instance
    - Shared structure: registries are read-only mappings of references, so
      an update copies a dict of pointers, never the matrices or nested
      experiments themselves
    - Separate bookkeeping: internal tables are their own fields, never
      merged with feature_metadata/sample_metadata
    - Validated: every instance is built by _from_parts(), which runs the
      validity checker before returning

Examples:
    >>> import numpy as np
    >>> from cellexperiment import SingleCellExperiment
    >>>
    >>> counts = np.random.default_rng(0).poisson(5, size=(10, 10))
    >>> sce = SingleCellExperiment({"counts": counts})
    >>> sce = sce.with_logcounts(np.log2(sce.counts() + 1))
    >>> sce = sce.with_reduced_dims({"PCA": np.random.default_rng(1).normal(size=(10, 3))})
    >>> sce[:, :4].reduced_dim("PCA").shape
    (4, 3)
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from cellexperiment.core.alt_exps import AltExpMixin
from cellexperiment.core.assay_names import AssayNameMixin
from cellexperiment.core.biomatrix import BioMatrix
from cellexperiment.core.indexing import resolve_indexer, selects_all, split_key
from cellexperiment.core.internal import (
    CURRENT_VERSION,
    InternalColumnData,
    empty_row_internal,
    take_row_internal,
)
from cellexperiment.core.legacy import LegacyMixin
from cellexperiment.core.reduced_dims import ReducedDimMixin
from cellexperiment.core.registry import named_entries
from cellexperiment.core.validity import check_validity, validity_messages

logger = logging.getLogger(__name__)

__all__ = ['SingleCellExperiment']


def _default_ids(ids: Any, table: Optional[pd.DataFrame], n: int) -> pd.Index:
    if ids is not None:
        return ids if isinstance(ids, pd.Index) else pd.Index(ids)
    if table is not None:
        return table.index
    return pd.RangeIndex(n)


class SingleCellExperiment(ReducedDimMixin, AltExpMixin, AssayNameMixin, LegacyMixin):
    """
    Immutable single-cell container: assays + embeddings + alt exps.

    Attributes:
        base: Underlying BioMatrix (assays, ids, feature/sample metadata)
        row_internal: One row per feature; internal bookkeeping fields
        col_internal: One row per sample; internal fields plus the reduced
            dim and alt exp registries
        internal_metadata: Declared legacy set names ('spike_names',
            'size_factor_names')
        version: Schema version the object was created with
        main_exp_name: Optional label of the main experiment

    Invariants (see cellexperiment.core.validity):
        - row_internal has n_features rows, col_internal has n_samples rows
        - every reduced dim has n_samples rows
        - every alt exp has the parent's sample ids, in order
        - declared legacy sets have their internal fields
    """

    def __init__(
        self,
        assays: Optional[Mapping[str, Any]] = None,
        feature_ids: Any = None,
        sample_ids: Any = None,
        feature_metadata: Optional[pd.DataFrame] = None,
        sample_metadata: Optional[pd.DataFrame] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        reduced_dims: Union[Mapping[str, Any], Sequence[Any], None] = None,
        alt_exps: Union[Mapping[str, Any], Sequence[Any], None] = None,
        main_exp_name: Optional[str] = None,
    ):
        """
        Build an experiment from assay matrices.

        Args:
            assays: Mapping of assay name -> matrix (features x samples),
                all of identical shape
            feature_ids: Row ids; default feature_metadata.index, then 0..n-1
            sample_ids: Column ids; default sample_metadata.index, then 0..n-1
            feature_metadata: Feature annotations indexed by feature_ids
            sample_metadata: Sample annotations indexed by sample_ids
            metadata: Experiment-level annotations
            reduced_dims: Initial embeddings (see with_reduced_dims)
            alt_exps: Initial alternative experiments (see with_alt_exps)
            main_exp_name: Label of the main experiment

        Raises:
            TypeError / ValueError: If the base container is malformed
            DimensionMismatchError: If an embedding has the wrong row count
            ColumnMismatchError: If an alt exp has different columns
        """
        assays = dict(assays) if assays is not None else {}
        first = next(iter(assays.values()), None)
        n_rows, n_cols = first.shape if first is not None else (0, 0)

        base = BioMatrix(
            assays=assays,
            feature_ids=_default_ids(feature_ids, feature_metadata, n_rows),
            sample_ids=_default_ids(sample_ids, sample_metadata, n_cols),
            feature_metadata=feature_metadata,
            sample_metadata=sample_metadata,
            metadata=metadata,
        )
        self._set_parts(
            base=base,
            row_internal=empty_row_internal(base.n_features),
            col_internal=InternalColumnData.empty(base.n_samples),
            internal_metadata={},
            version=CURRENT_VERSION,
            main_exp_name=main_exp_name,
        )

        # Registries are validated against the freshly built base
        col_internal = self._col_internal
        if reduced_dims is not None:
            pairs = named_entries(reduced_dims)
            for name, value in pairs:
                self._check_reduced_dim(name, value)
            col_internal = col_internal.with_reduced_dims(dict(pairs))
        if alt_exps is not None:
            col_internal = col_internal.with_alt_exps({
                name: self._prepare_alt_exp(name, value, True)
                for name, value in named_entries(alt_exps)
            })
        self._col_internal = col_internal

        check_validity(self)

    def _set_parts(
        self,
        base: BioMatrix,
        row_internal: pd.DataFrame,
        col_internal: InternalColumnData,
        internal_metadata: Mapping[str, Any],
        version: tuple[int, ...],
        main_exp_name: Optional[str],
    ) -> None:
        self._base = base
        self._row_internal = row_internal
        self._col_internal = col_internal
        self._internal_metadata = MappingProxyType(dict(internal_metadata))
        self._version = tuple(version)
        self._main_exp_name = main_exp_name

    @classmethod
    def _from_parts(
        cls,
        base: BioMatrix,
        row_internal: Optional[pd.DataFrame] = None,
        col_internal: Optional[InternalColumnData] = None,
        internal_metadata: Optional[Mapping[str, Any]] = None,
        version: tuple[int, ...] = CURRENT_VERSION,
        main_exp_name: Optional[str] = None,
    ) -> SingleCellExperiment:
        """Assemble an experiment from its parts and validate it."""
        obj = cls.__new__(cls)
        obj._set_parts(
            base=base,
            row_internal=row_internal if row_internal is not None else empty_row_internal(base.n_features),
            col_internal=col_internal if col_internal is not None else InternalColumnData.empty(base.n_samples),
            internal_metadata=internal_metadata or {},
            version=version,
            main_exp_name=main_exp_name,
        )
        check_validity(obj)
        return obj

    def _replace(self, **changes: Any) -> SingleCellExperiment:
        parts = dict(
            base=self._base,
            row_internal=self._row_internal,
            col_internal=self._col_internal,
            internal_metadata=self._internal_metadata,
            version=self._version,
            main_exp_name=self._main_exp_name,
        )
        parts.update(changes)
        return type(self)._from_parts(**parts)

    def _with_col_internal(self, col_internal: InternalColumnData) -> SingleCellExperiment:
        return self._replace(col_internal=col_internal)

    @classmethod
    def from_biomatrix(cls, base: BioMatrix) -> SingleCellExperiment:
        """Wrap an existing BioMatrix with empty registries."""
        if not isinstance(base, BioMatrix):
            raise TypeError(f"base must be BioMatrix, got {type(base)}")
        return cls._from_parts(base)

    # --- structure ----------------------------------------------------------

    @property
    def base(self) -> BioMatrix:
        """Underlying rectangular container."""
        return self._base

    @property
    def row_internal(self) -> pd.DataFrame:
        return self._row_internal

    @property
    def col_internal(self) -> InternalColumnData:
        return self._col_internal

    @property
    def internal_metadata(self) -> Mapping[str, Any]:
        return self._internal_metadata

    @property
    def version(self) -> tuple[int, ...]:
        return self._version

    @property
    def main_exp_name(self) -> Optional[str]:
        return self._main_exp_name

    @property
    def feature_ids(self) -> pd.Index:
        return self._base.feature_ids

    @property
    def sample_ids(self) -> pd.Index:
        return self._base.sample_ids

    @property
    def feature_metadata(self) -> pd.DataFrame:
        return self._base.feature_metadata

    @property
    def sample_metadata(self) -> pd.DataFrame:
        return self._base.sample_metadata

    @property
    def metadata(self) -> Mapping[str, Any]:
        return self._base.metadata

    @property
    def assays(self) -> Mapping[str, Any]:
        return self._base.assays

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_features, n_samples)."""
        return self._base.shape

    @property
    def n_features(self) -> int:
        return self._base.n_features

    @property
    def n_samples(self) -> int:
        return self._base.n_samples

    # --- assays -------------------------------------------------------------

    def assay_names(self) -> list[str]:
        """Assay names in insertion order."""
        return self._base.assay_names

    def assay(self, which: Union[str, int] = 0) -> Any:
        """Retrieve one assay by name or position (NotFoundError / IndexOutOfRange)."""
        return self._base.assay(which)

    def with_assay(self, name: str, value: Any) -> SingleCellExperiment:
        """Add, replace or remove (value=None) one assay."""
        return self._replace(base=self._base.with_assay(name, value))

    def with_assays(self, assays: Mapping[str, Any]) -> SingleCellExperiment:
        """Replace the whole assay list."""
        return self._replace(base=self._base.with_assays(assays))

    # --- subsetting ---------------------------------------------------------

    def take(self, rows: Optional[np.ndarray] = None, cols: Optional[np.ndarray] = None) -> SingleCellExperiment:
        """
        Positional subset of features and/or samples.

        Rows subset the assays, feature metadata and row internal table.
        Columns subset the assays, sample metadata, column internal table,
        every reduced dim (rows) and every alt exp (columns).
        """
        return self._replace(
            base=self._base.take(rows, cols),
            row_internal=self._row_internal if rows is None else take_row_internal(self._row_internal, rows),
            col_internal=self._col_internal if cols is None else self._col_internal.take(cols),
        )

    def __getitem__(self, key: Any) -> SingleCellExperiment:
        """
        Subset with ``sce[rows, cols]`` or ``sce[rows]``.

        Selectors may be slices, ints, labels, boolean masks or integer
        positions; see cellexperiment.core.indexing.
        """
        row_sel, col_sel = split_key(key)
        rows = None if selects_all(row_sel) else resolve_indexer(row_sel, self.feature_ids, "feature")
        cols = None if selects_all(col_sel) else resolve_indexer(col_sel, self.sample_ids, "sample")
        return self.take(rows, cols)

    def select_features(self, mask: np.ndarray | pd.Series) -> SingleCellExperiment:
        """Subset features with a boolean mask."""
        if isinstance(mask, pd.Series):
            mask = mask.values
        return self.take(rows=resolve_indexer(np.asarray(mask, dtype=bool), self.feature_ids, "feature"))

    def select_samples(self, mask: np.ndarray | pd.Series) -> SingleCellExperiment:
        """Subset samples with a boolean mask."""
        if isinstance(mask, pd.Series):
            mask = mask.values
        return self.take(cols=resolve_indexer(np.asarray(mask, dtype=bool), self.sample_ids, "sample"))

    # --- renaming and annotation -------------------------------------------

    def with_sample_ids(self, sample_ids: Any) -> SingleCellExperiment:
        """Rename samples here and in every alt exp."""
        base = self._base.with_sample_ids(sample_ids)
        col_internal = self._col_internal
        if col_internal.alt_exps:
            col_internal = col_internal.with_alt_exps({
                name: alt.with_sample_ids(base.sample_ids)
                for name, alt in col_internal.alt_exps.items()
            })
        return self._replace(base=base, col_internal=col_internal)

    def with_feature_ids(self, feature_ids: Any) -> SingleCellExperiment:
        """Rename features of the main experiment (alt exps keep theirs)."""
        return self._replace(base=self._base.with_feature_ids(feature_ids))

    def with_sample_metadata(self, sample_metadata: pd.DataFrame) -> SingleCellExperiment:
        return self._replace(base=self._base.with_sample_metadata(sample_metadata))

    def with_feature_metadata(self, feature_metadata: pd.DataFrame) -> SingleCellExperiment:
        return self._replace(base=self._base.with_feature_metadata(feature_metadata))

    def with_metadata(self, metadata: Mapping[str, Any]) -> SingleCellExperiment:
        return self._replace(base=self._base.with_metadata(metadata))

    def with_main_exp_name(self, name: Optional[str]) -> SingleCellExperiment:
        return self._replace(main_exp_name=name)

    # --- validity and versioning --------------------------------------------

    def validity_messages(self) -> list[str]:
        """Diagnostics from the validity checker (empty when valid)."""
        return validity_messages(self)

    def is_valid(self) -> bool:
        return not validity_messages(self)

    def update_object(self) -> SingleCellExperiment:
        """
        Upgrade an object created under an older schema version.

        Missing registry fields are added empty and the version is bumped.
        Current objects are returned unchanged.
        """
        col_internal = self._col_internal
        if self._version >= CURRENT_VERSION and col_internal.reduced_dims is not None \
                and col_internal.alt_exps is not None:
            return self
        if col_internal.reduced_dims is None:
            col_internal = col_internal.with_reduced_dims({})
        if col_internal.alt_exps is None:
            col_internal = col_internal.with_alt_exps({})
        logger.info(f"Updated object from version {self._version} to {CURRENT_VERSION}")
        return self._replace(col_internal=col_internal, version=CURRENT_VERSION)

    def __getstate__(self) -> dict:
        state = self.__dict__.copy()
        state['_internal_metadata'] = dict(self._internal_metadata)
        return state

    def __setstate__(self, state: dict) -> None:
        state = dict(state)
        state['_internal_metadata'] = MappingProxyType(dict(state.get('_internal_metadata', {})))
        state['_version'] = tuple(state.get('_version', (0,)))
        state.setdefault('_main_exp_name', None)
        self.__dict__.update(state)
        check_validity(self)

    # --- copying and display --------------------------------------------------

    def copy(self, deep: bool = True) -> SingleCellExperiment:
        """
        Create a copy of this experiment.

        Args:
            deep: If True, copy every matrix, table and nested experiment.
                If False, share them (the default for all mutators).
        """
        if not deep:
            return self._replace()
        col_internal = self._col_internal
        reduced_dims = None
        if col_internal.reduced_dims is not None:
            reduced_dims = {k: v.copy() for k, v in col_internal.reduced_dims.items()}
        alt_exps = None
        if col_internal.alt_exps is not None:
            alt_exps = {k: v.copy(deep=True) for k, v in col_internal.alt_exps.items()}
        return self._replace(
            base=self._base.copy(deep=True),
            row_internal=self._row_internal.copy(),
            col_internal=InternalColumnData(
                table=col_internal.table.copy(),
                reduced_dims=reduced_dims,
                alt_exps=alt_exps,
            ),
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"SingleCellExperiment({self.n_features} features × {self.n_samples} samples)\n"
            f"  Assays: {self.assay_names()}\n"
            f"  Reduced dims: {self.reduced_dim_names()}\n"
            f"  Main exp name: {self._main_exp_name}\n"
            f"  Alt exps: {self.alt_exp_names()}\n"
            f"  Sample metadata columns: {list(self.sample_metadata.columns)}"
        )

    def __str__(self) -> str:
        """Human-readable string representation."""
        return self.__repr__()
