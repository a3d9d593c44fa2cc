"""
Alternative-experiment registry: nested experiments sharing the parent's columns.

An alternative experiment holds measurements for a different feature set
(spike-ins, antibody-derived tags, CRISPR guides, ...) on exactly the same
cells as the main experiment. Each entry is itself a SingleCellExperiment
with its own rows, assays and feature metadata; only the columns are tied to
the parent:

    - storing requires the same number of columns and identical sample ids
    - subsetting the parent's columns subsets every alt exp the same way
    - renaming the parent's samples renames every alt exp's samples
    - feature metadata of an alt exp is never touched by the parent

Column annotation is kept on the parent. alt_exp(..., with_coldata=True)
attaches the parent's sample metadata to the returned experiment, and
with_alt_exp() strips columns duplicating the parent's before storage, so the
two copies cannot drift apart.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from cellexperiment.config import get_config
from cellexperiment.core.biomatrix import BioMatrix
from cellexperiment.core.internal import InternalColumnData, take_row_internal
from cellexperiment.core.registry import lookup, named_entries, renamed
from cellexperiment.errors import ColumnMismatchError, DimensionMismatchError

logger = logging.getLogger(__name__)

__all__ = ['AltExpMixin']


def _merge_coldata(parent: pd.DataFrame, own: pd.DataFrame) -> pd.DataFrame:
    """Parent columns first, then the alt exp's own; own columns win on name clashes."""
    own = own.set_axis(parent.index, axis=0)
    merged = pd.concat([parent, own], axis=1)
    return merged.loc[:, ~merged.columns.duplicated(keep='last')]


class AltExpMixin:
    """Alternative-experiment accessors for SingleCellExperiment."""

    def _alt_exp_registry(self) -> Mapping[str, Any]:
        return self.col_internal.alt_exps or {}

    def _prepare_alt_exp(self, name: str, value: Any, with_coldata: bool):
        from cellexperiment.core.experiment import SingleCellExperiment

        if isinstance(value, BioMatrix):
            value = SingleCellExperiment.from_biomatrix(value)
        if not isinstance(value, SingleCellExperiment):
            raise TypeError(
                f"alt exp '{name}' must be a SingleCellExperiment or BioMatrix, got {type(value)}"
            )
        if value.n_samples != self.n_samples:
            raise ColumnMismatchError(
                f"alt exp '{name}' has {value.n_samples} columns, expected {self.n_samples}"
            )
        if not value.sample_ids.equals(self.sample_ids):
            raise ColumnMismatchError(
                f"alt exp '{name}' sample ids must match the parent's sample ids in order"
            )

        if with_coldata and len(value.sample_metadata.columns):
            parent = self.sample_metadata
            duplicated = [
                col for col in value.sample_metadata.columns
                if col in parent.columns and value.sample_metadata[col].equals(parent[col])
            ]
            if duplicated:
                value = value.with_sample_metadata(value.sample_metadata.drop(columns=duplicated))
        return value

    def alt_exp(self, which: Union[str, int] = 0, with_coldata: Optional[bool] = None):
        """
        Retrieve one alternative experiment by name or position.

        The result always carries the parent's current sample ids.

        Args:
            which: Alt exp name, or position in insertion order
            with_coldata: Prepend the parent's sample metadata columns
                (default from ExperimentConfig.alt_exp_with_coldata)

        Raises:
            NotFoundError: If no alt exp has that name
            IndexOutOfRange: If the position is beyond the number of alt exps
        """
        if with_coldata is None:
            with_coldata = get_config().alt_exp_with_coldata
        alt = lookup(self._alt_exp_registry(), which, "alt exp")
        if not alt.sample_ids.equals(self.sample_ids):
            alt = alt.with_sample_ids(self.sample_ids)
        if with_coldata:
            alt = alt.with_sample_metadata(_merge_coldata(self.sample_metadata, alt.sample_metadata))
        return alt

    def alt_exps(self, with_coldata: Optional[bool] = None) -> dict[str, Any]:
        """All alternative experiments, in insertion order."""
        return {
            name: self.alt_exp(name, with_coldata=with_coldata)
            for name in self._alt_exp_registry()
        }

    def alt_exp_names(self) -> list[str]:
        """Alternative experiment names in insertion order."""
        return list(self._alt_exp_registry())

    def with_alt_exp(self, name: str, value: Any, with_coldata: bool = True):
        """
        Add, replace or remove (value=None) one alternative experiment.

        Args:
            name: Registry name
            value: SingleCellExperiment (or BioMatrix, coerced) with the
                parent's columns, or None to remove
            with_coldata: Strip sample metadata columns that duplicate the
                parent's (same name, equal values) before storage

        Raises:
            ColumnMismatchError: If column count or sample ids differ from the parent's
        """
        registry = dict(self._alt_exp_registry())
        if value is None:
            if name not in registry:
                return self
            del registry[name]
            logger.debug(f"Removed alt exp '{name}'")
        else:
            registry[name] = self._prepare_alt_exp(name, value, with_coldata)
            logger.debug(f"Set alt exp '{name}' with {registry[name].n_features} features")
        return self._with_col_internal(self.col_internal.with_alt_exps(registry))

    def without_alt_exp(self, name: str):
        """Remove one alternative experiment (no-op if absent)."""
        return self.with_alt_exp(name, None)

    def without_alt_exps(self):
        """Remove every alternative experiment."""
        return self._with_col_internal(self.col_internal.with_alt_exps({}))

    def with_alt_exps(
        self,
        entries: Union[Mapping[str, Any], Sequence[Any], None],
        with_coldata: bool = True,
    ):
        """
        Replace the whole registry; all entries validate or nothing changes.

        Args:
            entries: Mapping, sequence of experiments, or sequence of
                (name, experiment) pairs; unnamed entries get positional names
        """
        registry = {
            name: self._prepare_alt_exp(name, value, with_coldata)
            for name, value in named_entries(entries)
        }
        logger.debug(f"Replaced alt exps with {list(registry)}")
        return self._with_col_internal(self.col_internal.with_alt_exps(registry))

    def with_alt_exp_names(self, names: Sequence[str]):
        """Rename every alternative experiment, keeping order."""
        registry = renamed(self._alt_exp_registry(), names, "alt exp")
        return self._with_col_internal(self.col_internal.with_alt_exps(registry))

    def split_alt_exps(self, grouping: Any, main: Any = None):
        """
        Move groups of rows out of the main experiment into alt exps.

        Each distinct label in ``grouping`` other than ``main`` becomes an
        alternative experiment (in sorted label order) holding those rows of
        every assay, of the feature metadata and of the row internal table,
        in their original order. Rows with a missing label (None/NaN) never
        become an alt exp; they stay in the main experiment only when ``main``
        is not given, and are dropped otherwise.

        Args:
            grouping: One label per feature
            main: Label of the rows that stay in the main experiment; only
                those rows are kept. When None and some labels are missing,
                only the unlabelled rows stay; when None and every row is
                labelled, the first label in sorted order stays.

        Returns:
            New experiment holding the main rows, with the new alt exps
            appended to (or replacing same-named entries of) the registry and
            main_exp_name set to ``main``

        Raises:
            DimensionMismatchError: If grouping length differs from n_features

        Examples:
            >>> labels = ["spike"] * 3 + ["gene"] * 7
            >>> out = sce.split_alt_exps(labels)
            >>> out.n_features, out.alt_exp_names()
            (7, ['spike'])
        """
        from cellexperiment.core.experiment import SingleCellExperiment

        if isinstance(grouping, (pd.Series, pd.Index)):
            labels = grouping.to_numpy(dtype=object)
        else:
            labels = np.asarray(grouping, dtype=object)
        if labels.ndim != 1 or len(labels) != self.n_features:
            raise DimensionMismatchError(
                f"grouping has {len(labels)} labels for {self.n_features} features"
            )

        missing = pd.isna(labels)
        levels = sorted({label for label in labels[~missing]}, key=str)
        if main is None:
            # Unlabelled rows stay only when no main label was requested
            main_mask = missing.copy()
            if not missing.any() and levels:
                main = levels[0]
                main_mask = np.array([label == main for label in labels], dtype=bool)
        else:
            main_mask = ~missing & np.array([label == main for label in labels], dtype=bool)

        registry = dict(self._alt_exp_registry())
        empty_coldata = pd.DataFrame(index=self.sample_ids)
        for level in levels:
            if main is not None and level == main:
                continue
            rows = np.flatnonzero(~missing & np.array([label == level for label in labels], dtype=bool))
            base = self.base.take(rows=rows).with_sample_metadata(empty_coldata).with_metadata({})
            registry[str(level)] = SingleCellExperiment._from_parts(
                base=base,
                row_internal=take_row_internal(self.row_internal, rows),
                col_internal=InternalColumnData.empty(self.n_samples),
                internal_metadata={
                    'spike_names': tuple(self.internal_metadata.get('spike_names', ())),
                    'size_factor_names': (),
                },
            )

        out = self.take(rows=np.flatnonzero(main_mask))
        out = out._with_col_internal(out.col_internal.with_alt_exps(registry))
        if main is not None:
            out = out.with_main_exp_name(str(main))
        logger.info(
            f"Split {self.n_features} features into main ({out.n_features}) "
            f"and {len(levels) - (main in levels)} alt exp(s)"
        )
        return out

    def swap_alt_exp(self, name: str, saved: Optional[str] = None, with_coldata: bool = True):
        """
        Promote an alternative experiment to the main experiment.

        Args:
            name: Alt exp to promote
            saved: Name under which the current main experiment (without its
                alt exps) is stored in the result; defaults to main_exp_name,
                and the old main is dropped when both are None
            with_coldata: Carry the parent's sample metadata over to the
                promoted experiment

        Returns:
            The promoted experiment with the remaining alt exps (plus the old
            main under ``saved``) and main_exp_name set to ``name``
        """
        alt = self.alt_exp(name, with_coldata=with_coldata)
        if saved is None:
            saved = self.main_exp_name

        registry = {k: v for k, v in self._alt_exp_registry().items() if k != name}
        out = alt._with_col_internal(alt.col_internal.with_alt_exps(registry))
        if saved is not None:
            old_main = self.without_alt_exps()
            out = out.with_alt_exp(saved, old_main)
        logger.info(f"Swapped alt exp '{name}' into main (old main saved as {saved!r})")
        return out.with_main_exp_name(name)
