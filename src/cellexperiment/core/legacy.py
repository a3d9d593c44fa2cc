"""
Compatibility layer for size factors and spike-in sets.

Both features predate the current container design and are deprecated:
size factors belong in the sample metadata and spike-ins in an alternative
experiment (see split_alt_exps). Existing callers keep working unchanged.

Storage is plain internal bookkeeping. The methods here only translate set
names into internal field names and keep the declared-name lists in sync:

    size factors  column internal field "size_factor" (default set) or
                  "size_factor_<type>", type listed in size_factor_names
    spike-ins     row internal bool field "is_spike_<type>", type listed in
                  spike_names

Warning convention:
    warnings.warn() -- user-facing (deprecation, best-effort fallback)
    logger.debug()  -- bookkeeping changes
"""

from __future__ import annotations

import logging
import warnings
from typing import Any, Optional

import numpy as np

from cellexperiment.config import get_config
from cellexperiment.core.internal import size_factor_field, spike_field
from cellexperiment.errors import DimensionMismatchError, NotFoundError

logger = logging.getLogger(__name__)

__all__ = ['LegacyMixin']


def _deprecated(what: str, instead: str) -> None:
    if get_config().warn_deprecated:
        warnings.warn(f"{what} is deprecated; {instead}", DeprecationWarning, stacklevel=3)


class LegacyMixin:
    """Deprecated size-factor and spike-in accessors for SingleCellExperiment."""

    # --- size factors -----------------------------------------------------

    def size_factor_names(self) -> list[str]:
        """Declared (named) size-factor sets, in insertion order."""
        _deprecated("size_factor_names()", "store size factors in sample_metadata")
        return list(self.internal_metadata.get('size_factor_names', ()))

    def size_factors(self, type: Optional[str] = None) -> np.ndarray:
        """
        Per-sample size factors of set ``type`` (default set when omitted).

        When the default set is requested but absent and exactly one named
        set exists, that set is returned with a warning.

        Raises:
            NotFoundError: If the requested set does not exist
        """
        _deprecated("size_factors()", "use sample_metadata['sizeFactor']")
        table = self.col_internal.table
        names = list(self.internal_metadata.get('size_factor_names', ()))
        field = size_factor_field(type)

        if field in table.columns and (type is None or type in names):
            return table[field].to_numpy()
        if type is None and len(names) == 1:
            warnings.warn(
                f"no default size factors, returning size factors for set '{names[0]}'",
                UserWarning,
                stacklevel=2,
            )
            return table[size_factor_field(names[0])].to_numpy()
        label = "default size factors" if type is None else f"size factors for set '{type}'"
        raise NotFoundError(f"{label} not found; declared sets: {names}")

    def with_size_factors(self, values: Any, type: Optional[str] = None):
        """
        Store size factors for set ``type`` (default set when omitted); None removes.

        Raises:
            DimensionMismatchError: If len(values) differs from n_samples
        """
        _deprecated("with_size_factors()", "use with_sample_metadata()")
        names = list(self.internal_metadata.get('size_factor_names', ()))
        field = size_factor_field(type)

        if values is None:
            col_internal = self.col_internal.without_columns([field])
            if type is not None and type in names:
                names.remove(type)
        else:
            values = np.asarray(values, dtype=float)
            if values.ndim != 1 or len(values) != self.n_samples:
                raise DimensionMismatchError(
                    f"got {values.size} size factors for {self.n_samples} samples"
                )
            col_internal = self.col_internal.with_column(field, values)
            if type is not None and type not in names:
                names.append(type)

        logger.debug(f"Updated size factor field '{field}'")
        return self._replace(
            col_internal=col_internal,
            internal_metadata={**self.internal_metadata, 'size_factor_names': tuple(names)},
        )

    def clear_size_factors(self):
        """Remove the default and every named size-factor set."""
        _deprecated("clear_size_factors()", "drop the sample_metadata column instead")
        names = self.internal_metadata.get('size_factor_names', ())
        fields = [size_factor_field(None)] + [size_factor_field(n) for n in names]
        return self._replace(
            col_internal=self.col_internal.without_columns(fields),
            internal_metadata={**self.internal_metadata, 'size_factor_names': ()},
        )

    # --- spike-ins --------------------------------------------------------

    def spike_names(self) -> list[str]:
        """Declared spike-in sets, in insertion order."""
        _deprecated("spike_names()", "move spike-ins to an alt exp")
        return list(self.internal_metadata.get('spike_names', ()))

    def is_spike(self, type: Optional[str] = None) -> np.ndarray:
        """
        Boolean per-feature flags for spike-in set ``type``.

        With ``type`` omitted, the union of every declared set.

        Raises:
            NotFoundError: If ``type`` is not a declared spike-in set
        """
        _deprecated("is_spike()", "move spike-ins to an alt exp")
        names = self.internal_metadata.get('spike_names', ())
        if type is None:
            flags = np.zeros(self.n_features, dtype=bool)
            for name in names:
                flags |= self.row_internal[spike_field(name)].to_numpy(dtype=bool)
            return flags
        if type not in names:
            raise NotFoundError(f"spike-in set '{type}' not found; declared sets: {list(names)}")
        return self.row_internal[spike_field(type)].to_numpy(dtype=bool)

    def with_spike(self, flags: Any, type: str):
        """
        Declare spike-in set ``type`` from per-feature flags; None removes the set.

        Raises:
            DimensionMismatchError: If len(flags) differs from n_features
        """
        _deprecated("with_spike()", "use split_alt_exps()")
        names = list(self.internal_metadata.get('spike_names', ()))
        field = spike_field(type)
        row_internal = self.row_internal.copy(deep=False)

        if flags is None:
            row_internal = row_internal.drop(columns=[field], errors='ignore')
            if type in names:
                names.remove(type)
        else:
            flags = np.asarray(flags, dtype=bool)
            if flags.ndim != 1 or len(flags) != self.n_features:
                raise DimensionMismatchError(
                    f"got {flags.size} spike-in flags for {self.n_features} features"
                )
            row_internal[field] = flags
            if type not in names:
                names.append(type)

        logger.debug(f"Updated spike-in field '{field}'")
        return self._replace(
            row_internal=row_internal,
            internal_metadata={**self.internal_metadata, 'spike_names': tuple(names)},
        )

    def clear_spikes(self):
        """Remove every spike-in set."""
        _deprecated("clear_spikes()", "move spike-ins to an alt exp")
        names = self.internal_metadata.get('spike_names', ())
        row_internal = self.row_internal.drop(
            columns=[spike_field(n) for n in names], errors='ignore'
        )
        return self._replace(
            row_internal=row_internal,
            internal_metadata={**self.internal_metadata, 'spike_names': ()},
        )
