"""
Structural validity checks for SingleCellExperiment.

validity_messages() is a pure function over the full object state. It runs
every check and returns one message per violation, so a single call reports
everything that is wrong. check_validity() turns a non-empty result into a
ValidityError; the experiment's construction funnel calls it, which makes
every constructor, mutator, subset, rename and unpickle fail instead of
returning a corrupted object.

Checks, in order:
    1. row internal table has one row per feature
    2. column internal table has one row per sample
    3. reduced-dim and alt-exp fields exist (only for version >= REGISTRY_VERSION)
    4. every reduced dim has one row per sample
    5. every alt exp has the parent's columns, same count and same ids in order
    6. every declared spike-in set has its row internal field
    7. every declared size-factor set has its column internal field
    8. declared spike-in / size-factor names are unique

Checks 6 and 7 are not version-gated even though 3 is. Old objects carrying
dangling legacy names are therefore rejected while old objects lacking the
registry fields are accepted.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING

from cellexperiment.core.internal import (
    ALT_EXP_FIELD,
    RED_DIM_FIELD,
    REGISTRY_VERSION,
    size_factor_field,
    spike_field,
)
from cellexperiment.errors import ValidityError

if TYPE_CHECKING:
    from cellexperiment.core.experiment import SingleCellExperiment

logger = logging.getLogger(__name__)

__all__ = ['validity_messages', 'is_valid', 'check_validity']


def _duplicates(names) -> list[str]:
    return sorted(name for name, count in Counter(names).items() if count > 1)


def validity_messages(exp: SingleCellExperiment) -> list[str]:
    """
    Run every structural check on ``exp``.

    Returns:
        Diagnostic messages in check order; an empty list means valid
    """
    msg: list[str] = []
    n_features, n_samples = exp.n_features, exp.n_samples
    col_internal = exp.col_internal

    if len(exp.row_internal) != n_features:
        msg.append(
            f"'row_internal' has {len(exp.row_internal)} rows, "
            f"expected one per feature ({n_features})"
        )
    if len(col_internal) != n_samples:
        msg.append(
            f"'col_internal' has {len(col_internal)} rows, "
            f"expected one per sample ({n_samples})"
        )

    if tuple(exp.version) >= REGISTRY_VERSION:
        if not col_internal.has_field(RED_DIM_FIELD):
            msg.append(f"no '{RED_DIM_FIELD}' field in 'col_internal'")
        if not col_internal.has_field(ALT_EXP_FIELD):
            msg.append(f"no '{ALT_EXP_FIELD}' field in 'col_internal'")

    for name, value in (col_internal.reduced_dims or {}).items():
        n_rows = value.shape[0]
        if n_rows != n_samples:
            msg.append(
                f"reduced dim '{name}' has {n_rows} rows, expected one per sample ({n_samples})"
            )

    for name, alt in (col_internal.alt_exps or {}).items():
        if alt.n_samples != n_samples:
            msg.append(
                f"alt exp '{name}' has {alt.n_samples} columns, expected {n_samples}"
            )
        elif not alt.sample_ids.equals(exp.sample_ids):
            msg.append(f"alt exp '{name}' sample ids differ from the parent's sample ids")

    spike_names = exp.internal_metadata.get('spike_names', ())
    for name in spike_names:
        if spike_field(name) not in exp.row_internal.columns:
            msg.append(f"no field specifying rows belonging to spike-in set '{name}'")

    sf_names = exp.internal_metadata.get('size_factor_names', ())
    for name in sf_names:
        if size_factor_field(name) not in col_internal.table.columns:
            msg.append(f"no field specifying size factors for set '{name}'")

    dup = _duplicates(spike_names)
    if dup:
        msg.append(f"duplicated spike-in set names: {dup}")
    dup = _duplicates(sf_names)
    if dup:
        msg.append(f"duplicated size factor set names: {dup}")

    return msg


def is_valid(exp: SingleCellExperiment) -> bool:
    """True when ``exp`` passes every structural check."""
    return not validity_messages(exp)


def check_validity(exp: SingleCellExperiment) -> None:
    """
    Raise if ``exp`` violates any structural invariant.

    Raises:
        ValidityError: Carrying every diagnostic message
    """
    messages = validity_messages(exp)
    if messages:
        logger.debug(f"Validity check failed with {len(messages)} message(s)")
        raise ValidityError(messages)
