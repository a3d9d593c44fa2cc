"""
Conventional assay names and their typed accessors.

These are aliases into the base container's assay list, with no storage of
their own:

    counts      raw counts
    normcounts  normalized counts on the count scale
    logcounts   log-transformed normalized counts
    cpm         counts per million
    tpm         transcripts per million

Examples:
    >>> sce = sce.with_logcounts(np.log2(sce.counts() + 1))
    >>> sce.assay_names()
    ['counts', 'logcounts']
"""

from __future__ import annotations

from typing import Any, Callable

__all__ = [
    'AssayNameMixin',
    'COUNTS',
    'NORMCOUNTS',
    'LOGCOUNTS',
    'CPM',
    'TPM',
    'RESERVED_ASSAY_NAMES',
]

COUNTS = "counts"
NORMCOUNTS = "normcounts"
LOGCOUNTS = "logcounts"
CPM = "cpm"
TPM = "tpm"
RESERVED_ASSAY_NAMES = (COUNTS, NORMCOUNTS, LOGCOUNTS, CPM, TPM)


def _getter(assay_name: str) -> Callable[[Any], Any]:
    def getter(self):
        return self.assay(assay_name)

    getter.__name__ = assay_name
    getter.__doc__ = (
        f"The '{assay_name}' assay.\n\n"
        f"Raises:\n    NotFoundError: If the experiment has no '{assay_name}' assay\n"
    )
    return getter


def _setter(assay_name: str) -> Callable[[Any, Any], Any]:
    def setter(self, value):
        return self.with_assay(assay_name, value)

    setter.__name__ = f"with_{assay_name}"
    setter.__doc__ = (
        f"Return a new experiment with the '{assay_name}' assay set (None removes it).\n\n"
        f"Raises:\n    DimensionMismatchError: If value.shape differs from the experiment's shape\n"
    )
    return setter


class AssayNameMixin:
    """Typed getters/setters for the conventional assay names."""

    counts = _getter(COUNTS)
    with_counts = _setter(COUNTS)

    normcounts = _getter(NORMCOUNTS)
    with_normcounts = _setter(NORMCOUNTS)

    logcounts = _getter(LOGCOUNTS)
    with_logcounts = _setter(LOGCOUNTS)

    cpm = _getter(CPM)
    with_cpm = _setter(CPM)

    tpm = _getter(TPM)
    with_tpm = _setter(TPM)
