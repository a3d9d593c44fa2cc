"""
Exception hierarchy for experiment containers.

Registry-level errors are raised at the call that breaks the contract, before
any new container is built. ValidityError is the last line of defence: it is
raised when a freshly assembled container fails the global consistency check,
which only happens through low-level manipulation of internal fields.

All errors derive from ExperimentError, and each also derives from the
builtin exception a caller would naturally catch (KeyError for missing names,
IndexError for bad positions, ValueError for shape problems).
"""

from __future__ import annotations

from typing import Iterable

__all__ = [
    'ExperimentError',
    'DimensionMismatchError',
    'ColumnMismatchError',
    'NotFoundError',
    'IndexOutOfRange',
    'ValidityError',
]


class ExperimentError(Exception):
    """Base class for all container errors."""
    pass


class DimensionMismatchError(ExperimentError, ValueError):
    """Raised when a supplied structure's row or column count disagrees with the container."""
    pass


class ColumnMismatchError(ExperimentError, ValueError):
    """Raised when an alternative experiment's columns differ in count or identity from its parent."""
    pass


class NotFoundError(ExperimentError, KeyError):
    """Raised when a requested name is absent from a registry."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep messages readable
        return str(self.args[0]) if self.args else ''


class IndexOutOfRange(ExperimentError, IndexError):
    """Raised when a positional registry index exceeds the registry size."""
    pass


class ValidityError(ExperimentError):
    """
    Raised when a container violates one or more structural invariants.

    Attributes:
        messages: Every diagnostic produced by the validity checker, in check order
    """

    def __init__(self, messages: Iterable[str]):
        self.messages = list(messages)
        summary = "; ".join(self.messages) if self.messages else "unknown violation"
        super().__init__(f"invalid SingleCellExperiment: {summary}")
