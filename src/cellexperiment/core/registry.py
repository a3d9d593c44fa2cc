"""
Helpers shared by the named, ordered registries (reduced dims, alt exps).

Registries are plain name -> value mappings wrapped read-only; insertion
order is meaningful (position 0 is the default entry).
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence, Union

import numpy as np

from cellexperiment.config import get_config
from cellexperiment.errors import IndexOutOfRange, NotFoundError

__all__ = ['lookup', 'named_entries', 'renamed']


def lookup(registry: Mapping[str, Any], which: Union[str, int], kind: str) -> Any:
    """
    Fetch a registry entry by name or position.

    Raises:
        NotFoundError: If no entry has that name
        IndexOutOfRange: If the position is beyond the registry size
        TypeError: If ``which`` is neither str nor int
    """
    if isinstance(which, str):
        if which not in registry:
            raise NotFoundError(f"{kind} '{which}' not found; available: {list(registry)}")
        return registry[which]
    if isinstance(which, (bool, np.bool_)) or not isinstance(which, (int, np.integer)):
        raise TypeError(f"{kind} must be selected by name or position, got {type(which)}")
    which = int(which)
    names = list(registry)
    if not -len(names) <= which < len(names):
        raise IndexOutOfRange(f"{kind} index {which} out of range for {len(names)} entries")
    return registry[names[which]]


def _is_pair(item: Any) -> bool:
    return (
        isinstance(item, tuple)
        and len(item) == 2
        and (item[0] is None or isinstance(item[0], str))
    )


def named_entries(entries: Union[Mapping[str, Any], Sequence[Any], None]) -> list[tuple[str, Any]]:
    """
    Normalize registry input to an ordered list of (name, value) pairs.

    Accepts a mapping, a sequence of values, or a sequence of (name, value)
    pairs. Entries without a name (or with an empty one) get a positional
    name built from the configured prefix: "unnamed1", "unnamed2", ...

    Raises:
        ValueError: If the resulting names are not unique
    """
    if entries is None:
        return []
    if isinstance(entries, Mapping):
        items = list(entries.items())
    else:
        items = [item if _is_pair(item) else (None, item) for item in entries]

    prefix = get_config().unnamed_prefix
    pairs = [
        (name if name else f"{prefix}{i}", value)
        for i, (name, value) in enumerate(items, start=1)
    ]
    names = [name for name, _ in pairs]
    if len(set(names)) != len(names):
        dup = sorted({n for n in names if names.count(n) > 1})
        raise ValueError(f"registry names must be unique, duplicated: {dup}")
    return pairs


def renamed(registry: Mapping[str, Any], names: Iterable[str], kind: str) -> dict[str, Any]:
    """Return a new mapping with the same values in order under new names."""
    names = [str(n) for n in names]
    if len(names) != len(registry):
        raise ValueError(
            f"got {len(names)} {kind} names for {len(registry)} entries"
        )
    if len(set(names)) != len(names):
        raise ValueError(f"{kind} names must be unique")
    return dict(zip(names, registry.values()))
