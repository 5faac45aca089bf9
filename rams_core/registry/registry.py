"""
Per-grid variable registry.

Each grid holds its own registry, so the same field name lives once per grid.
Entries keep weak references: the physics code owns the arrays and must
unregister a field before releasing it.
"""

import logging
import typing as _t
import weakref

import numpy as np

from rams_core.errors import SchemaError
from rams_core.registry.averaging import TimeAverageAccumulator
from rams_core.registry.entry import (
    MAX_NAME_LENGTH,
    DimensionClass,
    Intent,
    RegistryEntry,
    parse_descriptor,
)


logger = logging.getLogger(__name__)


Predicate = _t.Union[Intent, _t.Callable[[RegistryEntry], bool]]


class _Matching:
    """Lazy view on the entries satisfying a predicate. Each iteration starts over."""

    def __init__(self, registry: "VariableRegistry", predicate: Predicate):
        self._registry = registry
        if isinstance(predicate, Intent):
            intents = predicate
            predicate = lambda entry: entry.has(intents)
        self._predicate = predicate

    def __iter__(self):
        # copy, so that the registry may change while a caller iterates
        for entry in list(self._registry._entries.values()):
            if self._predicate(entry):
                yield entry


class VariableRegistry:

    ngrid: int

    def __init__(self, ngrid: int = 1):
        self.ngrid = ngrid
        self._entries: dict[str, RegistryEntry] = {}

    def register(
            self, name: str, storage: np.ndarray, npts: int, dim_class: DimensionClass,
            intents: Intent, accumulator: TimeAverageAccumulator | None = None) -> RegistryEntry:
        """Add an entry, or replace the entry of the same name."""
        name = name.upper()
        dim_class = DimensionClass(dim_class)

        # Value check
        if not 0 < len(name) <= MAX_NAME_LENGTH:
            raise SchemaError(f"Registry name {name!r} must have 1 to {MAX_NAME_LENGTH} characters")
        if npts != storage.size:
            raise SchemaError(f"{name}: {npts} points declared but the storage holds {storage.size}")
        if storage.ndim != dim_class.ndim:
            raise SchemaError(f"{name}: a {storage.ndim}D array cannot be registered as {dim_class.name}")
        if Intent.MEAN in intents and accumulator is None:
            raise SchemaError(f"{name}: a time-averaged field needs an accumulator")

        if name in self._entries:
            logger.debug(f"Grid {self.ngrid}: replacing registry entry {name}")

        entry = RegistryEntry(name, weakref.ref(storage), npts, dim_class, intents, accumulator)
        self._entries[name] = entry
        return entry

    def register_descriptor(
            self, descriptor: str, storage: np.ndarray,
            accumulator: TimeAverageAccumulator | None = None) -> RegistryEntry:
        [name, dim_class, intents] = parse_descriptor(descriptor)
        return self.register(name, storage, storage.size, dim_class, intents, accumulator)

    def unregister(self, name: str):
        if self._entries.pop(name.upper(), None) is None:
            logger.debug(f"Grid {self.ngrid}: {name} was not registered")

    def entries_matching(self, predicate: Predicate) -> _t.Iterable[RegistryEntry]:
        """Entries whose intents include all bits of an Intent, or satisfying a callable."""
        return _Matching(self, predicate)

    def __contains__(self, name: str):
        return name.upper() in self._entries

    def __getitem__(self, name: str) -> RegistryEntry:
        return self._entries[name.upper()]

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries.values()))

    @property
    def names(self):
        return tuple(self._entries)


class GridRegistries:
    """One independent registry per grid, numbered from 1."""

    def __init__(self, ngrids: int):
        self._registries = {ngrid: VariableRegistry(ngrid) for ngrid in range(1, ngrids + 1)}

    def __getitem__(self, ngrid: int) -> VariableRegistry:
        return self._registries[ngrid]

    def __iter__(self):
        return iter(self._registries.values())

    def __len__(self):
        return len(self._registries)
