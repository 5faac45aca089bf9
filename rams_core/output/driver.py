"""
Output and synchronization driven by the variable registries.

The driver never decides which fields exist; it asks each grid's registry for
the entries with the right intents and hands them over to the collaborators:
a serializer (`save_field`) and a halo exchanger (`exchange`).
"""

import logging
import sys
import typing as _t
if sys.version_info >= (3, 11):
    from enum import StrEnum
else:
    from backports.strenum import StrEnum

import numpy as np

from rams_core.config import Config
from rams_core.errors import RegistryError
from rams_core.output.io import Stream
from rams_core.registry import GridRegistries, Intent, RegistryEntry


logger = logging.getLogger(__name__)


class Stencil(StrEnum):
    face = "face"
    """edges only, for primary fields"""
    face_corner = "face+corner"
    """edges and corners, for tendency variants"""


class Serializer(_t.Protocol):

    def save_field(self, stream: Stream, ngrid: int, name: str, time: float, field: np.ndarray) -> None:
        ...


class Subdomain(_t.NamedTuple):
    """The part of a grid held by this process."""

    nb_grid_pts: tuple[int, int]
    """local (x, y) extent, boundary layers included"""
    location: tuple[int, int]
    """index of the local point (0, 0) in the full grid"""


def whole_domain(nb_grid_pts: _t.Sequence[int]) -> Subdomain:
    return Subdomain(tuple(nb_grid_pts), (0, 0))


class HaloExchanger(_t.Protocol):
    """What the driver and the model setup need from the communication layer."""

    rank: int
    nb_ranks: int

    def decompose(self, ngrid: int, nb_grid_pts: tuple[int, int]) -> Subdomain:
        """Split a grid of the given global (x, y) extent over the processes; return this process' part."""

    def exchange(self, ngrid: int, entry: RegistryEntry, stencil: Stencil) -> None:
        """Refresh the boundary layers of the entry's storage. Blocks until neighbours are done."""


def selected_lite_vars(config: Config) -> list[str]:
    """The user's lite output list: LITE_VARS, cut at NLITE_VARS when that is set."""
    names = [name.upper() for name in config.LITE_VARS if name.strip()]
    if config.NLITE_VARS > 0:
        names = names[:config.NLITE_VARS]
    return names


class OutputSyncDriver:

    registries: GridRegistries
    serializer: Serializer
    exchanger: HaloExchanger
    lite_vars: tuple[str, ...]

    def __init__(
            self, registries: GridRegistries, serializer: Serializer, exchanger: HaloExchanger,
            lite_vars: _t.Iterable[str] = ()):
        self.registries = registries
        self.serializer = serializer
        self.exchanger = exchanger
        self.lite_vars = tuple(name.upper() for name in lite_vars)

    @classmethod
    def from_config(cls, config: Config, registries: GridRegistries, serializer: Serializer, exchanger: HaloExchanger):
        return cls(registries, serializer, exchanger, selected_lite_vars(config))

    def write_analysis(self, time: float) -> list[str]:
        """Hand every always-serialized entry of every grid to the serializer."""
        written = []
        for registry in self.registries:
            for entry in registry.entries_matching(Intent.ANALYSIS):
                self._save(Stream.analysis, registry.ngrid, entry, entry.data, time)
                written.append(entry.name)
        logger.info(f"Analysis output at t={time:g}s: {len(written)} field(s)")
        return written

    def write_lite(self, time: float) -> list[str]:
        """Hand the selectable entries the user asked for to the serializer."""
        selected = set(self.lite_vars)

        def is_selected(entry: RegistryEntry):
            return entry.has(Intent.LITE) and entry.name in selected

        written = []
        for registry in self.registries:
            for entry in registry.entries_matching(is_selected):
                self._save(Stream.lite, registry.ngrid, entry, entry.data, time)
                written.append(entry.name)
        logger.info(f"Lite output at t={time:g}s: {len(written)} field(s)")
        return written

    def flush_averages(self, time: float) -> list[str]:
        """
        Write the time averages since the previous flush, then restart them.

        Nothing is written unless every averaged field has accumulated some
        time since the previous flush.
        """
        averaged = [
            (registry.ngrid, entry)
            for registry in self.registries
            for entry in registry.entries_matching(Intent.MEAN)
        ]
        empty = [f"{entry.name} (grid {ngrid})" for [ngrid, entry] in averaged if entry.accumulator.elapsed <= 0.0]
        if empty:
            raise RegistryError(f"Nothing accumulated since the last flush for {', '.join(empty)}")

        written = []
        for [ngrid, entry] in averaged:
            self._save(Stream.mean, ngrid, entry, entry.accumulator.mean(), time)
            written.append(entry.name)
        # restart only once everything is written
        for [_, entry] in averaged:
            entry.accumulator.reset()
        logger.info(f"Averaged output at t={time:g}s: {len(written)} field(s)")
        return written

    def exchange(self) -> list[str]:
        """
        Refresh subdomain boundaries of every synchronized entry.

        On each grid, all primary fields go first, then the tendency variants.
        """
        exchanged = []
        for registry in self.registries:
            for entry in registry.entries_matching(Intent.SYNC):
                self.exchanger.exchange(registry.ngrid, entry, Stencil.face)
                exchanged.append(entry.name)
            for entry in registry.entries_matching(Intent.SYNC_TENDENCY):
                self.exchanger.exchange(registry.ngrid, entry, Stencil.face_corner)
                exchanged.append(entry.name)
        return exchanged

    def _save(self, stream: Stream, ngrid: int, entry: RegistryEntry, field: np.ndarray, time: float):
        self.serializer.save_field(stream, ngrid, entry.name, time, field)
