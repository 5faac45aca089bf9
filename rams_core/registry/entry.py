"""
Registry entries: what the model knows about one field.

A descriptor string such as

    "UP_CORIOLIS : 3 : anal : mpt1"

names the field, its dimensionality class code and its intent tokens.
"""

import dataclasses as dc
import enum
import typing as _t
import weakref

import numpy as np

from rams_core.errors import LifecycleError, SchemaError

if _t.TYPE_CHECKING:
    from rams_core.registry.averaging import TimeAverageAccumulator


MAX_NAME_LENGTH = 32


class DimensionClass(enum.IntEnum):
    """Shape conventions of registered fields. Horizontal axes are (x, y)."""

    HORIZONTAL_2D = 2
    """(nx, ny)"""
    ATMOSPHERE_3D = 3
    """(nz, nx, ny)"""
    SOIL_4D = 4
    """(nzg, nx, ny, npatch)"""
    SNOW_4D = 5
    """(nzs, nx, ny, npatch)"""
    BIN_4D = 6
    """(nz, nx, ny, nbin)"""
    AEROSOL_4D = 7
    """(nz, nx, ny, nmode)"""
    OCEAN_3D = 8
    """(nzo, nx, ny)"""

    @property
    def ndim(self):
        if self is DimensionClass.HORIZONTAL_2D:
            return 2
        if self in (DimensionClass.ATMOSPHERE_3D, DimensionClass.OCEAN_3D):
            return 3
        return 4

    @property
    def horizontal_axes(self) -> tuple[int, int]:
        if self is DimensionClass.HORIZONTAL_2D:
            return (0, 1)
        return (1, 2)


class Intent(enum.Flag):
    NONE = 0
    ANALYSIS = enum.auto()
    """always written to the analysis stream"""
    LITE = enum.auto()
    """written to the lite stream when selected by the user"""
    MEAN = enum.auto()
    """written as a time average"""
    SYNC = enum.auto()
    """exchanged across subdomain boundaries"""
    SYNC_TENDENCY = enum.auto()
    """exchanged across subdomain boundaries, tendency stencil"""


INTENT_TOKENS: dict[str, Intent] = {
    "anal": Intent.ANALYSIS,
    "lite": Intent.LITE,
    "mean": Intent.MEAN,
    "mpt1": Intent.SYNC,
    "mpt3": Intent.SYNC_TENDENCY,
}


class Descriptor(_t.NamedTuple):
    name: str
    dim_class: DimensionClass
    intents: Intent


def parse_descriptor(descriptor: str) -> Descriptor:
    """Split "NAME : dimcode : token ..." into its parts."""
    parts = [part.strip() for part in descriptor.split(":")]
    if len(parts) < 2 or not parts[0]:
        raise SchemaError(f"Descriptor {descriptor!r} needs at least a name and a dimension code")

    [name, code, *tokens] = parts
    try:
        dim_class = DimensionClass(int(code))
    except ValueError:
        raise SchemaError(f"Descriptor {descriptor!r} has an unknown dimension code {code!r}") from None

    intents = Intent.NONE
    for token in tokens:
        try:
            intents |= INTENT_TOKENS[token.lower()]
        except KeyError:
            raise SchemaError(f"Descriptor {descriptor!r} has an unknown intent token {token!r}") from None

    return Descriptor(name.upper(), dim_class, intents)


@dc.dataclass(eq=False)
class RegistryEntry:
    name: str
    storage_ref: weakref.ref
    """the registry never owns the array"""
    npts: int
    dim_class: DimensionClass
    intents: Intent
    accumulator: "TimeAverageAccumulator | None" = None

    @property
    def data(self) -> np.ndarray:
        array = self.storage_ref()
        if array is None:
            raise LifecycleError(f"Storage of {self.name} was released while still registered")
        return array

    @property
    def is_alive(self):
        return self.storage_ref() is not None

    def has(self, intents: Intent):
        return (self.intents & intents) == intents
