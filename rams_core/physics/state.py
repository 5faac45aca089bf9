"""
Model memory of one grid.

Arrays follow the (z, x, y) layout for 3-D fields and (x, y) for 2-D fields.
Each horizontal axis carries one boundary point on each side, unless the axis
has a single point (2-D slab runs along x).

Optional fields live in OptionalField slots. Whether a slot holds an array is
the only thing that decides if the field is registered.
"""

import dataclasses as dc
import logging

import numpy as np
from scipy.interpolate import interp1d

from rams_core.config import Config
from rams_core.errors import ConfigError, SchemaError
from rams_core.output.driver import Subdomain, whole_domain
from rams_core.physics.constants import erad, pi180
from rams_core.registry import TimeAverageAccumulator, VariableRegistry, parse_descriptor


logger = logging.getLogger(__name__)


@dc.dataclass(init=True)
class GridGeometry:
    """Coordinates, terrain and working domain of one grid."""

    ngrid: int
    nz: int
    nx: int
    ny: int
    xm: np.ndarray
    xt: np.ndarray
    ym: np.ndarray
    yt: np.ndarray
    zm: np.ndarray
    zt: np.ndarray
    glat: np.ndarray
    i0: int = 0
    j0: int = 0
    """offsets of this subdomain in the full grid"""

    def __post_init__(self):
        self.set_topography(np.zeros((self.nx, self.ny)))

    @classmethod
    def from_config(cls, config: Config, ngrid: int, subdomain: Subdomain | None = None):
        """
        Geometry of the part of grid `ngrid` held by this process.

        The coordinate axes xm, xt, ym, yt always span the full grid and are
        indexed with the offsets i0, j0; everything else is local.
        """
        nxp = config.NNXP[ngrid - 1]
        nyp = config.NNYP[ngrid - 1]
        nz = config.NNZP[ngrid - 1]
        dx, dy = config.DELTAX, config.DELTAY
        if subdomain is None:
            subdomain = whole_domain((nxp, nyp))
        [nx, ny] = subdomain.nb_grid_pts
        [i0, j0] = subdomain.location
        if i0 + nx > nxp or j0 + ny > nyp:
            raise ConfigError(
                f"Subdomain of {nx}x{ny} points at ({i0}, {j0}) exceeds grid {ngrid} of {nxp}x{nyp} points")

        # u / v points sit on the east / north face of the t points
        xm = (np.arange(nxp) - 0.5 * (nxp - 2)) * dx
        xt = xm - 0.5 * dx
        ym = (np.arange(nyp) - 0.5 * (nyp - 2)) * dy
        yt = ym - 0.5 * dy

        zm, zt = stretched_levels(nz, config.DELTAZ, config.DZRAT, config.DZMAX)

        # latitude increases along y from the grid centre
        centlat = config.CENTLAT[ngrid - 1]
        lat_1d = centlat + yt[j0:j0 + ny] / (erad * pi180)
        glat = np.broadcast_to(lat_1d, (nx, ny)).copy()

        return cls(ngrid, nz, nx, ny, xm, xt, ym, yt, zm, zt, glat, i0, j0)

    @property
    def jdim(self):
        return 1 if self.ny > 1 else 0

    @property
    def ia(self):
        return 1

    @property
    def iz(self):
        return self.nx - 2

    @property
    def ja(self):
        return 1 if self.jdim else 0

    @property
    def jz(self):
        return self.ny - 2 if self.jdim else 0

    @property
    def izu(self):
        """Last u point updated: the east boundary face of the full grid is not."""
        return self.iz - 1 if self.i0 + self.nx == self.xm.size else self.iz

    @property
    def jzv(self):
        """Last v point updated: the north boundary face of the full grid is not."""
        if self.jdim and self.j0 + self.ny == self.ym.size:
            return self.jz - 1
        return self.jz

    @property
    def ztop(self):
        return self.zm[-1]

    @property
    def itopo(self):
        return 1 if np.any(self.topt != 0.0) else 0

    def set_topography(self, topt: np.ndarray):
        """Terrain height on t points; derived on u / v points, with the terrain-following metric."""
        self.topt = np.asarray(topt, dtype=float)
        self.topu = self.topt.copy()
        self.topv = self.topt.copy()
        self.topu[:-1, :] = 0.5 * (self.topt[:-1, :] + self.topt[1:, :])
        if self.jdim:
            self.topv[:, :-1] = 0.5 * (self.topt[:, :-1] + self.topt[:, 1:])
        self.rtgu = 1.0 - self.topu / self.ztop
        self.rtgv = 1.0 - self.topv / self.ztop


def stretched_levels(nz: int, deltaz: float, dzrat: float, dzmax: float):
    """Momentum levels zm (zm[0] at the surface) and thermodynamic levels zt between them."""
    zm = np.zeros(nz)
    dz = deltaz
    for k in range(1, nz):
        zm[k] = zm[k - 1] + dz
        dz = min(dz * dzrat, dzmax)
    zt = np.empty(nz)
    zt[1:] = 0.5 * (zm[1:] + zm[:-1])
    # first level is a mirror below ground
    zt[0] = -zt[1]
    return zm, zt


@dc.dataclass(init=True)
class ReferenceState:
    """Horizontally homogeneous reference winds, from the sounding."""

    u01dn: np.ndarray
    v01dn: np.ndarray

    @classmethod
    def from_config(cls, config: Config, geometry: GridGeometry):
        heights = sounding_heights(config)
        nsndg = heights.size
        us = np.asarray(config.US[:nsndg])
        vs = np.asarray(config.VS[:nsndg])

        if nsndg < 2:
            # a single level: constant reference winds
            return cls(np.full(geometry.nz, us[0]), np.full(geometry.nz, vs[0]))

        return cls(
            np.interp(geometry.zt, heights, us),
            np.interp(geometry.zt, heights, vs),
        )


def sounding_heights(config: Config) -> np.ndarray:
    """
    Heights of the sounding levels.

    IPSFLG = 1: PS holds heights [m] above HS; IPSFLG = 0: PS holds pressures
    [mb], converted with the standard atmosphere. The sounding ends after the
    last non-zero PS entry.
    """
    ps = np.asarray(config.PS)
    nonzero = np.nonzero(ps)[0]
    nsndg = nonzero[-1] + 1 if nonzero.size else 1
    ps = ps[:nsndg]

    if config.IPSFLG == 1:
        return ps - config.HS
    return 44330.8 * (1.0 - (ps / 1013.25) ** 0.190263) - config.HS


def interpolate_to_heights(levels: np.ndarray, values: np.ndarray, heights: np.ndarray):
    """Linear interpolation (and extrapolation) of a profile to arbitrary heights."""
    return interp1d(levels, values, kind="linear", fill_value="extrapolate")(heights)


class OptionalField:
    """A slot that holds an array only when its feature is enabled."""

    name: str
    array: np.ndarray | None

    def __init__(self, name: str):
        self.name = name.upper()
        self.array = None

    @property
    def present(self):
        return self.array is not None

    def allocate(self, shape, dtype=float):
        self.array = np.zeros(shape, dtype=dtype)

    def release(self):
        self.array = None


class _Memory:
    """Shared logic of the per-grid memory modules: descriptor table -> registry."""

    DESCRIPTORS: tuple[str, ...] = ()

    def __init__(self):
        self.fields: dict[str, np.ndarray] = {}
        self.optional: dict[str, OptionalField] = {}
        self.accumulators: dict[str, TimeAverageAccumulator] = {}

    @classmethod
    def descriptor_table(cls):
        table = [parse_descriptor(d) for d in cls.DESCRIPTORS]
        names = [d.name for d in table]
        if len(set(names)) != len(names):
            duplicates = sorted({n for n in names if names.count(n) > 1})
            raise SchemaError(f"{cls.__name__} declares {', '.join(duplicates)} more than once")
        return table

    def storage(self, name: str) -> np.ndarray | None:
        if name in self.fields:
            return self.fields[name]
        return self.optional[name].array

    def register_fields(self, registry: VariableRegistry):
        """Register what is allocated, unregister what is not."""
        for [name, dim_class, intents] in self.descriptor_table():
            array = self.storage(name)
            if array is None:
                registry.unregister(name)
                continue
            registry.register(name, array, array.size, dim_class, intents, self.accumulators.get(name))

    def release_optional(self, name: str, registry: VariableRegistry):
        """Drop an optional field; its entry goes first."""
        registry.unregister(name)
        self.optional[name].release()

    def __getattr__(self, name: str):
        # fields by lower-case name: basic.up, basic.up_coriolis
        key = name.upper()
        if not name.startswith("_"):
            if key in self.__dict__.get("fields", {}):
                return self.fields[key]
            if key in self.__dict__.get("optional", {}):
                return self.optional[key]
        raise AttributeError(name)


class BasicState(_Memory):
    """Winds, Coriolis parameters and the optional Coriolis diagnostics."""

    DESCRIPTORS = (
        "UP : 3 : anal : mpt1",
        "VP : 3 : anal : mpt1",
        "UC : 3 : anal : lite : mean : mpt1",
        "VC : 3 : anal : lite : mean : mpt1",
        "FCORU : 2 : anal",
        "FCORV : 2 : anal",
        "UP_CORIOLIS : 3 : anal : lite",
        "VP_CORIOLIS : 3 : anal : lite",
    )

    @classmethod
    def allocate(cls, config: Config, geometry: GridGeometry):
        state = cls()
        shape_3d = (geometry.nz, geometry.nx, geometry.ny)
        shape_2d = (geometry.nx, geometry.ny)
        for name in ("UP", "VP", "UC", "VC"):
            state.fields[name] = np.zeros(shape_3d)
        for name in ("FCORU", "FCORV"):
            state.fields[name] = np.zeros(shape_2d)

        for name in ("UP_CORIOLIS", "VP_CORIOLIS"):
            state.optional[name] = OptionalField(name)
            if config.IUVWTEND >= 1:
                state.optional[name].allocate(shape_3d)

        for name in ("UC", "VC"):
            state.accumulators[name] = TimeAverageAccumulator(shape_3d)

        logger.debug(
            f"Grid {geometry.ngrid}: basic state {shape_3d}, Coriolis diagnostics "
            f"{'on' if config.IUVWTEND >= 1 else 'off'}"
        )
        return state

    def accumulate_means(self, dt: float):
        for [name, accumulator] in self.accumulators.items():
            accumulator.accumulate(self.fields[name], dt)

    def advance(self, tend: "Tendency", dt: float):
        """Forward step of the current winds by the accumulated tendencies."""
        self.fields["UP"][...] = self.fields["UC"]
        self.fields["VP"][...] = self.fields["VC"]
        self.fields["UC"] += dt * tend.ut
        self.fields["VC"] += dt * tend.vt


class Tendency(_Memory):
    """Accumulated tendencies of the winds."""

    DESCRIPTORS = (
        "UT : 3 : mpt3",
        "VT : 3 : mpt3",
    )

    @classmethod
    def allocate(cls, geometry: GridGeometry):
        tend = cls()
        shape_3d = (geometry.nz, geometry.nx, geometry.ny)
        for name in ("UT", "VT"):
            tend.fields[name] = np.zeros(shape_3d)
        return tend

    def zero(self):
        for array in self.fields.values():
            array[...] = 0.0
