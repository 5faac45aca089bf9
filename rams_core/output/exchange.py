"""
Halo exchange of registered fields between subdomains.

Each grid is decomposed once, from its full NNXP x NNYP extent, over all
ranks. A process allocates only its subdomain: the owned points plus one
boundary layer on each side of the horizontal axes. The exchange refreshes
those layers from the neighbouring subdomains, via
muGrid.CartesianDecomposition. Without MPI the stub communicator of muGrid is
used and the single subdomain is its own (periodic) neighbour.
"""

import logging
import typing as _t

import numpy as np
import muGrid

from rams_core.errors import RegistryError
from rams_core.output.driver import Stencil, Subdomain
from rams_core.registry.entry import RegistryEntry


logger = logging.getLogger(__name__)


def world_communicator():
    # A unified "world" communicator with or without MPI
    try:
        from mpi4py import MPI

        return muGrid.Communicator(MPI.COMM_WORLD)
    except ImportError:
        logger.info("MPI is not installed, using stub implementation.")
        return muGrid.Communicator()


def factorize_closest(value: int, nb_ints: int):
    """Find the maximal combination of nb_ints integers whose product is less or equal to value."""
    nb_subdivisions = []
    for root_degree in range(nb_ints, 0, -1):
        max_divisor = int(value ** (1 / root_degree))
        nb_subdivisions.append(max_divisor)
        value //= max_divisor
    return nb_subdivisions


class DecompositionExchanger:
    """
    Halo exchange backed by muGrid.

    One decomposition per grid, one muGrid field per registered name. muGrid
    always refreshes the full ghost layer, corners included, so both stencils
    are served by the same call.
    """

    def __init__(self, communicator=None):
        if communicator is None:
            communicator = world_communicator()
        self._communicator = communicator
        self._decompositions: dict[int, _t.Any] = {}
        self._subdomains: dict[int, Subdomain] = {}
        self._fields: dict[tuple[int, str, int], _t.Any] = {}

    @property
    def rank(self):
        return self._communicator.rank

    @property
    def nb_ranks(self):
        return self._communicator.size

    def decompose(self, ngrid: int, nb_grid_pts: tuple[int, int]) -> Subdomain:
        """Split the full (x, y) extent of a grid over the ranks and return the local part."""
        if ngrid in self._decompositions:
            raise RegistryError(f"Grid {ngrid} is already decomposed")

        # the outermost rows of the full grid are the boundary layers;
        # axes shorter than 3 points carry none
        nb_ghosts = [1 if n >= 3 else 0 for n in nb_grid_pts]
        nb_pts = [n - 2 * g for [n, g] in zip(nb_grid_pts, nb_ghosts)]
        nb_subdivisions = factorize_closest(self.nb_ranks, len(nb_pts))
        decomposition = muGrid.CartesianDecomposition(
            self._communicator, nb_pts, nb_subdivisions, nb_ghosts, nb_ghosts)
        self._decompositions[ngrid] = decomposition

        # local extent as allocated by muGrid, boundary layers included
        extent_field = decomposition.collection.real_field(f"extent-g{ngrid}", 1)
        extent = tuple(int(n) for n in extent_field.sg.shape[-2:])
        # owned point k of the decomposition is point k + 1 of the full grid,
        # so the first owned location is also where the local layer 0 sits
        location = tuple(int(n) for n in decomposition.subdomain_locations)

        subdomain = Subdomain(extent, location)
        self._subdomains[ngrid] = subdomain
        logger.info(
            f"Grid {ngrid}: rank {self.rank} of {self.nb_ranks} holds {extent[0]}x{extent[1]} "
            f"points at {location}")
        return subdomain

    def _field(self, ngrid: int, name: str, nb_components: int):
        key = (ngrid, name, nb_components)
        if key not in self._fields:
            collection = self._decompositions[ngrid].collection
            self._fields[key] = collection.real_field(f"{name}-{nb_components}", nb_components)
        return self._fields[key]

    def exchange(self, ngrid: int, entry: RegistryEntry, stencil: Stencil) -> None:
        if ngrid not in self._decompositions:
            raise RegistryError(f"Grid {ngrid} was never decomposed; cannot exchange {entry.name}")

        # bring the horizontal axes to the end, stack everything else as components
        horizontal = np.moveaxis(entry.data, entry.dim_class.horizontal_axes, (-2, -1))
        extent = tuple(horizontal.shape[-2:])
        if extent != self._subdomains[ngrid].nb_grid_pts:
            raise RegistryError(
                f"{entry.name} has a horizontal extent {extent}, "
                f"the subdomain of grid {ngrid} is {self._subdomains[ngrid].nb_grid_pts}")
        components = horizontal.reshape(-1, *extent)

        field = self._field(ngrid, entry.name, components.shape[0])
        field.sg[:, 0, ...] = components
        self._decompositions[ngrid].communicate_ghosts(field)
        horizontal[...] = np.reshape(field.sg[:, 0, ...], horizontal.shape)
        logger.debug(f"Exchanged {entry.name} on grid {ngrid} ({stencil})")
