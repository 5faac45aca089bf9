"""
Shared fixtures: small namelists and recording collaborators of the output driver.
"""

import textwrap

import numpy as np
import pytest

from rams_core.config import parse_namelist
from rams_core.output.driver import whole_domain


class RecordingSerializer:
    """Keeps a copy of everything handed over, in order."""

    def __init__(self):
        self.saved = []

    def save_field(self, stream, ngrid, name, time, field):
        self.saved.append((str(stream), ngrid, name, time, np.array(field, copy=True)))

    def names(self, stream=None):
        return [name for [s, _, name, _, _] in self.saved if stream is None or s == str(stream)]


class RecordingExchanger:
    """A single process holding every grid whole; logs the (name, stencil) of every exchange."""

    rank = 0
    nb_ranks = 1

    def __init__(self):
        self.calls = []
        self.grids = []
        self.decomposed = {}

    def decompose(self, ngrid, nb_grid_pts):
        self.decomposed[ngrid] = whole_domain(nb_grid_pts)
        return self.decomposed[ngrid]

    def exchange(self, ngrid, entry, stencil):
        # the storage must be alive whenever the driver hands an entry over
        entry.data
        self.grids.append(ngrid)
        self.calls.append((entry.name, str(stencil)))


def small_namelist(grids="", file_info="", options="", sound=""):
    """A valid namelist for a 6 x 5 x 8 grid, with optional extra lines per group."""
    return textwrap.dedent(f"""
        $MODEL_GRIDS
           TIMMAX = 60.,
           NNXP = 6, NNYP = 5, NNZP = 8,
           DELTAX = 2000., DELTAY = 2000., DELTAZ = 250.,
           DTLONG = 10.,
           CENTLAT = 40.,
        {grids}
        $END

        $MODEL_FILE_INFO
           FRQSTATE = 30.,
        {file_info}
        $END

        $MODEL_OPTIONS
        {options}
        $END

        $MODEL_SOUND
           IPSFLG = 1,
           PS = 0., 1000., 5000.,
           US = 5., 10., 20.,
           VS = 1., 2., 4.,
        {sound}
        $END
    """)


@pytest.fixture
def serializer():
    return RecordingSerializer()


@pytest.fixture
def exchanger():
    return RecordingExchanger()


@pytest.fixture
def config():
    return parse_namelist(small_namelist())


@pytest.fixture
def config_with_diagnostics():
    return parse_namelist(small_namelist(file_info="IUVWTEND = 1,"))
