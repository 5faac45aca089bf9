"""
Tests of the model memory and of the Coriolis tendencies.
"""

import dataclasses as dc

import numpy as np
import numpy.random as random
import pytest

from rams_core.config import parse_namelist
from rams_core.errors import ConfigError, SchemaError
from rams_core.output import Subdomain
from rams_core.physics import (
    BasicState,
    CoriolisOptions,
    GridGeometry,
    ReferenceState,
    Tendency,
    corlos,
    corlsu,
    corlsv,
    fcorio,
)
from rams_core.physics.constants import omega, pi180
from rams_core.physics.state import stretched_levels
from rams_core.registry import Intent, VariableRegistry

from conftest import small_namelist


rng = random.default_rng()


def build(config):
    geometry = GridGeometry.from_config(config, 1)
    reference = ReferenceState.from_config(config, geometry)
    basic = BasicState.allocate(config, geometry)
    tend = Tendency.allocate(geometry)
    fcorio(geometry.glat, basic.fcoru, basic.fcorv)
    basic.uc[...] = rng.uniform(-10.0, 10.0, basic.uc.shape)
    basic.vc[...] = rng.uniform(-10.0, 10.0, basic.vc.shape)
    return geometry, reference, basic, tend


def test_geometry(config):
    geometry = GridGeometry.from_config(config, 1)
    assert (geometry.nz, geometry.nx, geometry.ny) == (8, 6, 5)
    assert (geometry.ia, geometry.iz, geometry.ja, geometry.jz) == (1, 4, 1, 3)
    np.testing.assert_allclose(np.diff(geometry.xm), 2000.0)
    np.testing.assert_allclose(geometry.xm - geometry.xt, 1000.0)
    assert geometry.itopo == 0
    np.testing.assert_equal(geometry.rtgu, 1.0)


def test_stretched_levels():
    zm, zt = stretched_levels(5, 100.0, 2.0, 300.0)
    np.testing.assert_allclose(zm, [0.0, 100.0, 300.0, 600.0, 900.0])
    np.testing.assert_allclose(zt[1:], [50.0, 200.0, 450.0, 750.0])
    assert zt[0] == -zt[1]


def test_reference_state(config):
    geometry = GridGeometry.from_config(config, 1)
    reference = ReferenceState.from_config(config, geometry)
    # sounding: u = 5 at 0 m, 10 at 1000 m
    np.testing.assert_allclose(reference.u01dn[1], 5.0 + 5.0 * geometry.zt[1] / 1000.0)
    assert reference.v01dn.shape == (geometry.nz,)


def test_fcorio():
    glat = np.broadcast_to(np.linspace(30.0, 34.0, 5), (4, 5)).copy()
    fcoru = np.zeros_like(glat)
    fcorv = np.zeros_like(glat)
    fcorio(glat, fcoru, fcorv)

    np.testing.assert_allclose(fcoru[:3, :4], 2.0 * omega * np.sin(glat[:3, :4] * pi180))
    np.testing.assert_allclose(fcorv[:3, 0], 2.0 * omega * np.sin(31.0 * pi180 * 0.5 + 30.0 * pi180 * 0.5))
    # the last row and column are left alone
    np.testing.assert_equal(fcoru[3, :], 0.0)


def test_optional_fields_follow_the_flag(config, config_with_diagnostics):
    geometry = GridGeometry.from_config(config, 1)

    off = BasicState.allocate(config, geometry)
    assert not off.up_coriolis.present
    registry = VariableRegistry(1)
    off.register_fields(registry)
    assert "UP_CORIOLIS" not in registry
    assert "UP" in registry

    on = BasicState.allocate(config_with_diagnostics, geometry)
    assert on.up_coriolis.array.shape == (8, 6, 5)
    on.register_fields(registry)
    assert registry["VP_CORIOLIS"].has(Intent.ANALYSIS | Intent.LITE)

    on.release_optional("VP_CORIOLIS", registry)
    assert "VP_CORIOLIS" not in registry
    assert not on.vp_coriolis.present


def test_duplicate_descriptor():

    class Broken(BasicState):
        DESCRIPTORS = BasicState.DESCRIPTORS + ("UP : 3 : anal",)

    with pytest.raises(SchemaError, match="UP"):
        Broken.descriptor_table()


def test_switched_off():
    config = parse_namelist(small_namelist(options="ICORFLG = 0,"))
    [geometry, reference, basic, tend] = build(config)
    corlos(basic, tend, geometry, reference, CoriolisOptions.from_config(config))
    np.testing.assert_equal(tend.ut, 0.0)
    np.testing.assert_equal(tend.vt, 0.0)


def test_diagnostic_equals_tendency(config_with_diagnostics):
    config = config_with_diagnostics
    [geometry, reference, basic, tend] = build(config)
    corlos(basic, tend, geometry, reference, CoriolisOptions.from_config(config))

    assert np.any(tend.ut != 0.0)
    # the tendencies started from zero: the diagnostics hold them exactly
    np.testing.assert_array_equal(basic.up_coriolis.array, tend.ut)
    np.testing.assert_array_equal(basic.vp_coriolis.array, tend.vt)
    # boundaries and the lowest / highest levels are not touched
    np.testing.assert_equal(tend.ut[0], 0.0)
    np.testing.assert_equal(tend.ut[-1], 0.0)
    np.testing.assert_equal(tend.ut[:, 0, :], 0.0)
    np.testing.assert_equal(tend.vt[:, :, -1], 0.0)


def test_plain_coriolis_term(config):
    [geometry, reference, basic, tend] = build(config)
    options = CoriolisOptions.from_config(config)
    corlsu(basic, tend, geometry, reference, options)

    [k, i, j] = (3, 2, 2)
    vbar = 0.25 * (basic.vc[k, i, j] + basic.vc[k, i, j - 1] + basic.vc[k, i + 1, j] + basic.vc[k, i + 1, j - 1])
    fcor = basic.fcoru[i, j]
    expected = vbar * fcor - fcor * reference.v01dn[k]
    np.testing.assert_allclose(tend.ut[k, i, j], expected)


def test_curvature_term(config):
    [geometry, reference, basic, tend] = build(config)
    options = dc.replace(CoriolisOptions.from_config(config), ihtran=1)
    plain = np.zeros_like(tend.vt)
    corlsv(basic, tend, geometry, reference, options)
    curved = tend.vt.copy()

    tend.zero()
    corlsv(basic, tend, geometry, reference, dc.replace(options, ihtran=0))
    plain[...] = tend.vt
    assert options.curvature_factor > 0.0
    assert np.any(curved != plain)


@pytest.mark.parametrize("initial, initorig", [(2, 1), (3, 2)])
def test_history_start_skips_reference(config_with_diagnostics, initial, initorig):
    config = config_with_diagnostics
    [geometry, reference, basic, tend] = build(config)
    options = dc.replace(CoriolisOptions.from_config(config), initial=initial, initorig=initorig)
    corlsu(basic, tend, geometry, reference, options)

    [k, i, j] = (2, 3, 1)
    vbar = 0.25 * (basic.vc[k, i, j] + basic.vc[k, i, j - 1] + basic.vc[k, i + 1, j] + basic.vc[k, i + 1, j - 1])
    np.testing.assert_allclose(tend.ut[k, i, j], vbar * basic.fcoru[i, j])
    # the early exit still leaves the diagnostic in place
    np.testing.assert_array_equal(basic.up_coriolis.array, tend.ut)


def test_terrain_following_reference(config):
    [geometry, reference, basic, tend] = build(config)
    basic.vc[...] = 0.0
    options = CoriolisOptions.from_config(config)

    corlsu(basic, tend, geometry, reference, options)
    flat = tend.ut.copy()

    geometry.set_topography(np.full((geometry.nx, geometry.ny), 200.0))
    assert geometry.itopo == 1
    tend.zero()
    corlsu(basic, tend, geometry, reference, options)

    # the reference wind is read 200 m higher where there is terrain
    [k, i, j] = (2, 2, 2)
    height = geometry.zt[k] * geometry.rtgu[i, j] + geometry.topu[i, j]
    v_ref = np.interp(height, geometry.zt, reference.v01dn)
    np.testing.assert_allclose(tend.ut[k, i, j], -basic.fcoru[i, j] * v_ref)
    assert not np.allclose(tend.ut, flat)


def test_slab_run():
    config = parse_namelist(small_namelist(grids="NNYP = 1,").replace("NNYP = 5,", ""))
    [geometry, reference, basic, tend] = build(config)
    assert geometry.jdim == 0
    corlos(basic, tend, geometry, reference, CoriolisOptions.from_config(config))
    assert tend.ut.shape == (8, 6, 1)
    assert np.all(np.isfinite(tend.vt))


def test_geometry_of_a_subdomain(config):
    whole = GridGeometry.from_config(config, 1)
    east = GridGeometry.from_config(config, 1, Subdomain((4, 5), (2, 0)))
    assert (east.nx, east.ny, east.i0, east.j0) == (4, 5, 2, 0)
    # coordinates span the full grid, the latitude only the local points
    np.testing.assert_array_equal(east.xm, whole.xm)
    np.testing.assert_array_equal(east.glat, whole.glat[2:6, :])
    assert east.topt.shape == (4, 5)

    west = GridGeometry.from_config(config, 1, Subdomain((4, 5), (0, 0)))
    assert (west.iz, west.izu) == (2, 2)
    assert (east.iz, east.izu) == (2, 1)

    with pytest.raises(ConfigError, match="exceeds grid 1"):
        GridGeometry.from_config(config, 1, Subdomain((6, 5), (2, 0)))


def test_boundary_faces_are_not_updated(config_with_diagnostics):
    config = config_with_diagnostics
    [geometry, reference, basic, tend] = build(config)
    assert (geometry.izu, geometry.jzv) == (3, 2)
    corlos(basic, tend, geometry, reference, CoriolisOptions.from_config(config))

    # u on the east face and v on the north face of the full grid stay put
    np.testing.assert_equal(tend.ut[:, 4, :], 0.0)
    np.testing.assert_equal(tend.vt[:, :, 3], 0.0)
    assert np.all(tend.ut[1:-1, 1:4, 1:4] != 0.0)
    assert np.all(tend.vt[1:-1, 1:5, 1:3] != 0.0)
    np.testing.assert_array_equal(basic.vp_coriolis.array, tend.vt)
