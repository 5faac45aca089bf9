"""
Tests of the per-grid variable registry.
"""

import gc

import numpy as np
import pytest

from rams_core.errors import LifecycleError, RegistryError, SchemaError
from rams_core.registry import (
    DimensionClass,
    GridRegistries,
    Intent,
    TimeAverageAccumulator,
    VariableRegistry,
    parse_descriptor,
)


@pytest.fixture
def registry():
    return VariableRegistry(1)


def test_parse_descriptor():
    [name, dim_class, intents] = parse_descriptor("up_coriolis : 3 : anal : lite")
    assert name == "UP_CORIOLIS"
    assert dim_class is DimensionClass.ATMOSPHERE_3D
    assert intents == Intent.ANALYSIS | Intent.LITE

    assert parse_descriptor("TOPT:2").intents == Intent.NONE


@pytest.mark.parametrize("descriptor", [
    "UP : 9 : anal",
    "UP : three : anal",
    "UP : 3 : analysis",
    "UP",
    " : 3 : anal",
])
def test_bad_descriptors(descriptor):
    with pytest.raises(SchemaError):
        parse_descriptor(descriptor)


@pytest.mark.parametrize("dim_class, ndim, horizontal", [
    (DimensionClass.HORIZONTAL_2D, 2, (0, 1)),
    (DimensionClass.ATMOSPHERE_3D, 3, (1, 2)),
    (DimensionClass.SOIL_4D, 4, (1, 2)),
    (DimensionClass.SNOW_4D, 4, (1, 2)),
    (DimensionClass.BIN_4D, 4, (1, 2)),
    (DimensionClass.AEROSOL_4D, 4, (1, 2)),
    (DimensionClass.OCEAN_3D, 3, (1, 2)),
])
def test_dimension_classes(dim_class, ndim, horizontal):
    assert dim_class.ndim == ndim
    assert dim_class.horizontal_axes == horizontal


def test_register_lookup(registry):
    up = np.zeros((4, 5, 6))
    registry.register("up", up, up.size, 3, Intent.ANALYSIS | Intent.SYNC)

    assert "UP" in registry
    assert "up" in registry
    entry = registry["UP"]
    assert entry.data is up
    assert entry.npts == 120
    assert entry.dim_class is DimensionClass.ATMOSPHERE_3D
    assert entry.has(Intent.SYNC)
    assert not entry.has(Intent.SYNC | Intent.LITE)


def test_register_is_idempotent(registry):
    first = np.zeros((2, 3))
    second = np.ones((2, 3))
    registry.register("TOPT", first, 6, 2, Intent.ANALYSIS)
    registry.register("OTHER", first, 6, 2, Intent.NONE)
    registry.register("TOPT", second, 6, 2, Intent.LITE)

    assert len(registry) == 2
    assert registry.names == ("TOPT", "OTHER")
    assert registry["TOPT"].data is second
    assert registry["TOPT"].intents == Intent.LITE


def test_register_checks(registry):
    array = np.zeros((2, 3, 4))
    with pytest.raises(SchemaError, match="points declared"):
        registry.register("UP", array, 23, 3, Intent.NONE)
    with pytest.raises(SchemaError, match="2D"):
        registry.register("UP", np.zeros((2, 3)), 6, 3, Intent.NONE)
    with pytest.raises(SchemaError, match="accumulator"):
        registry.register("UP", array, 24, 3, Intent.MEAN)
    with pytest.raises(SchemaError, match="characters"):
        registry.register("X" * 33, array, 24, 3, Intent.NONE)
    assert len(registry) == 0


def test_register_descriptor(registry):
    uc = np.zeros((3, 4, 5))
    accumulator = TimeAverageAccumulator(uc.shape)
    entry = registry.register_descriptor("UC : 3 : anal : mean", uc, accumulator)
    assert entry.accumulator is accumulator
    assert entry.npts == uc.size


def test_unregister(registry):
    array = np.zeros((2, 2))
    registry.register("A", array, 4, 2, Intent.ANALYSIS | Intent.SYNC)
    analysis = registry.entries_matching(Intent.ANALYSIS)
    assert [e.name for e in analysis] == ["A"]

    registry.unregister("a")
    assert "A" not in registry
    assert list(analysis) == []
    assert list(registry.entries_matching(Intent.SYNC)) == []
    # unknown names are a no-op
    registry.unregister("A")


def test_matching_is_lazy_and_restartable(registry):
    arrays = {name: np.zeros((2, 2)) for name in ("A", "B", "C")}
    registry.register("A", arrays["A"], 4, 2, Intent.ANALYSIS | Intent.SYNC)
    registry.register("B", arrays["B"], 4, 2, Intent.SYNC)

    matching = registry.entries_matching(Intent.SYNC)
    assert [e.name for e in matching] == ["A", "B"]
    # iterating again starts over and sees later registrations
    registry.register("C", arrays["C"], 4, 2, Intent.SYNC)
    assert [e.name for e in matching] == ["A", "B", "C"]
    assert [e.name for e in matching] == ["A", "B", "C"]

    both = registry.entries_matching(Intent.ANALYSIS | Intent.SYNC)
    assert [e.name for e in both] == ["A"]
    named = registry.entries_matching(lambda entry: entry.name != "B")
    assert [e.name for e in named] == ["A", "C"]


def test_released_storage(registry):
    array = np.zeros((2, 2))
    registry.register("A", array, 4, 2, Intent.ANALYSIS)
    entry = registry["A"]
    assert entry.is_alive

    del array
    gc.collect()
    assert not entry.is_alive
    with pytest.raises(LifecycleError, match="released"):
        entry.data


def test_grids_are_independent():
    registries = GridRegistries(2)
    assert len(registries) == 2
    fine = np.zeros((2, 2))
    registries[2].register("A", fine, 4, 2, Intent.ANALYSIS)
    assert "A" in registries[2]
    assert "A" not in registries[1]
    assert [r.ngrid for r in registries] == [1, 2]


def test_time_average():
    accumulator = TimeAverageAccumulator((2,))
    for value in (2.0, 4.0, 6.0):
        accumulator.accumulate(np.full(2, value), 10.0)
    np.testing.assert_allclose(accumulator.mean(), [4.0, 4.0])

    accumulator.reset()
    np.testing.assert_equal(accumulator.total, [0.0, 0.0])
    assert accumulator.elapsed == 0.0
    with pytest.raises(RegistryError, match="Nothing accumulated"):
        accumulator.mean()
