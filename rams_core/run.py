"""
Black-box model execution.

Provides run_model() - namelist in, output files out - and the Model class
that ties configuration, per-grid memory, registries and the output driver
together.
"""

import dataclasses as dc
import logging
import math
import pathlib
import sys

from rams_core.config import Config, load_namelist, report_config, save_config
from rams_core.output import NpyIO, OutputSyncDriver
from rams_core.output.driver import HaloExchanger, Serializer, Subdomain
from rams_core.physics import (
    BasicState,
    CoriolisOptions,
    GridGeometry,
    ReferenceState,
    Tendency,
    corlos,
    fcorio,
)
from rams_core.registry import GridRegistries, VariableRegistry
from rams_core.runtime.dirs import RunDir, register_run
from rams_core.runtime.logging import reset_logging, switch_log_file


logger = logging.getLogger(__name__)


@dc.dataclass(init=True)
class GridModel:
    """Everything the model keeps for one grid."""

    geometry: GridGeometry
    reference: ReferenceState
    basic: BasicState
    tend: Tendency
    registry: VariableRegistry

    @classmethod
    def initialize(cls, config: Config, ngrid: int, registry: VariableRegistry, subdomain: Subdomain | None = None):
        geometry = GridGeometry.from_config(config, ngrid, subdomain)
        reference = ReferenceState.from_config(config, geometry)
        basic = BasicState.allocate(config, geometry)
        tend = Tendency.allocate(geometry)

        fcorio(geometry.glat, basic.fcoru, basic.fcorv)

        # start from rest relative to the reference winds
        basic.uc[...] = reference.u01dn[:, None, None]
        basic.vc[...] = reference.v01dn[:, None, None]
        basic.up[...] = basic.uc
        basic.vp[...] = basic.vc

        # allocate first, then register
        basic.register_fields(registry)
        tend.register_fields(registry)
        return cls(geometry, reference, basic, tend, registry)


def is_due(time: float, frequency: float, dt: float) -> bool:
    """Whether a multiple of `frequency` lies in (time - dt, time]."""
    if frequency <= 0.0:
        return False
    eps = 1.0e-6 * dt
    return math.floor((time + eps) / frequency) > math.floor((time - dt + eps) / frequency)


class Model:

    config: Config
    grids: list[GridModel]
    registries: GridRegistries
    driver: OutputSyncDriver
    options: CoriolisOptions
    time: float

    def __init__(
            self, config: Config, grids: list[GridModel], registries: GridRegistries,
            driver: OutputSyncDriver):
        self.config = config
        self.grids = grids
        self.registries = registries
        self.driver = driver
        self.options = CoriolisOptions.from_config(config)
        self.time = 0.0

    @classmethod
    def initialize(
            cls, config: Config, output_dir: str | pathlib.Path,
            exchanger: HaloExchanger | None = None, serializer: Serializer | None = None):
        """
        Build the memory of all grids and the output driver.

        Parameters
        ----------
        config : Config
            Resolved namelist.
        output_dir : str | Path
            Where the default serializer writes its files.
        exchanger : HaloExchanger, optional
            Defaults to the muGrid decomposition over all MPI ranks.
        serializer : Serializer, optional
            Defaults to NpyIO in `output_dir`, one file set per rank when
            there are several.
        """
        if exchanger is None:
            # imported here: muGrid is only needed for the default exchanger
            from rams_core.output.exchange import DecompositionExchanger
            exchanger = DecompositionExchanger()
        if serializer is None:
            serializer = NpyIO(output_dir, rank=exchanger.rank if exchanger.nb_ranks > 1 else None)

        registries = GridRegistries(config.NGRIDS)
        grids = []
        for ngrid in range(1, config.NGRIDS + 1):
            nb_grid_pts = (config.NNXP[ngrid - 1], config.NNYP[ngrid - 1])
            subdomain = exchanger.decompose(ngrid, nb_grid_pts)
            grids.append(GridModel.initialize(config, ngrid, registries[ngrid], subdomain))
        for grid in grids:
            logger.info(f"Grid {grid.geometry.ngrid}: {len(grid.registry)} registered field(s)")

        driver = OutputSyncDriver.from_config(config, registries, serializer, exchanger)
        return cls(config, grids, registries, driver)

    @property
    def dt(self) -> float:
        return self.config.DTLONG

    def step(self, dt: float | None = None):
        """Advance every grid by one long timestep."""
        dt = self.dt if dt is None else dt
        for grid in self.grids:
            grid.tend.zero()
            corlos(grid.basic, grid.tend, grid.geometry, grid.reference, self.options)
            grid.basic.advance(grid.tend, dt)
            grid.basic.accumulate_means(dt)
        # tendencies are complete on all grids before any exchange
        self.driver.exchange()
        self.time += dt

    def run(self, nsteps: int | None = None):
        """Step until TIMMAX (or for `nsteps`), writing each output stream when it is due."""
        dt = self.dt
        if nsteps is None:
            nsteps = round(self.config.TIMMAX / dt)

        logger.info(f"Running {nsteps} step(s) of {dt:g}s")
        if self.time == 0.0:
            self.driver.write_analysis(self.time)

        for _ in range(nsteps):
            self.step(dt)
            if is_due(self.time, self.config.FRQSTATE[0], dt):
                self.driver.write_analysis(self.time)
            if is_due(self.time, self.config.FRQLITE, dt):
                self.driver.write_lite(self.time)
            if is_due(self.time, self.config.FRQMEAN, dt):
                self.driver.flush_averages(self.time)

    def set_coriolis_diagnostics(self, enabled: bool):
        """Allocate and register, or unregister and release, UP_CORIOLIS / VP_CORIOLIS."""
        for grid in self.grids:
            geometry = grid.geometry
            for name in ("UP_CORIOLIS", "VP_CORIOLIS"):
                if enabled:
                    if not grid.basic.optional[name].present:
                        grid.basic.optional[name].allocate((geometry.nz, geometry.nx, geometry.ny))
                else:
                    grid.basic.release_optional(name, grid.registry)
            grid.basic.register_fields(grid.registry)
        self.options = dc.replace(self.options, iuvwtend=1 if enabled else 0)
        logger.info(f"Coriolis diagnostics {'on' if enabled else 'off'}")


def run_model(namelist_path: str | pathlib.Path, runtime_root=None, exchanger: HaloExchanger | None = None) -> RunDir:
    """
    Run the model described by a namelist file.

    This is the black-box interface: a run directory is created, the resolved
    configuration is archived and reported, then the model runs for TIMMAX.

    Returns
    -------
    RunDir
        The run directory, with the output files in `results_dir`.
    """
    config = load_namelist(namelist_path)
    if exchanger is None:
        from rams_core.output.exchange import DecompositionExchanger
        exchanger = DecompositionExchanger()
    rank = exchanger.rank if exchanger.nb_ranks > 1 else None

    run_dir = register_run(config.EXPNME, namelist_path, runtime_root=runtime_root, rank=rank)
    switch_log_file(run_dir.log_file, rank=rank)
    logger.info(f"Starting run {run_dir.run_id} with output to {run_dir.results_dir}")

    save_config(config, run_dir.config_file)
    report_config(config)

    model = Model.initialize(config, run_dir.results_dir, exchanger=exchanger)
    model.run()
    run_dir.mark_finished(model.time)
    logger.info(f"Run {run_dir.run_id} finished at t={model.time:g}s")
    return run_dir


def main(argv=None):
    """Usage: python -m rams_core.run RAMSIN"""
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print("Usage: python -m rams_core.run RAMSIN")
        return 1

    from rams_core.output.exchange import DecompositionExchanger
    exchanger = DecompositionExchanger()
    reset_logging(rank=exchanger.rank)
    run_model(argv[0], exchanger=exchanger)
    return 0


if __name__ == "__main__":
    sys.exit(main())
