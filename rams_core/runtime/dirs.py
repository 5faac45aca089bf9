"""
Run directories.

    <runtime_root>/<experiment>/<run_id>/
        parameters/     the namelist as given, and the resolved config.toml
        results/        output files of all streams
        log.txt
        METADATA.json
"""

import os
import re
import time
import subprocess
import shutil
import json
import logging
from pathlib import Path


logger = logging.getLogger(__name__)

runs_dirname = "runs"


def experiment_dirname(expnme: str) -> str:
    """Folder name of an experiment: EXPNME with anything but letters, digits, '-' and '.' turned into '_'."""
    name = re.sub(r"[^\w.-]+", "_", expnme.strip())
    return name or "unnamed"


def register_run(expnme: str, namelist_path=None, runtime_root=None, with_hash: bool = True, rank: int | None = None):
    """
    Create the folder of a new model run.

    Parameters
    ----------
    expnme : str
        Experiment name from the namelist; runs of one experiment share a folder.
    namelist_path : path, optional
        Copied into the parameters folder when given.
    runtime_root : path, optional
        Defaults to ./runs.
    with_hash : bool
        Append the git commit of the model code to the run id.
    rank : int, optional
        With several MPI ranks each one keeps its own folder, suffixed with the rank.
    """
    if runtime_root is None:
        runtime_root = os.path.join(os.getcwd(), runs_dirname)

    started = time.localtime()
    run_id = time.strftime("%y%m%d-%H%M%S", started)
    git_hash = get_git_hash() if with_hash else ""
    if len(git_hash):
        run_id += f"-{git_hash[:6]}"
    if rank is not None:
        run_id += f"-r{rank}"

    run_dir = RunDir(os.path.join(runtime_root, experiment_dirname(expnme), run_id))
    run_dir.setup_directory()

    metadata = {
        "run_id": run_id,
        "experiment": expnme,
        "started": time.strftime("%Y-%m-%dT%H:%M:%S", started),
    }
    if namelist_path is not None:
        run_dir.archive_namelist(namelist_path)
        metadata["namelist"] = str(os.path.abspath(namelist_path))
    if len(git_hash):
        metadata["git_hash"] = git_hash
    run_dir.update_metadata(metadata)

    logger.debug(f"Registered run {run_id} in {run_dir.path}")
    return run_dir


class RunDir:

    def __init__(self, path):
        self.path = Path(path)
        self.run_id = self.path.name

    def setup_directory(self):
        # a run id is never reused
        self.path.mkdir(parents=True, exist_ok=False)
        self.parameters_dir.mkdir()
        self.results_dir.mkdir()
        self.log_file.touch()
        self.metadata_file.write_text("{}", encoding="utf-8")

    @property
    def parameters_dir(self):
        return self.path / "parameters"

    @property
    def results_dir(self):
        return self.path / "results"

    @property
    def config_file(self):
        """The resolved configuration, as written by `save_config`."""
        return self.parameters_dir / "config.toml"

    @property
    def log_file(self):
        return self.path / "log.txt"

    @property
    def metadata_file(self):
        return self.path / "METADATA.json"

    def archive_namelist(self, namelist_path) -> Path:
        """Keep the namelist text exactly as the run read it."""
        return Path(shutil.copy2(namelist_path, self.parameters_dir))

    def read_metadata(self):
        with open(self.metadata_file, "r", encoding="utf-8") as fp:
            return json.load(fp)

    def update_metadata(self, new_info):
        metadata = self.read_metadata()
        metadata.update(new_info)
        with open(self.metadata_file, "w", encoding="utf-8") as fp:
            json.dump(metadata, fp, indent=2, sort_keys=True)

    def mark_finished(self, model_time: float):
        self.update_metadata({
            "finished": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime()),
            "model_time": model_time,
        })


def get_git_hash() -> str:
    try:
        return subprocess.check_output(
            ["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL
        ).decode("utf-8").strip()
    except (OSError, subprocess.CalledProcessError) as e:
        logger.warning(f"Cannot get the git hash: {e}")
        return ""
