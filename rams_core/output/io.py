"""
IO for the fields handed over by the output driver.
"""

import logging
import pathlib
import sys
if sys.version_info >= (3, 11):
    from enum import StrEnum
else:
    from backports.strenum import StrEnum

import numpy as np


logger = logging.getLogger(__name__)


class Stream(StrEnum):
    analysis = "A"
    lite = "L"
    mean = "M"


class NpyIO:
    """
    One .npy file per stream, grid, field and time.

    With `rank` given, each process writes its own subdomain and the rank is
    part of the file name.
    """

    root_path: pathlib.Path
    extension: str
    rank: int | None

    def __init__(self, root_path, rank: int | None = None):
        self.root_path = pathlib.Path(root_path)
        self.root_path.mkdir(parents=True, exist_ok=True)
        self.rank = rank

    @property
    def extension(self):
        return "npy"

    def save_field(self, stream: Stream, ngrid: int, name: str, time: float, field: np.ndarray):
        filename = format_filename(stream, ngrid, name, time, self.rank)
        np.save(self.root_path / f"{filename}.{self.extension}", field)
        logger.debug(f"Wrote {filename}")

    def load_field(self, stream: Stream, ngrid: int, name: str, time: float):
        filename = format_filename(stream, ngrid, name, time, self.rank)
        return np.load(self.root_path / f"{filename}.{self.extension}", allow_pickle=False)

    def list_fields(self, stream: Stream):
        return sorted(p.stem for p in self.root_path.glob(f"{stream}--*.{self.extension}"))


def format_filename(stream: Stream, ngrid: int, name: str, time: float, rank: int | None = None):
    filename = f"{stream}--g{ngrid}--{name}--{time:g}"
    if rank is not None:
        filename += f"--r{rank}"
    return filename
