"""
Logging of a model run: a print-like console, plus one log file per run.

With several MPI ranks, only rank 0 prints INFO messages; every rank tags its
file records with its rank.
"""

import sys
import logging


run_log_format = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def reset_logging(level=logging.INFO, rank: int = 0):
    """
    Config the logger such that logging.info(...) works like print(...)
    """
    root_logger = logging.getLogger()

    # clear any existing handlers
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    if rank != 0:
        # one copy of the progress messages is enough
        console_handler.setLevel(max(level, logging.WARNING))
        console_handler.setFormatter(logging.Formatter(f"[rank {rank}] %(message)s"))
    root_logger.addHandler(console_handler)

    root_logger.setLevel(level)


def switch_log_file(log_file, rank: int | None = None):
    """Send the log of the current run to its own file, in addition to the console."""
    root_logger = logging.getLogger()

    for h in list(root_logger.handlers):
        if isinstance(h, logging.FileHandler):
            root_logger.removeHandler(h)
            h.close()

    file_format = run_log_format if rank is None else f"[rank {rank}] {run_log_format}"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(file_format))
    root_logger.addHandler(file_handler)

    # the run log records at least the INFO messages
    if root_logger.getEffectiveLevel() > logging.INFO:
        root_logger.setLevel(logging.INFO)
    return file_handler
