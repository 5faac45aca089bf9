"""
Runtime module: logging setup and run directories.
"""

from .logging import reset_logging, switch_log_file
from .dirs import RunDir, experiment_dirname, register_run
