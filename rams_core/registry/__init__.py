"""
Registry module: which fields exist, where they live and what to do with them.

Provides:
- DimensionClass, Intent and the descriptor syntax
- VariableRegistry: per-grid table of entries
- TimeAverageAccumulator: companion buffer of time-averaged fields
"""

from .entry import DimensionClass, Intent, RegistryEntry, parse_descriptor
from .registry import VariableRegistry, GridRegistries
from .averaging import TimeAverageAccumulator
