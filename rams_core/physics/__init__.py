"""
Physics module: model memory and the Coriolis tendencies.

Provides:
- GridGeometry, ReferenceState: coordinates, terrain and reference winds
- BasicState, Tendency: per-grid memory, registered from descriptor tables
- budget_term: optional diagnostics of single tendency contributions
- corlos: Coriolis accelerations of u and v
"""

from .state import GridGeometry, ReferenceState, BasicState, Tendency, OptionalField
from .budget import TendencyBudget, budget_term
from .coriolis import CoriolisOptions, fcorio, corlos, corlsu, corlsv
