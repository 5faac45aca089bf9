"""
Optional diagnostics of single tendency contributions.

A physics routine adds its contributions to a shared tendency through a
TendencyBudget. When the diagnostic is enabled, every contribution is also
summed into a local buffer, which overwrites the persistent field when the
routine leaves the `with` block (early returns included):

    with budget_term(basic.up_coriolis, options.iuvwtend >= 1) as budget:
        budget.add(ut, index, first_term)
        if done_early:
            return
        budget.add(ut, index, second_term)

When disabled, nothing is allocated and nothing is copied.
"""

import contextlib
import typing as _t

import numpy as np

from rams_core.errors import LifecycleError

if _t.TYPE_CHECKING:
    from rams_core.physics.state import OptionalField


class TendencyBudget:

    buffer: np.ndarray | None
    """local sum of the contributions of one invocation, None when disabled"""

    def __init__(self, buffer: np.ndarray | None = None):
        self.buffer = buffer

    @property
    def enabled(self):
        return self.buffer is not None

    def add(self, tendency: np.ndarray, index, contribution: np.ndarray):
        """Add to the tendency, and to the buffer in the same order."""
        tendency[index] += contribution
        if self.buffer is not None:
            self.buffer[index] += contribution


@contextlib.contextmanager
def budget_term(slot: "OptionalField", enabled: bool):
    if not enabled:
        yield TendencyBudget()
        return

    if not slot.present:
        raise LifecycleError(f"Diagnostic {slot.name} is enabled but its storage is not allocated")

    budget = TendencyBudget(np.zeros_like(slot.array))
    try:
        yield budget
        # not a running sum: the field holds this invocation only
        slot.array[...] = budget.buffer
    finally:
        budget.buffer = None
