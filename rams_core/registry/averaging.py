"""Time averages of registered fields."""

import numpy as np

from rams_core.errors import RegistryError


class TimeAverageAccumulator:
    """
    Running sum of a field weighted by the step duration.

    The owner calls `accumulate` every step; the output driver reads `mean`
    at flush time and then calls `reset`.
    """

    total: np.ndarray
    elapsed: float

    def __init__(self, shape, dtype=float):
        self.total = np.zeros(shape, dtype=dtype)
        self.elapsed = 0.0

    def accumulate(self, value: np.ndarray, dt: float):
        self.total += value * dt
        self.elapsed += dt

    def mean(self) -> np.ndarray:
        if self.elapsed <= 0.0:
            raise RegistryError("Nothing accumulated since the last flush")
        return self.total / self.elapsed

    def reset(self):
        self.total[...] = 0.0
        self.elapsed = 0.0
