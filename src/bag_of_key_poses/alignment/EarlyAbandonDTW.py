import logging
from typing import Generic, Sequence, TypeVar

import numpy as np

from . import MAX_DISTANCE, DTWComparison

log = logging.getLogger(__name__)

T = TypeVar("T")


class EarlyAbandonDTW(Generic[T]):
    """DTW that gives up once the alignment cost can no longer stay within a bound.

    ``x`` is the query (test) sequence and ``y`` the reference (template).
    The grid has no border row or column: ``f[0, 0]`` is the distance of the
    first elements. Cells whose cost exceeds the bound are set to
    ``MAX_DISTANCE`` and not expanded; when a whole row overflows the
    computation stops. Pairwise distances are computed lazily and memoised.
    """

    def __init__(self, x: Sequence[T], y: Sequence[T]):
        self.x = list(x)
        self.y = list(y)
        self.distance = np.full((len(self.x), len(self.y)), -1.0)
        self.f = np.full((len(self.x), len(self.y)), MAX_DISTANCE)
        self.sum = MAX_DISTANCE
        self.rows_computed = 0

    def _cell_distance(self, comparison: DTWComparison[T], i: int, j: int) -> float:
        if self.distance[i, j] < 0:
            self.distance[i, j] = comparison.distance(self.x[i], self.y[j])
        return self.distance[i, j]

    def _cell(self, comparison: DTWComparison[T], i: int, j: int, previous: float, bound: float) -> bool:
        """Fills f[i, j] from its best predecessor, returns False if it overflows."""
        if previous > bound:
            self.f[i, j] = MAX_DISTANCE
            return False
        cost = previous + self._cell_distance(comparison, i, j)
        if cost > bound:
            self.f[i, j] = MAX_DISTANCE
            return False
        self.f[i, j] = cost
        return True

    def compute(self, comparison: DTWComparison[T], bound: float = MAX_DISTANCE) -> float:
        n, m = len(self.x), len(self.y)
        self.sum = MAX_DISTANCE
        if n == 0 or m == 0:
            return self.sum

        f = self.f
        for i in range(n):
            overflow = True
            for j in range(m):
                if i == 0 and j == 0:
                    previous = 0.0
                elif i == 0:
                    previous = f[0, j - 1]
                elif j == 0:
                    previous = f[i - 1, 0]
                else:
                    previous = min(f[i - 1, j - 1], f[i - 1, j], f[i, j - 1])
                if self._cell(comparison, i, j, previous, bound):
                    overflow = False
            self.rows_computed = i + 1
            if overflow:
                log.debug("DTW abandoned at row %d of %d (bound %.6g)", i + 1, n, bound)
                return self.sum

        self.sum = float(f[n - 1, m - 1])
        return self.sum
