from typing import Generic, List, Sequence, Tuple, TypeVar

import numpy as np

from . import MAX_DISTANCE, DTWComparison

T = TypeVar("T")

UP, LEFT, DIAGONAL = 0, 1, 2


class SimpleDTW(Generic[T]):
    """Full dynamic time warping between two sequences.

    The cumulative grid ``f`` has one extra row and column, seeded with +inf
    except for the origin. On ties the predecessor is chosen in the order up
    (advance x only), left (advance y only), diagonal.
    """

    def __init__(self, x: Sequence[T], y: Sequence[T]):
        self.x = list(x)
        self.y = list(y)
        self.distance = np.zeros((len(self.x), len(self.y)))
        self.f = np.full((len(self.x) + 1, len(self.y) + 1), np.inf)
        self.f[0, 0] = 0.0
        self.path: List[Tuple[int, int]] = []
        self.sum = MAX_DISTANCE

    def compute(self, comparison: DTWComparison[T]) -> float:
        n, m = len(self.x), len(self.y)
        if n == 0 or m == 0:
            self.sum = MAX_DISTANCE
            return self.sum

        for i in range(n):
            for j in range(m):
                self.distance[i, j] = comparison.distance(self.x[i], self.y[j])

        choices = np.full((n + 1, m + 1), DIAGONAL, dtype=np.int8)
        f = self.f
        for i in range(1, n + 1):
            for j in range(1, m + 1):
                up, left, diagonal = f[i - 1, j], f[i, j - 1], f[i - 1, j - 1]
                if up <= diagonal and up <= left:
                    choices[i, j], previous = UP, up
                elif left <= diagonal and left <= up:
                    choices[i, j], previous = LEFT, left
                else:
                    choices[i, j], previous = DIAGONAL, diagonal
                f[i, j] = self.distance[i - 1, j - 1] + previous

        total = f[n, m]
        if not np.isfinite(total):
            self.sum = MAX_DISTANCE
            return self.sum

        self.sum = float(total)
        self.path = self._backtrack(choices)
        return self.sum

    def _backtrack(self, choices: np.ndarray) -> List[Tuple[int, int]]:
        i, j = len(self.x), len(self.y)
        path = []
        while i > 0 and j > 0:
            path.append((i - 1, j - 1))
            choice = choices[i, j]
            if choice == UP:
                i -= 1
            elif choice == LEFT:
                j -= 1
            else:
                i -= 1
                j -= 1
        path.reverse()
        return path

    @property
    def distance_list(self) -> List[float]:
        """Pairwise distances along the warping path"""
        return [float(self.distance[i, j]) for i, j in self.path]
