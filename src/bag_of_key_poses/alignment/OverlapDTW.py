from typing import Generic, Sequence, TypeVar

import numpy as np

from . import DTWComparison

T = TypeVar("T")


class OverlapDTW(Generic[T]):
    """Similarity alignment where either sequence may start and end unaligned.

    Border row and column are 0, so the alignment can start anywhere. Each
    cell keeps the best of: staying on y while advancing x (penalised by how
    little consecutive x elements correlate), the symmetric move on y, or
    matching x[i-1] with y[j-1] (adding their correlation). The score is the
    best value of the last row or the last column.

    Appending unrelated elements to y keeps the score only while the best
    cell lies in the last row, i.e. the best alignment uses all of x. An
    alignment that leaves the end of x unused is scored on the last column,
    and padding y moves that column away from it.
    """

    def __init__(self, x: Sequence[T], y: Sequence[T]):
        self.x = list(x)
        self.y = list(y)
        self.f = np.zeros((len(self.x) + 1, len(self.y) + 1))
        self.sum = 0.0

    def compute(self, comparison: DTWComparison[T]) -> float:
        n, m = len(self.x), len(self.y)
        if n == 0 or m == 0:
            self.sum = 0.0
            return self.sum

        x_penalty = [0.0] + [1.0 - comparison.correlation(self.x[i - 1], self.x[i]) for i in range(1, n)]
        y_penalty = [0.0] + [1.0 - comparison.correlation(self.y[j - 1], self.y[j]) for j in range(1, m)]

        f = self.f
        for i in range(1, n + 1):
            for j in range(1, m + 1):
                first = f[i - 1, j] - x_penalty[i - 1] if i >= 2 else 0.0
                second = f[i, j - 1] - y_penalty[j - 1] if j >= 2 else 0.0
                third = f[i - 1, j - 1] + comparison.correlation(self.x[i - 1], self.y[j - 1])
                f[i, j] = max(first, second, third)

        self.sum = float(max(f[n, 1:].max(), f[1:, m].max()))
        return self.sum
