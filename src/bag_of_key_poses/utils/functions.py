"""Vector distances, statistics and vector arithmetic.

A feature value of exactly zero marks a missing or irrelevant dimension. The
normalized distances only consider dimensions that are present in both vectors.
"""

import math
from typing import Iterable, Sequence, Tuple

import numpy as np
from scipy.spatial.distance import cdist

from bag_of_key_poses.exceptions import DimensionMismatchError

NO_MATCH_DISTANCE = 100000.0  # no dimension in common, the samples are not similar


def as_pair(a, b, operation: str) -> Tuple[np.ndarray, np.ndarray]:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise DimensionMismatchError(operation, a.size, b.size)
    return a, b


def manhattan_distance(a, b) -> float:
    a, b = as_pair(a, b, "manhattan_distance")
    return float(np.abs(a - b).sum())


def manhattan_distance_bounded(a, b, bound: float) -> Tuple[float, bool]:
    """Manhattan distance with branch & bound.

    The accumulation stops as soon as the running sum reaches ``bound``.

    Returns:
        (distance, better). When ``better`` is False the distance is partial and
        must be ignored by the caller.
    """
    a, b = as_pair(a, b, "manhattan_distance_bounded")
    partial = np.cumsum(np.abs(a - b))
    exceeded = np.flatnonzero(partial >= bound)
    if exceeded.size:
        return float(partial[exceeded[0]]), False
    return (float(partial[-1]) if partial.size else 0.0), True


def manhattan_distance_normalized(a, b) -> float:
    """Manhattan distance over the jointly non-zero dimensions, divided by their count."""
    a, b = as_pair(a, b, "manhattan_distance_normalized")
    mask = (a != 0) & (b != 0)
    matching = int(mask.sum())
    if matching == 0:
        return NO_MATCH_DISTANCE
    return float(np.abs(a[mask] - b[mask]).sum() / matching)


def euclidean_distance(a, b) -> float:
    a, b = as_pair(a, b, "euclidean_distance")
    return float(np.sqrt(((a - b) ** 2).sum()))


def euclidean_distance_normalized(a, b) -> float:
    a, b = as_pair(a, b, "euclidean_distance_normalized")
    mask = (a != 0) & (b != 0)
    matching = int(mask.sum())
    if matching == 0:
        return NO_MATCH_DISTANCE
    return float(np.sqrt(((a[mask] - b[mask]) ** 2).sum() / matching))


def correlation(a, b) -> float:
    """Sample correlation coefficient (similarity in [-1, 1]).

    Vectors without variance have no defined correlation, 0 is returned.
    """
    a, b = as_pair(a, b, "correlation")
    if a.size == 0:
        return 0.0
    a_des = a - a.mean()
    b_des = b - b.mean()
    denominator = math.sqrt((a_des * a_des).sum() * (b_des * b_des).sum())
    if denominator == 0:
        return 0.0
    return float((a_des * b_des).sum() / denominator)


def _normalized_pairwise(samples: np.ndarray, centers: np.ndarray, squared: bool) -> np.ndarray:
    mask = (samples[:, None, :] != 0) & (centers[None, :, :] != 0)
    diff = samples[:, None, :] - centers[None, :, :]
    diff = diff * diff if squared else np.abs(diff)
    total = np.where(mask, diff, 0.0).sum(axis=2)
    matching = mask.sum(axis=2)
    mean = total / np.maximum(matching, 1)
    if squared:
        mean = np.sqrt(mean)
    return np.where(matching > 0, mean, NO_MATCH_DISTANCE)


def pairwise_distances(samples, centers, metric: str = "manhattan_normalized") -> np.ndarray:
    """Distance of every sample (rows) to every center (columns).

    Supported metrics: ``manhattan_normalized``, ``euclidean_normalized``,
    ``manhattan`` and ``euclidean``.
    """
    samples = np.atleast_2d(np.asarray(samples, dtype=float))
    centers = np.atleast_2d(np.asarray(centers, dtype=float))
    if samples.shape[1] != centers.shape[1]:
        raise DimensionMismatchError("pairwise_distances", samples.shape[1], centers.shape[1])

    if metric == "manhattan_normalized":
        return _normalized_pairwise(samples, centers, squared=False)
    if metric == "euclidean_normalized":
        return _normalized_pairwise(samples, centers, squared=True)
    if metric == "manhattan":
        return cdist(samples, centers, metric="cityblock")
    if metric == "euclidean":
        return cdist(samples, centers, metric="euclidean")
    raise ValueError(f"Unknown metric '{metric}'")


DISTANCES = {
    "manhattan_normalized": manhattan_distance_normalized,
    "euclidean_normalized": euclidean_distance_normalized,
    "manhattan": manhattan_distance,
    "euclidean": euclidean_distance,
}


# Statistics

def median(values: Iterable[float]) -> float:
    """Median value (average of the two central values for an even count)."""
    values = list(values)
    if not values:
        raise ValueError("median of an empty sequence")
    return float(np.median(values))


def percentile(values: Iterable[float], excel_percentile: float) -> float:
    """Inclusive percentile, 0.25 for Q1, 0.5 for the median and 0.75 for Q3."""
    values = list(values)
    if not values:
        raise ValueError("percentile of an empty sequence")
    return float(np.percentile(values, excel_percentile * 100.0))


def std_dev(values: Iterable[float], return_mean: bool = False):
    """Corrected sample standard deviation.

    Args:
        values: Sample values.
        return_mean: Also return the average of the values.

    Returns:
        The standard deviation, or (std, mean) if ``return_mean`` is set. Both
        are 0 for an empty input, the deviation is 0 for a single value.
    """
    values = np.asarray(list(values), dtype=float)
    std, mean = 0.0, 0.0
    if values.size > 0:
        mean = float(values.mean())
        std = float(values.std(ddof=1)) if values.size > 1 else 0.0
    if return_mean:
        return std, mean
    return std


# Vector arithmetic

def sum_samples(samples) -> Tuple[np.ndarray, np.ndarray]:
    """Per-dimension sum of the non-missing values of samples and how many were summed."""
    samples = np.atleast_2d(np.asarray(samples, dtype=float))
    present = samples != 0
    return np.where(present, samples, 0.0).sum(axis=0), present.sum(axis=0)


def normalize_by_count(array, count) -> np.ndarray:
    """Divides each element by its count, leaving 0 where the count is 0."""
    array, count = as_pair(array, count, "normalize_by_count")
    result = np.zeros_like(array)
    present = count > 0
    result[present] = array[present] / count[present]
    return result


def average_samples(samples) -> np.ndarray:
    """Average of the samples computed only over their non-missing values."""
    total, count = sum_samples(samples)
    return normalize_by_count(total, count)


def sum_of_squared_errors(samples, centers: Sequence, labels) -> float:
    """Sum of squared differences of each sample to the center it is assigned to."""
    samples = np.asarray(samples, dtype=float)
    if samples.size == 0 or len(centers) == 0:
        return 0.0
    centers = np.asarray(centers, dtype=float)
    labels = np.asarray(labels, dtype=int)
    assigned = labels >= 0
    return float(((samples[assigned] - centers[labels[assigned]]) ** 2).sum())

