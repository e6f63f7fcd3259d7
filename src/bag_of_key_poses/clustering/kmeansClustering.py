import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from bag_of_key_poses.utils.functions import (
    DISTANCES,
    average_samples,
    manhattan_distance_bounded,
    pairwise_distances,
    sum_of_squared_errors,
)

# Import dataclasses from __init__.py
from . import ClusteringResults

log = logging.getLogger(__name__)

MAX_ERROR = np.finfo(float).max
CHUNK_SIZE = 512  # samples per assignment task


def _as_matrix(samples) -> np.ndarray:
    samples = np.asarray(samples, dtype=float)
    if samples.size == 0:
        return samples.reshape(0, samples.shape[-1] if samples.ndim > 1 else 0)
    return np.atleast_2d(samples)


@dataclass
class ClusteringConfig:
    """Configuration for key pose clustering"""
    n_init: int = 6  # restarts, the most compact run is kept
    max_iter: int = 1000
    init_max_iter: int = 100  # draws allowed when picking distinct random seeds
    tol: float = 1e-6  # centers closer than this (Manhattan) are considered equal
    metric: str = "manhattan_normalized"
    n_jobs: int = 1
    random_state: Optional[int] = None

    def __post_init__(self):
        if self.metric not in DISTANCES:
            raise ValueError(f"Unknown metric '{self.metric}', expected one of {sorted(DISTANCES)}")
        if self.n_init < 1:
            raise ValueError("n_init must be at least 1")


class KMeansClustering:
    """K-means with random initialization and best-of-N restarts.

    Missing dimensions (zero values) are skipped both when measuring distances
    (with the default normalized metric) and when averaging new centers. Fewer
    than K centers are returned if a center ends up without samples.
    """

    def __init__(self, config: ClusteringConfig = None):
        self.config = config if config else ClusteringConfig()
        self.random = np.random.default_rng(self.config.random_state)
        self.cluster_centroids = None

    def fit(self, samples, n_clusters: int) -> ClusteringResults:
        samples = _as_matrix(samples)
        if n_clusters < 1:
            raise ValueError("n_clusters must be at least 1")

        if n_clusters >= len(samples):
            # It doesn't make sense to cluster, every sample is its own center
            self.cluster_centroids = [sample.copy() for sample in samples]
            return ClusteringResults(
                centers=list(self.cluster_centroids),
                labels=np.arange(len(samples)),
                sse=0.0,
                compactness_error=0.0,
            )

        best_centers, best_labels = None, None
        best_error, best_sse = MAX_ERROR, 0.0
        for attempt in range(self.config.n_init):
            seeds = self.pick_random_centers(n_clusters, samples)
            centers, assignments = self._process_groups(samples, seeds)
            error, better = self._compactness_error(samples, centers, assignments, best_error)
            log.debug("k-means attempt %d: %d centers, error %.6f (better=%s)", attempt, len(centers), error, better)
            if better:
                best_error = error
                best_centers, best_labels = self._as_results(len(samples), centers, assignments)
                best_sse = sum_of_squared_errors(samples, best_centers, best_labels)

        self.cluster_centroids = best_centers
        return ClusteringResults(
            centers=best_centers,
            labels=best_labels,
            sse=best_sse,
            compactness_error=best_error,
        )

    def random_centers(self, samples, n_clusters: int) -> ClusteringResults:
        """Random samples as centers, without any k-means refinement."""
        samples = _as_matrix(samples)
        if len(samples) == 0:
            return ClusteringResults(centers=[], labels=np.zeros(0, dtype=int), sse=0.0, compactness_error=0.0)
        seeds = self.pick_random_centers(n_clusters, samples)
        assignments = self.get_cluster_assignments(samples, seeds)
        centers, labels = self._as_results(len(samples), seeds, assignments)
        error, _ = self._compactness_error(samples, seeds, assignments, MAX_ERROR)
        self.cluster_centroids = centers
        return ClusteringResults(
            centers=centers,
            labels=labels,
            sse=sum_of_squared_errors(samples, centers, labels),
            compactness_error=error,
        )

    def predict(self, samples) -> np.ndarray:
        if not self.cluster_centroids:
            raise RuntimeError("Model not fitted. Call fit() first.")
        distances = pairwise_distances(samples, np.stack(self.cluster_centroids), self.config.metric)
        return np.argmin(distances, axis=1)

    def pick_random_centers(self, n_clusters: int, samples: np.ndarray) -> Dict[int, np.ndarray]:
        """Uniformly sampled seeds, rejecting candidates too similar to an already chosen seed."""
        seeds: Dict[int, np.ndarray] = {}
        draws = 0
        while len(seeds) < n_clusters and draws < self.config.init_max_iter:
            draws += 1
            sample = samples[self.random.integers(0, len(samples))]
            if not any(self._too_similar(center, sample) for center in seeds.values()):
                seeds[len(seeds)] = sample.copy()
        return seeds

    def get_cluster_assignments(self, samples: np.ndarray, centers: Dict[int, np.ndarray]) -> Dict[int, List[int]]:
        """Indices of the samples nearest to each center, keyed like ``centers``."""
        keys = list(centers.keys())
        center_matrix = np.stack([centers[key] for key in keys])
        assignments: Dict[int, List[int]] = {}
        lock = threading.Lock()

        def assign(start: int, stop: int) -> None:
            distances = pairwise_distances(samples[start:stop], center_matrix, self.config.metric)
            closest = np.argmin(distances, axis=1)
            with lock:
                for offset, column in enumerate(closest):
                    assignments.setdefault(keys[column], []).append(start + offset)

        chunks = [(start, min(start + CHUNK_SIZE, len(samples))) for start in range(0, len(samples), CHUNK_SIZE)]
        self._fan_out(assign, chunks)
        return {key: sorted(assignments[key]) for key in sorted(assignments)}

    def get_new_centers(self, samples: np.ndarray, assignments: Dict[int, List[int]]) -> Dict[int, np.ndarray]:
        """Averages the samples of every cluster over their non-missing dimensions."""
        new_centers: Dict[int, np.ndarray] = {}
        lock = threading.Lock()

        def update(key: int) -> None:
            center = average_samples(samples[assignments[key]])
            with lock:
                new_centers[key] = center

        self._fan_out(update, [(key,) for key in assignments])
        return {key: new_centers[key] for key in sorted(new_centers)}

    def _process_groups(self, samples: np.ndarray, seeds: Dict[int, np.ndarray]):
        new_centers = seeds
        iteration = 0
        while True:
            assignments = self.get_cluster_assignments(samples, new_centers)
            old_centers = new_centers
            new_centers = self.get_new_centers(samples, assignments)
            iteration += 1
            if self._centers_equal(new_centers.values(), old_centers.values()) or iteration >= self.config.max_iter:
                break
        return new_centers, assignments

    def _compactness_error(self, samples, centers, assignments, min_error: float) -> Tuple[float, bool]:
        """Sum of the distances of each sample to its center, pruned once it reaches min_error."""
        error = 0.0
        for key, indices in assignments.items():
            distances = pairwise_distances(samples[indices], centers[key], self.config.metric)[:, 0]
            running = error + np.cumsum(distances)
            exceeded = np.flatnonzero(running >= min_error)
            if exceeded.size:
                return float(running[exceeded[0]]), False
            error = float(running[-1])
        return error, True

    def _centers_equal(self, new_centers: Iterable[np.ndarray], old_centers: Iterable[np.ndarray]) -> bool:
        old_centers = list(old_centers)
        return all(any(self._too_similar(old, new) for old in old_centers) for new in new_centers)

    def _too_similar(self, a: np.ndarray, b: np.ndarray) -> bool:
        # Plain distance: 'equal' centers must also agree on their empty dimensions
        _, below = manhattan_distance_bounded(a, b, self.config.tol)
        return below

    @staticmethod
    def _as_results(n_samples: int, centers: Dict[int, np.ndarray], assignments: Dict[int, List[int]]):
        keys = list(centers.keys())
        position = {key: i for i, key in enumerate(keys)}
        labels = np.full(n_samples, -1, dtype=int)
        for key, indices in assignments.items():
            labels[indices] = position[key]
        return [centers[key] for key in keys], labels

    def _fan_out(self, work: Callable, arguments: List[tuple]) -> None:
        if self.config.n_jobs > 1 and len(arguments) > 1:
            with ThreadPoolExecutor(max_workers=self.config.n_jobs) as executor:
                # list() re-raises the first worker exception
                list(executor.map(lambda args: work(*args), arguments))
        else:
            for args in arguments:
                work(*args)
