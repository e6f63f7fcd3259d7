from dataclasses import dataclass
from typing import List

import numpy as np


@dataclass
class ClusteringResults:
    """Results of clustering the frames of one class"""
    centers: List[np.ndarray]  # Cluster centers, at most K
    labels: np.ndarray  # Index into centers for every sample
    sse: float  # Sum of squared errors of the chosen solution
    compactness_error: float  # Sum of sample to center distances used to pick the best run


from .kmeansClustering import ClusteringConfig, KMeansClustering  # noqa: E402
