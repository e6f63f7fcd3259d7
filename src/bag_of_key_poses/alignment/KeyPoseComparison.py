from typing import Callable, Optional

import numpy as np

from bag_of_key_poses.key_poses import KeyPose
from bag_of_key_poses.utils.functions import as_pair, correlation, manhattan_distance_normalized

from .DistanceCache import PairwiseDistanceCache


class KeyPoseComparison:
    """Distance and correlation between key poses, for the DTW family.

    Closes over the learning parameters of a memory, its caches and the class
    label of the sequence being compared. With source weights, every source's
    sub-vector is compared separately and weighted as if the sequence did
    belong to ``sequence_class_label``; cached values are then also keyed by
    that label.
    """

    def __init__(self, memory, sequence_class_label: Optional[str] = None):
        self.params = memory.params
        self.distance_cache: Optional[PairwiseDistanceCache] = memory.distance_cache
        self.correlation_cache: Optional[PairwiseDistanceCache] = memory.correlation_cache
        self.sequence_class_label = sequence_class_label

    def distance(self, a: KeyPose, b: KeyPose) -> float:
        if a is b:
            return 0.0
        return self._cached(self.distance_cache, a, b, self.feature_distance)

    def correlation(self, a: KeyPose, b: KeyPose) -> float:
        return self._cached(self.correlation_cache, a, b, self.feature_correlation)

    def feature_distance(self, a, b) -> float:
        if not self.params.use_source_weights:
            return manhattan_distance_normalized(a, b)

        a, b = as_pair(a, b, "feature_distance")
        total = 0.0
        for source, start, stop in self._source_slices():
            length = stop - start
            local = np.abs(a[start:stop] - b[start:stop]).sum()
            total += local / length * self.params.get_source_weight(source, self.sequence_class_label)
        return float(total)

    def feature_correlation(self, a, b) -> float:
        if not self.params.use_source_weights:
            return correlation(a, b)

        a, b = as_pair(a, b, "feature_correlation")
        total = 0.0
        for source, start, stop in self._source_slices():
            local = correlation(a[start:stop], b[start:stop])
            total += local * self.params.get_source_weight(source, self.sequence_class_label)
        return float(total)

    def _source_slices(self):
        position = 0
        for source in self.params.sources:
            length = self.params.get_feature_length(source)
            yield source, position, position + length
            position += length

    def _cached(self, cache: Optional[PairwiseDistanceCache], a: KeyPose, b: KeyPose,
                compute: Callable[[np.ndarray, np.ndarray], float]) -> float:
        # Ad-hoc poses (one-class recognition) have no identity and are never cached
        if cache is None or a.identity is None or b.identity is None:
            return compute(a.features, b.features)

        context = self.sequence_class_label if self.params.use_source_weights else None
        value = cache.get(a.identity, b.identity, context)
        if value is None:
            value = compute(a.features, b.features)
            cache.set(a.identity, b.identity, value, context)
        return value
