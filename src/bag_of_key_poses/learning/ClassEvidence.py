import math
from collections import deque
from typing import Deque, Dict, Iterable, Mapping

from bag_of_key_poses.config import (
    EVIDENCE_FALLBACK,
    EVIDENCE_SHARPENING,
    GAUSSIAN_WEIGHTS,
    HISTORY_COUNT,
    HMAX,
)
from bag_of_key_poses.key_poses import KeyPoseMatch


class ClassEvidence:
    """Smoothed per-class evidence over a stream of frames.

    For every frame, the nearest key pose of each class gives a raw sample
    ``weight / distance / HMAX``. The last ``HISTORY_COUNT`` samples of a
    class are averaged with a decreasing kernel (index 0 is the current frame)
    and sharpened with ``exp(EVIDENCE_SHARPENING * average)``.
    """

    def __init__(self, class_labels: Iterable[str], history_count: int = HISTORY_COUNT):
        self.class_labels = list(class_labels)
        self.history: Dict[str, Deque[float]] = {
            label: deque(maxlen=history_count) for label in self.class_labels
        }

    def reset(self) -> None:
        for history in self.history.values():
            history.clear()

    def _sample(self, history: Deque[float], match: KeyPoseMatch) -> float:
        if match is None:
            # Class without key poses, it can never be matched
            return 0.0
        if match.distance != 0:
            return match.key_pose.weight / match.distance / HMAX
        # Key pose equal to the pose: replay the last value, or a very good match
        return history[-1] if history else EVIDENCE_FALLBACK

    def update(self, matches: Mapping[str, KeyPoseMatch]) -> Dict[str, float]:
        """Adds the per-class nearest key poses of a new frame.

        Args:
            matches: Nearest key pose of each class, as returned by ``closest_per_class``.

        Returns:
            The evidence of every class label after this frame.
        """
        evidence = {}
        for label in self.class_labels:
            history = self.history[label]
            history.append(self._sample(history, matches.get(label)))

            smoothed = 0.0
            total_weights = 0
            for weight, value in zip(GAUSSIAN_WEIGHTS, reversed(history)):
                smoothed += weight * value
                total_weights += weight
            evidence[label] = math.exp(EVIDENCE_SHARPENING * smoothed / total_weights)
        return evidence
