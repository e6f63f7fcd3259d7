"""Learning parameters and the constants shared by learning and recognition."""

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

# Continuous recognition
WINDOW_STEP = 5  # frames to accumulate before retrying DTW
WINDOW_DISCARD = 10  # oldest frames dropped when the window grows too long
UNKNOWN = "unknown"
PROCESSING = "processing"

# Class evidence smoothing
HISTORY_COUNT = 22
# GAUSSIAN_WEIGHTS[0] is the current frame t, GAUSSIAN_WEIGHTS[1] the frame t-1, etc. (sigma = 10.486 frames)
GAUSSIAN_WEIGHTS = (20, 20, 20, 20, 20, 19, 19, 19, 18, 18, 17, 17, 16, 16, 15, 14, 14, 13, 13, 12, 11, 11)
HMAX = 5000.0  # highest plausible evidence value (estimated 3468.68)
EVIDENCE_FALLBACK = 0.1  # already normalized, used when a key pose equals the pose
EVIDENCE_SHARPENING = 10.0

KMEANS_ATTEMPTS = 6


class ClusteringType(Enum):
    KMEANS = "kmeans"
    RANDOM = "random"


@dataclass
class LearningParams:
    """Parameters of the learning stage and of continuous recognition.

    Per-class values are kept as mappings keyed by class label. The positional
    setters (``set_k``, ``set_evidence_thresholds``, ``set_distance_thresholds``)
    follow the order of ``class_labels``.
    """
    class_labels: List[str] = None
    initial_k: int = 10
    k: Optional[Dict[str, int]] = None
    feature_size: Optional[int] = None

    # Feature fusion (e.g. one source per camera view)
    sources: Optional[List[str]] = None
    feature_sizes: Optional[Dict[str, int]] = None
    source_weights: Optional[Dict[str, Dict[str, float]]] = None
    use_source_weights: bool = False

    one_class_learning: bool = False
    calc_weights_and_sequences: bool = True
    use_summarization: bool = False
    use_zones: bool = False
    clustering: ClusteringType = ClusteringType.KMEANS
    kmeans_attempts: int = KMEANS_ATTEMPTS

    # Zones and continuous recognition
    evidence_thresholds: Optional[Dict[str, float]] = None
    distance_thresholds: Optional[Dict[str, float]] = None
    min_frames: int = 5
    max_frames: int = 35
    window_step: int = WINDOW_STEP
    window_discard: int = WINDOW_DISCARD

    random_state: Optional[int] = None
    n_jobs: int = 1
    verbose: bool = False

    def __post_init__(self):
        if self.class_labels is None:
            self.class_labels = []
        else:
            self.class_labels = list(self.class_labels)
        if isinstance(self.clustering, str):
            self.clustering = ClusteringType(self.clustering)
        if self.initial_k < 1:
            raise ValueError("initial_k must be at least 1")
        if self.min_frames < 0 or self.max_frames < 1:
            raise ValueError("min_frames must be >= 0 and max_frames >= 1")
        if self.window_step < 1:
            raise ValueError("window_step must be at least 1")
        if not 0 < self.window_discard <= self.max_frames:
            raise ValueError("window_discard must be in (0, max_frames]")
        if self.min_frames > self.max_frames:
            raise ValueError("min_frames must not exceed max_frames")
        # Windows of min_frames..max_frames + 1 frames are tried at multiples of window_step
        first_attempt = math.ceil(max(self.min_frames, 1) / self.window_step) * self.window_step
        if first_attempt > self.max_frames + 1:
            raise ValueError(
                f"No multiple of window_step={self.window_step} between min_frames={self.min_frames} "
                f"and max_frames + 1={self.max_frames + 1}, the window would never be evaluated"
            )

    def get_k(self, class_label: str) -> int:
        if self.k is None:
            return self.initial_k
        return self.k.get(class_label, self.initial_k)

    def get_feature_length(self, source: str) -> int:
        if self.feature_sizes is None or source not in self.feature_sizes:
            return self.feature_size
        return self.feature_sizes[source]

    @property
    def total_feature_length(self) -> Optional[int]:
        if not self.sources:
            return self.feature_size
        return sum(self.get_feature_length(source) for source in self.sources)

    def get_source_weight(self, source: str, class_label: str) -> float:
        try:
            return self.source_weights[source][class_label]
        except (KeyError, TypeError):
            raise ValueError(f"No source weight configured for source '{source}' and class '{class_label}'")

    def get_evidence_threshold(self, class_label: str) -> float:
        if self.evidence_thresholds is None or class_label not in self.evidence_thresholds:
            raise ValueError(f"No evidence threshold configured for class '{class_label}'")
        return self.evidence_thresholds[class_label]

    def get_distance_threshold(self, class_label: str) -> float:
        if self.distance_thresholds is None or class_label not in self.distance_thresholds:
            raise ValueError(f"No distance threshold configured for class '{class_label}'")
        return self.distance_thresholds[class_label]

    def set_k(self, values: Sequence[int]) -> None:
        """Sets class specific K's in the order of ``class_labels``."""
        self.k = self._positional(values)

    def set_evidence_thresholds(self, selection: Union[int, Sequence[int]]) -> None:
        """Sets evidence thresholds, values expressed in 10^3."""
        self.evidence_thresholds = {
            label: value / 1000.0 for label, value in self._broadcast(selection).items()
        }

    def set_distance_thresholds(self, selection: Union[int, Sequence[int]]) -> None:
        """Sets per-frame DTW distance thresholds, values expressed in 10^4."""
        self.distance_thresholds = {
            label: value / 10000.0 for label, value in self._broadcast(selection).items()
        }

    def _broadcast(self, selection):
        if isinstance(selection, (int, float)):
            return {label: selection for label in self.class_labels}
        return self._positional(selection)

    def _positional(self, values):
        values = list(values)
        if len(values) != len(self.class_labels):
            raise ValueError(
                f"Expected {len(self.class_labels)} values (one per class label), got {len(values)}"
            )
        return dict(zip(self.class_labels, values))

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["clustering"] = self.clustering.value
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "LearningParams":
        return cls(**data)
