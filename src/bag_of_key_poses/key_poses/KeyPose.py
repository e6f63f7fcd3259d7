import itertools
import threading
from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional

import numpy as np


class IdentityGenerator:
    """Thread-safe source of unique, monotonically increasing key pose identities."""

    def __init__(self, start: int = 0):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()
        self._last = start - 1

    def next_id(self) -> int:
        with self._lock:
            self._last = next(self._counter)
            return self._last

    @property
    def next_value(self) -> int:
        return self._last + 1


@dataclass(eq=False)
class KeyPose:
    """Representative pose of a class (a cluster center, or a raw sample).

    Key poses are compared by reference: two key poses are the same only if
    they are the same object.
    """
    identity: Optional[int]
    class_label: Optional[str]
    features: np.ndarray
    weight: float = 0.0
    within_class: int = 0
    out_of_class: int = 0

    def __post_init__(self):
        self.features = np.asarray(self.features, dtype=float).ravel()

    def update_weight(self) -> None:
        """Weight is the within-class rate of the assignments, 0 if never matched."""
        total = self.within_class + self.out_of_class
        if total != 0:
            self.weight = self.within_class / total

    def to_record(self) -> Dict:
        return {
            "identity": self.identity,
            "class_label": self.class_label,
            "weight": self.weight,
            "within_class": self.within_class,
            "out_of_class": self.out_of_class,
            "features": self.features.tolist(),
        }

    @classmethod
    def from_record(cls, record: Dict) -> "KeyPose":
        return cls(
            identity=record["identity"],
            class_label=record["class_label"],
            features=np.asarray(record["features"], dtype=float),
            weight=record.get("weight", 0.0),
            within_class=record.get("within_class", 0),
            out_of_class=record.get("out_of_class", 0),
        )


class KeyPoseMatch(NamedTuple):
    """A key pose found by a nearest neighbour search and the distance it was matched with."""
    key_pose: KeyPose
    distance: float

