import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, confusion_matrix, f1_score, precision_score, recall_score

from bag_of_key_poses.config import UNKNOWN
from bag_of_key_poses.utils.functions import median, percentile

log = logging.getLogger(__name__)


class RecognitionResults:
    """Ground truth and recognized labels of a test run, and the scores derived from them"""

    def __init__(self, class_labels: Optional[Sequence[str]] = None):
        self.class_labels = list(class_labels) if class_labels else []
        self.y_true: List[str] = []
        self.y_pred: List[str] = []
        self.distances: Dict[str, List[float]] = {}

    def __len__(self) -> int:
        return len(self.y_true)

    def add(self, truth: str, predicted: Optional[str], distance: Optional[float] = None) -> None:
        """Records one recognition, a missing prediction counts as ``UNKNOWN``"""
        predicted = predicted if predicted is not None else UNKNOWN
        self.y_true.append(truth)
        self.y_pred.append(predicted)
        if distance is not None and predicted == truth:
            self.distances.setdefault(truth, []).append(distance)

    def add_continuous(self, truth_frames: Sequence[str], predicted_frames: Sequence[str]) -> None:
        """
        Records frame-wise results of continuous recognition.

        Frames at the end of the stream without a decided label count as ``UNKNOWN``.
        """
        if len(predicted_frames) > len(truth_frames):
            raise ValueError(
                f"More predicted frames than ground truth frames ({len(predicted_frames)} > {len(truth_frames)})"
            )
        missing = len(truth_frames) - len(predicted_frames)
        if missing:
            log.debug("%d frames without decision counted as %s", missing, UNKNOWN)
        for truth, predicted in zip(truth_frames, list(predicted_frames) + [UNKNOWN] * missing):
            self.add(truth, predicted)

    @property
    def labels(self) -> List[str]:
        seen = list(self.class_labels)
        for label in self.y_true + self.y_pred:
            if label not in seen:
                seen.append(label)
        return seen

    def success_rate(self) -> float:
        if not self.y_true:
            return 0.0
        return float(accuracy_score(self.y_true, self.y_pred))

    def f1_score(self) -> float:
        if not self.y_true:
            return 0.0
        return float(f1_score(self.y_true, self.y_pred, labels=self._scored_labels(), average="macro", zero_division=0))

    def metrics(self) -> Dict:
        labels = self._scored_labels()
        correct = sum(1 for truth, predicted in zip(self.y_true, self.y_pred) if truth == predicted)
        return {
            "accuracy": self.success_rate(),
            "macro_precision": float(precision_score(self.y_true, self.y_pred, labels=labels, average="macro", zero_division=0)) if self.y_true else 0.0,
            "macro_recall": float(recall_score(self.y_true, self.y_pred, labels=labels, average="macro", zero_division=0)) if self.y_true else 0.0,
            "macro_f1": self.f1_score(),
            "correct_count": correct,
            "total_count": len(self.y_true),
        }

    def confusion_matrix(self) -> pd.DataFrame:
        """Counts with ground truth as rows and recognized labels as columns"""
        labels = self.labels
        if not self.y_true:
            return pd.DataFrame(np.zeros((len(labels), len(labels)), dtype=int), index=labels, columns=labels)
        matrix = confusion_matrix(self.y_true, self.y_pred, labels=labels)
        return pd.DataFrame(matrix, index=pd.Index(labels, name="truth"), columns=pd.Index(labels, name="predicted"))

    def to_csv(self, path: str) -> None:
        """Writes the confusion matrix with ``count/total`` cells (total per ground truth class)"""
        counts = self.confusion_matrix()
        totals = counts.sum(axis=1)
        cells = counts.apply(lambda row: row.astype(str) + "/" + str(totals[row.name]), axis=1)
        cells["success rate"] = [
            f"{counts.loc[label, label] / totals[label]:.4f}" if totals[label] else "" for label in counts.index
        ]
        cells.to_csv(path)
        log.info("Results written to %s (success rate %.4f)", path, self.success_rate())

    def distance_summary(self) -> pd.DataFrame:
        """Box plot values of the distances of correct recognitions per class (to choose distance thresholds)"""
        rows = {}
        for label, values in self.distances.items():
            rows[label] = {
                "min": min(values),
                "q1": percentile(values, 0.25),
                "median": median(values),
                "q3": percentile(values, 0.75),
                "max": max(values),
                "count": len(values),
            }
        return pd.DataFrame.from_dict(rows, orient="index", columns=["min", "q1", "median", "q3", "max", "count"])

    def _scored_labels(self) -> List[str]:
        # Predicting UNKNOWN is a miss, it is not scored as a class of its own
        return [label for label in self.labels if label != UNKNOWN or label in self.y_true]
