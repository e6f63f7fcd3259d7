import logging
from typing import Dict, List, Optional

from tqdm.auto import tqdm

from bag_of_key_poses.config import UNKNOWN, LearningParams
from bag_of_key_poses.key_poses import KeyPoseSequence, closest_per_class
from bag_of_key_poses.utils.functions import median, std_dev

from .ClassEvidence import ClassEvidence
from .KeyPoseWeighter import TrainData

log = logging.getLogger(__name__)


class ActionZoneLearner:
    """Extracts action zones: the parts of the training sequences where the class evidence stands out.

    While the evidence of the ground-truth class exceeds the median evidence
    of the other classes by the class threshold, frames are collected into a
    zone. A zone is closed when it reaches ``max_frames`` or when the evidence
    drops, and it is kept only if it holds at least ``min_frames`` key poses.
    Sequences without any zone are kept whole.
    """

    def __init__(self, params: LearningParams):
        self.params = params

    def learn(self, train_data: TrainData, memory) -> Optional[Dict[str, List[KeyPoseSequence]]]:
        """
        Replaces the template sequences of the memory with action zones.

        Returns:
            Zones per class label, or None if no zone could be produced (templates are left as they were)
        """
        zones: Dict[str, List[KeyPoseSequence]] = {}

        for class_label, sequences in tqdm(train_data.items(), desc="Learning action zones",
                                           disable=not self.params.verbose):
            if class_label == UNKNOWN:
                continue
            threshold = self.params.get_evidence_threshold(class_label)
            class_zones = zones.setdefault(class_label, [])
            whole = 0
            for sequence in sequences:
                found, full = self.sequence_zones(class_label, sequence, memory, threshold)
                if found:
                    class_zones.extend(found)
                else:
                    whole += 1
                    class_zones.append(full)

            lengths = [len(zone) for zone in class_zones]
            if lengths:
                log.info(
                    "'%s': %d zones (%d whole sequences), length median %.1f std %.2f",
                    class_label, len(class_zones), whole, median(lengths), std_dev(lengths),
                )

        if sum(len(class_zones) for class_zones in zones.values()) == 0:
            log.warning("No action zones could be learned, keeping the template sequences")
            return None

        memory.sequences = zones
        return zones

    def _matches(self, sequence, memory):
        for feature in sequence:
            matches = closest_per_class(feature, memory.key_poses)
            if not matches:
                continue
            yield matches, min(matches.values(), key=lambda match: match.distance).key_pose

    def sequence_zones(self, class_label: str, sequence, memory, threshold: float):
        """Zones of one training sequence, and its full matched key pose sequence"""
        evidence = ClassEvidence(self.params.class_labels or memory.key_poses.keys())
        found: List[KeyPoseSequence] = []
        zone = KeyPoseSequence(class_label=class_label)
        full = KeyPoseSequence(class_label=class_label)

        for matches, key_pose in self._matches(sequence, memory):
            full.append(key_pose)
            values = evidence.update(matches)
            others = [value for label, value in values.items() if label != class_label]
            reference = median(others) if others else 0.0

            if values.get(class_label, 0.0) > reference + threshold:
                zone.append(key_pose)
                if len(zone) >= self.params.max_frames:
                    found.append(zone)
                    zone = KeyPoseSequence(class_label=class_label)
            elif len(zone) > 0:
                if len(zone) >= self.params.min_frames:
                    found.append(zone)
                zone = KeyPoseSequence(class_label=class_label)

        if len(zone) > 0 and len(zone) >= self.params.min_frames:
            found.append(zone)
        return found, full
