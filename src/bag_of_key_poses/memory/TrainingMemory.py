import logging
from typing import Dict, List, Optional

import joblib
import pandas as pd

from bag_of_key_poses.alignment import PairwiseDistanceCache
from bag_of_key_poses.config import LearningParams
from bag_of_key_poses.key_poses import IdentityGenerator, KeyPose, KeyPoseSequence

log = logging.getLogger(__name__)


class TrainingMemory:
    """The learned model: key poses, template sequences and the parameters that produced them."""

    def __init__(self, params: LearningParams, id_generator: Optional[IdentityGenerator] = None):
        self.params = params
        self.id_generator = id_generator if id_generator else IdentityGenerator()
        self.key_poses: Dict[str, List[KeyPose]] = {}
        self.sequences: Dict[str, List[KeyPoseSequence]] = {}
        self.sse: Dict[str, float] = {}
        self.distance_cache = PairwiseDistanceCache()
        self.correlation_cache = PairwiseDistanceCache()

    def num_key_poses(self) -> int:
        return sum(len(key_poses) for key_poses in self.key_poses.values())

    def num_templates(self) -> int:
        return sum(len(sequences) for sequences in self.sequences.values())

    def key_pose_features(self) -> Dict[str, List]:
        """Features of the learned key poses, usable as ``key_poses_memory`` for incremental training"""
        return {
            class_label: [key_pose.features.copy() for key_pose in key_poses]
            for class_label, key_poses in self.key_poses.items()
        }

    def to_dict(self) -> Dict:
        return {
            "params": self.params.to_dict(),
            "key_poses": [
                key_pose.to_record() for key_poses in self.key_poses.values() for key_pose in key_poses
            ],
            "sequences": [
                sequence.to_record() for sequences in self.sequences.values() for sequence in sequences
            ],
            "sse": dict(self.sse),
            "next_identity": self.id_generator.next_value,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "TrainingMemory":
        params = LearningParams.from_dict(data["params"])
        memory = cls(params, IdentityGenerator(data.get("next_identity", 0)))

        by_identity: Dict[int, KeyPose] = {}
        for record in data["key_poses"]:
            key_pose = KeyPose.from_record(record)
            by_identity[key_pose.identity] = key_pose
            memory.key_poses.setdefault(key_pose.class_label, []).append(key_pose)

        for record in data["sequences"]:
            try:
                items = [by_identity[identity] for identity in record["key_pose_ids"]]
            except KeyError as exc:
                raise ValueError(f"Sequence of '{record['class_label']}' references unknown key pose {exc}") from exc
            sequence = KeyPoseSequence(items=items, class_label=record["class_label"])
            memory.sequences.setdefault(sequence.class_label, []).append(sequence)

        memory.sse = dict(data.get("sse", {}))
        if by_identity:
            # Never hand out an identity that is already taken
            memory.id_generator = IdentityGenerator(max(memory.id_generator.next_value, max(by_identity) + 1))
        return memory

    def save(self, path: str) -> None:
        joblib.dump(self.to_dict(), path)
        log.info("Saved %d key poses and %d templates to %s", self.num_key_poses(), self.num_templates(), path)

    @staticmethod
    def load(path: str) -> "TrainingMemory":
        return TrainingMemory.from_dict(joblib.load(path))

    def key_poses_frame(self) -> pd.DataFrame:
        """One row per key pose (identity, class label, weight, counters, features)"""
        records = [key_pose.to_record() for key_poses in self.key_poses.values() for key_pose in key_poses]
        return pd.DataFrame.from_records(
            records, columns=["identity", "class_label", "weight", "within_class", "out_of_class", "features"]
        )

    def sequences_frame(self) -> pd.DataFrame:
        """One row per template sequence (class label, length, key pose identities)"""
        rows = []
        for sequences in self.sequences.values():
            for index, sequence in enumerate(sequences):
                record = sequence.to_record()
                record["index"] = index
                record["length"] = len(sequence)
                rows.append(record)
        return pd.DataFrame.from_records(rows, columns=["class_label", "index", "length", "key_pose_ids"])
