import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
from tqdm.auto import tqdm

from bag_of_key_poses.clustering import ClusteringConfig, ClusteringResults, KMeansClustering
from bag_of_key_poses.config import UNKNOWN, ClusteringType, LearningParams
from bag_of_key_poses.key_poses import KeyPose, KeyPoseSequence, closest_among_all
from bag_of_key_poses.progress import ProgressReporter

log = logging.getLogger(__name__)

TrainData = Dict[str, List[Sequence[np.ndarray]]]


class KeyPoseWeighter:
    """Learns the key poses of every class, their weights and the template sequences."""

    def __init__(self, params: LearningParams, progress: Optional[ProgressReporter] = None):
        self.params = params
        self.progress = progress if progress else ProgressReporter()
        self.clustering = KMeansClustering(ClusteringConfig(
            n_init=params.kmeans_attempts,
            n_jobs=params.n_jobs,
            random_state=params.random_state,
        ))

    def learn(self, train_data: TrainData, memory, key_poses_memory: Optional[Dict[str, List[np.ndarray]]] = None,
              calc_weights: bool = True) -> Dict[str, List[KeyPose]]:
        """
        Clusters the frames of every class into key poses and, optionally, weights them.

        Args:
            train_data: Training sequences grouped by class label
            memory: Training memory receiving key poses, SSE and template sequences
            key_poses_memory: Previously learned key pose features per class. Classes found
                here are recovered instead of clustered, new classes are added to it
            calc_weights: Run the weighting pass (also builds the template sequences)

        Returns:
            Key poses per class label
        """
        key_poses: Dict[str, List[KeyPose]] = {}
        total = len(train_data)

        for count, (class_label, sequences) in enumerate(tqdm(
                train_data.items(), desc="Learning key poses", disable=not self.params.verbose)):
            self.progress.report(
                int(count / total * 59 + 10),
                f"Obtaining key poses for {class_label} ({count}/{total})",
            )

            if key_poses_memory is not None and class_label in key_poses_memory:
                key_poses[class_label] = [
                    KeyPose(memory.id_generator.next_id(), class_label, features)
                    for features in key_poses_memory[class_label]
                ]
                log.info("Recovered %d key poses for '%s'", len(key_poses[class_label]), class_label)
                continue

            results = self.cluster_class(class_label, sequences)
            memory.sse[class_label] = results.sse
            key_poses[class_label] = [
                KeyPose(memory.id_generator.next_id(), class_label, center) for center in results.centers
            ]
            if key_poses_memory is not None:
                key_poses_memory.setdefault(class_label, []).extend(
                    key_pose.features.copy() for key_pose in key_poses[class_label]
                )
            log.info("Learned %d key poses for '%s' (SSE %.4f)", len(key_poses[class_label]), class_label, results.sse)

        memory.key_poses = key_poses
        if calc_weights:
            self.within_class_weighting(train_data, memory)
        return key_poses

    def cluster_class(self, class_label: str, sequences: Sequence[Sequence[np.ndarray]]) -> ClusteringResults:
        """Pools all frames of a class and clusters them into its vocabulary"""
        frames = [np.asarray(frame, dtype=float) for sequence in sequences for frame in sequence]
        if not frames:
            log.warning("Class '%s' has no training frames, it will never be recognized", class_label)
            return ClusteringResults(centers=[], labels=np.zeros(0, dtype=int), sse=0.0, compactness_error=0.0)

        k = self.params.get_k(class_label)
        if self.params.clustering == ClusteringType.RANDOM:
            return self.clustering.random_centers(np.stack(frames), k)
        return self.clustering.fit(np.stack(frames), k)

    def within_class_weighting(self, train_data: TrainData, memory) -> None:
        """
        Replays the training frames through the nearest key pose search.

        Counts within-class and out-of-class matches of each key pose, stores the
        matched key pose sequences as templates and sets each weight to the
        within-class rate. Sequences labeled ``UNKNOWN`` are counted but do not
        become templates.
        """
        key_poses = memory.key_poses
        total = len(train_data)

        for count, (class_label, sequences) in enumerate(tqdm(
                train_data.items(), desc="Weighting key poses", disable=not self.params.verbose)):
            self.progress.report(
                int(count / total * 30 + 69),
                f"Weighting key poses of {class_label} ({count}/{total})",
            )
            if class_label != UNKNOWN:
                memory.sequences.setdefault(class_label, [])

            for sequence in sequences:
                matched = KeyPoseSequence(class_label=class_label)
                for feature in sequence:
                    match = closest_among_all(feature, key_poses, pruning=True)
                    if match is None:
                        continue
                    if match.key_pose.class_label == class_label:
                        match.key_pose.within_class += 1
                    else:
                        match.key_pose.out_of_class += 1
                    matched.append(match.key_pose, summarize=self.params.use_summarization)

                if class_label != UNKNOWN:
                    memory.sequences[class_label].append(matched)

        self.progress.report(99, "Normalizing weights...")
        for class_key_poses in key_poses.values():
            for key_pose in class_key_poses:
                key_pose.update_weight()
