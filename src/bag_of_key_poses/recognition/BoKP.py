import copy
import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from bag_of_key_poses.alignment import MAX_DISTANCE, EarlyAbandonDTW, KeyPoseComparison
from bag_of_key_poses.config import UNKNOWN, LearningParams
from bag_of_key_poses.exceptions import TrainingError
from bag_of_key_poses.key_poses import IdentityGenerator, KeyPose, KeyPoseSequence, closest_among_all
from bag_of_key_poses.learning import ActionZoneLearner, KeyPoseWeighter, TrainData
from bag_of_key_poses.memory import TrainingMemory
from bag_of_key_poses.progress import ProgressReporter, ProgressSink

from .ContinuousRecognizer import ContinuousRecognizer

log = logging.getLogger(__name__)


class RecognitionState(Enum):
    IDLE = "idle"
    INITIALIZED = "initialized"
    ACCUMULATING = "accumulating"
    RECOGNIZED = "recognized"
    EXHAUSTED = "exhausted"


class BoKP:
    """Bag of key poses: training and whole-sequence / continuous recognition.

    An instance holds the state of one test sequence at a time and must not be
    shared between threads recognizing different sequences.
    """

    def __init__(self, model: Union[LearningParams, TrainingMemory], progress_sink: Optional[ProgressSink] = None):
        self.memory = model if isinstance(model, TrainingMemory) else TrainingMemory(model)
        self.progress_sink = progress_sink
        self.state = RecognitionState.IDLE
        self.matched_sequence = KeyPoseSequence()
        self._test_sequence: List[np.ndarray] = []
        self._test_index = 0

    @property
    def params(self) -> LearningParams:
        return self.memory.params

    # Training

    def train(self, train_data: TrainData, key_poses_memory: Optional[Dict[str, List[np.ndarray]]] = None) -> TrainingMemory:
        """
        Learns key poses, weights, templates and (optionally) action zones.

        The current memory is only replaced once every stage succeeded.

        Args:
            train_data: Training sequences grouped by class label
            key_poses_memory: Previously learned key pose features per class; classes present
                are not clustered again and newly learned classes are added to it

        Returns:
            The new training memory

        Raises:
            ValueError: The parameters cannot be used with this training data
            TrainingError: A stage failed; nothing has been changed
        """
        self._check_training(train_data)
        progress = ProgressReporter(self.progress_sink)
        memory = TrainingMemory(self.params, IdentityGenerator(self.memory.id_generator.next_value))
        learned_features = copy.deepcopy(key_poses_memory) if key_poses_memory is not None else None
        weighter = KeyPoseWeighter(self.params, progress)

        stage = "key poses"
        try:
            weighter.learn(train_data, memory, learned_features, calc_weights=False)
            if self.params.calc_weights_and_sequences:
                stage = "weighting"
                weighter.within_class_weighting(train_data, memory)
            if self.params.use_zones:
                stage = "zones"
                ActionZoneLearner(self.params).learn(train_data, memory)
        except Exception as exc:
            log.exception("Training failed while learning %s", stage)
            raise TrainingError(stage, str(exc)) from exc

        if key_poses_memory is not None:
            key_poses_memory.clear()
            key_poses_memory.update(learned_features)
        self.memory = memory
        self.reset()
        progress.report(100, "Done.")
        log.info("Trained %d key poses and %d templates for %d classes",
                 memory.num_key_poses(), memory.num_templates(), len(memory.key_poses))
        return memory

    def _check_training(self, train_data: TrainData) -> None:
        if self.params.use_zones:
            for class_label in train_data:
                if class_label != UNKNOWN:
                    self.params.get_evidence_threshold(class_label)
        if self.params.use_source_weights:
            if not self.params.sources:
                raise ValueError("use_source_weights requires sources")
            for source in self.params.sources:
                if not self.params.get_feature_length(source):
                    raise ValueError(f"No feature length configured for source '{source}'")
                for class_label in train_data:
                    if class_label != UNKNOWN:
                        self.params.get_source_weight(source, class_label)

    # Frame by frame

    def reset(self) -> None:
        self.state = RecognitionState.IDLE
        self.matched_sequence = KeyPoseSequence()
        self._test_sequence = []
        self._test_index = 0

    def initialize(self, sequence: Sequence) -> None:
        """Starts recognizing a new test sequence"""
        self._test_sequence = [np.asarray(frame, dtype=float) for frame in sequence]
        self._test_index = 0
        self.matched_sequence = KeyPoseSequence()
        self.state = RecognitionState.INITIALIZED if self._test_sequence else RecognitionState.EXHAUSTED

    def match(self, feature) -> Optional[KeyPose]:
        """Key pose standing for a test frame, None if nothing was learned"""
        if self.params.one_class_learning:
            # The frame may belong to an unknown class, compare it as it is
            return KeyPose(None, None, feature)
        found = closest_among_all(feature, self.memory.key_poses, pruning=True)
        return found.key_pose if found else None

    def step(self) -> bool:
        """
        Matches the next frame and appends its key pose to the matched sequence.

        Returns:
            True if there are frames left
        """
        if self.state == RecognitionState.IDLE:
            raise RuntimeError("No test sequence. Call initialize() first.")
        if self._test_index >= len(self._test_sequence):
            self.state = RecognitionState.EXHAUSTED
            return False

        key_pose = self.match(self._test_sequence[self._test_index])
        if key_pose is not None:
            self.matched_sequence.append(key_pose, summarize=self.params.use_summarization)
        self._test_index += 1

        frames_left = self._test_index < len(self._test_sequence)
        self.state = RecognitionState.ACCUMULATING if frames_left else RecognitionState.EXHAUSTED
        return frames_left

    def match_templates(self, sequence: KeyPoseSequence) -> Tuple[Optional[str], float]:
        """
        Nearest template by early-abandon DTW, bounded by the best distance so far.

        Returns:
            (class label, distance), or (None, MAX_DISTANCE) if no template could be compared
        """
        best_label, best_distance = None, MAX_DISTANCE
        if len(sequence) == 0:
            return best_label, best_distance

        for class_label, templates in self.memory.sequences.items():
            for template in templates:
                if len(template) == 0:
                    continue
                dtw = EarlyAbandonDTW(sequence.items, template.items)
                distance = dtw.compute(KeyPoseComparison(self.memory, template.class_label), best_distance)
                if distance < best_distance:
                    best_label, best_distance = class_label, distance
        return best_label, best_distance

    def classify_matched(self) -> Tuple[Optional[str], float]:
        """Classifies the key poses matched so far"""
        label, distance = self.match_templates(self.matched_sequence)
        if label is not None:
            self.state = RecognitionState.RECOGNIZED
        return label, distance

    # Whole sequences

    def evaluate_sequence(self, sequence: Sequence, return_distance: bool = False):
        """
        Classifies a whole test sequence.

        Returns:
            The class label (None if no class could be selected), and the DTW
            distance if ``return_distance`` is set
        """
        self.initialize(sequence)
        while self.step():
            pass
        label, distance = self.classify_matched()
        if return_distance:
            return label, distance
        return label

    def evaluate_poses(self, sequence: Sequence) -> List[float]:
        """Distance of every frame to its nearest key pose"""
        distances = []
        for feature in sequence:
            found = closest_among_all(feature, self.memory.key_poses, pruning=True)
            distances.append(found.distance if found else MAX_DISTANCE)
        return distances

    # Continuous recognition

    def continuous(self) -> ContinuousRecognizer:
        """New streaming recognizer over this model"""
        return ContinuousRecognizer(self)

    def evaluate_continuous(self, sequence: Sequence) -> List[str]:
        """
        Continuous recognition of a stream of frames.

        Returns:
            The decided label of each frame, in order. Frames still pending at the end
            of the stream have no label, ``UNKNOWN`` marks discarded frames.
        """
        recognizer = self.continuous()
        for frame in sequence:
            recognizer.push(frame)
        return list(recognizer.labels)
