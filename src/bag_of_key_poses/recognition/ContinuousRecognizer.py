import logging
from typing import List, Optional

from bag_of_key_poses.config import PROCESSING, UNKNOWN
from bag_of_key_poses.key_poses import KeyPoseSequence

log = logging.getLogger(__name__)


class ContinuousRecognizer:
    """Per-frame labels for a stream of frames, using a growing and sliding window.

    Once the window holds ``min_frames`` frames, and then every ``window_step``
    frames, the matched key poses are classified. A result is accepted if its
    DTW distance is at most the distance threshold of the class times the
    window length; all frames of the window then get that label and a new
    window starts. A window growing beyond ``max_frames`` drops its oldest
    ``window_discard`` frames, which are labeled ``UNKNOWN``.
    """

    def __init__(self, model):
        self.model = model
        self.params = model.params
        for class_label, templates in model.memory.sequences.items():
            if templates:
                self.params.get_distance_threshold(class_label)

        self.window = KeyPoseSequence()
        self.window_frames = 0
        self.labels: List[str] = []
        self.frames = 0

    @property
    def pending(self) -> int:
        """Frames received but not labeled yet"""
        return self.window_frames

    def snapshot(self) -> List[str]:
        """Labels of all frames received so far, ``PROCESSING`` for those not decided yet"""
        return self.labels + [PROCESSING] * self.window_frames

    def push(self, frame) -> List[str]:
        """
        Adds the next frame of the stream.

        Returns:
            Labels decided because of this frame (possibly none), in frame order
        """
        decided: List[str] = []
        key_pose = self.model.match(frame)
        if key_pose is not None:
            self.window.append(key_pose, summarize=self.params.use_summarization)
        self.window_frames += 1
        self.frames += 1

        evaluate = (
            self.window_frames >= self.params.min_frames
            and self.window_frames % self.params.window_step == 0
        )

        if self.window_frames > self.params.max_frames:
            discard = self.params.window_discard
            self.window.drop_oldest(discard)
            self.window_frames -= discard
            decided.extend([UNKNOWN] * discard)
            log.debug("Frame %d: no match within %d frames, %d frames discarded",
                      self.frames, self.params.max_frames, discard)

        if evaluate:
            label, distance = self.model.match_templates(self.window)
            if self._accept(label, distance):
                log.debug("Frame %d: '%s' recognized over %d frames (distance %.6g)",
                          self.frames, label, self.window_frames, distance)
                decided.extend([label] * self.window_frames)
                self.window = KeyPoseSequence()
                self.window_frames = 0

        self.labels.extend(decided)
        return decided

    def _accept(self, label: Optional[str], distance: float) -> bool:
        if label is None:
            return False
        return distance <= self.params.get_distance_threshold(label) * self.window_frames
