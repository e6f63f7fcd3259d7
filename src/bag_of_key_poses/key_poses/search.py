"""Nearest key pose search."""

from typing import Dict, List, Optional

from bag_of_key_poses.utils.functions import manhattan_distance_bounded, manhattan_distance_normalized

from .KeyPose import KeyPose, KeyPoseMatch

_UNBOUNDED = float("inf")


def closest_among_all(feature, key_poses: Dict[str, List[KeyPose]], pruning: bool = False) -> Optional[KeyPoseMatch]:
    """Nearest key pose of any class.

    With pruning a plain Manhattan distance is accumulated dimension by
    dimension and abandoned once it reaches the best distance so far, so
    missing dimensions are not taken into account. Without pruning the
    normalized distance is used.

    Returns:
        The match, or None if there are no key poses at all.
    """
    closest = None
    min_distance = _UNBOUNDED

    for class_key_poses in key_poses.values():
        for key_pose in class_key_poses:
            better = True
            if pruning:
                distance, better = manhattan_distance_bounded(feature, key_pose.features, min_distance)
            else:
                distance = manhattan_distance_normalized(feature, key_pose.features)

            if closest is None or (better and distance < min_distance):
                min_distance = distance
                closest = key_pose

    if closest is None:
        return None
    return KeyPoseMatch(closest, min_distance)


def closest_per_class(feature, key_poses: Dict[str, List[KeyPose]]) -> Dict[str, KeyPoseMatch]:
    """Nearest key pose of every class that has key poses (normalized distance, unpruned)."""
    matches: Dict[str, KeyPoseMatch] = {}
    for class_label, class_key_poses in key_poses.items():
        for key_pose in class_key_poses:
            distance = manhattan_distance_normalized(feature, key_pose.features)
            if class_label not in matches or distance < matches[class_label].distance:
                matches[class_label] = KeyPoseMatch(key_pose, distance)
    return matches
