"""Tests for learning parameters."""

import pytest

from bag_of_key_poses import ClusteringType, LearningParams


class TestLearningParams:

    @pytest.fixture
    def params(self):
        return LearningParams(class_labels=["walk", "run", "jump"], initial_k=10)

    def test_thresholds_from_single_value(self, params):
        params.set_distance_thresholds(400)
        params.set_evidence_thresholds(300)
        assert params.get_distance_threshold("run") == pytest.approx(0.04)
        assert params.get_evidence_threshold("jump") == pytest.approx(0.3)

    def test_thresholds_follow_class_order(self, params):
        params.set_distance_thresholds([100, 200, 300])
        assert params.distance_thresholds == pytest.approx({"walk": 0.01, "run": 0.02, "jump": 0.03})

    def test_positional_values_must_match_classes(self, params):
        with pytest.raises(ValueError):
            params.set_k([1, 2])

    def test_k(self, params):
        assert params.get_k("walk") == 10
        params.set_k([3, 4, 5])
        assert params.get_k("run") == 4

    def test_missing_thresholds(self, params):
        with pytest.raises(ValueError):
            params.get_distance_threshold("walk")
        with pytest.raises(ValueError):
            params.get_source_weight("camera", "walk")

    def test_feature_lengths(self):
        params = LearningParams(sources=["a", "b"], feature_sizes={"a": 4}, feature_size=2)
        assert params.get_feature_length("a") == 4
        assert params.get_feature_length("b") == 2
        assert params.total_feature_length == 6

    def test_clustering_from_string(self):
        assert LearningParams(clustering="random").clustering == ClusteringType.RANDOM

    def test_invalid_windows(self):
        with pytest.raises(ValueError):
            LearningParams(max_frames=5, window_discard=10)
        with pytest.raises(ValueError):
            LearningParams(window_step=0)
        with pytest.raises(ValueError):
            LearningParams(initial_k=0)

    def test_min_frames_above_max_frames(self):
        with pytest.raises(ValueError):
            LearningParams(min_frames=40, max_frames=35)

    def test_window_never_evaluated(self):
        # Windows of 6..8 frames, but attempts only every 5 frames
        with pytest.raises(ValueError):
            LearningParams(min_frames=6, max_frames=7, window_discard=5, window_step=5)
        with pytest.raises(ValueError):
            LearningParams(min_frames=0, max_frames=3, window_discard=2, window_step=5)

    def test_window_evaluated_on_overflow_frame(self):
        # The attempt at max_frames + 1 frames still happens before the discard
        params = LearningParams(min_frames=6, max_frames=9, window_discard=5, window_step=5)
        assert params.max_frames == 9

    def test_dict_round_trip(self, params):
        params.set_k([1, 2, 3])
        restored = LearningParams.from_dict(params.to_dict())
        assert restored == params
