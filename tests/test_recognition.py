"""Tests for training and whole-sequence recognition."""

import numpy as np
import pytest

from bag_of_key_poses import BoKP, LearningParams, RecognitionState, TrainingError, TrainingMemory
from bag_of_key_poses.alignment import MAX_DISTANCE
from bag_of_key_poses.learning import KeyPoseWeighter

from conftest import BLUE, GREEN, RED

ORANGE = np.array([0.9, 0.3, 0.1])


class TestTraining:

    def test_train(self, one_hot_params, one_hot_train_data):
        bokp = BoKP(one_hot_params)
        memory = bokp.train(one_hot_train_data)

        assert bokp.memory is memory
        assert memory.num_key_poses() == 3
        assert memory.num_templates() == 3
        for label in ("red", "green", "blue"):
            assert len(memory.key_poses[label]) == 1
            assert memory.key_poses[label][0].weight == 1.0

    def test_progress_sink(self, one_hot_params, one_hot_train_data):
        updates = []
        BoKP(one_hot_params, progress_sink=lambda percentage, message: updates.append((percentage, message))).train(
            one_hot_train_data
        )
        assert updates[-1] == (100, "Done.")
        assert updates[0][0] == 10

    def test_failure_keeps_previous_memory(self, one_hot_params, one_hot_train_data, monkeypatch):
        bokp = BoKP(one_hot_params)
        previous = bokp.train(one_hot_train_data)
        key_poses_memory = {"red": [RED.copy()]}

        def broken(self, train_data, memory):
            raise RuntimeError("weighting exploded")

        monkeypatch.setattr(KeyPoseWeighter, "within_class_weighting", broken)
        with pytest.raises(TrainingError) as info:
            bokp.train(one_hot_train_data, key_poses_memory)

        assert info.value.stage == "weighting"
        assert isinstance(info.value.__cause__, RuntimeError)
        assert bokp.memory is previous
        assert list(key_poses_memory) == ["red"]

    def test_retraining_keeps_identities_unique(self, one_hot_params, one_hot_train_data):
        bokp = BoKP(one_hot_params)
        first = bokp.train(one_hot_train_data)
        second = bokp.train(one_hot_train_data)
        first_ids = {key_pose.identity for poses in first.key_poses.values() for key_pose in poses}
        second_ids = {key_pose.identity for poses in second.key_poses.values() for key_pose in poses}
        assert not first_ids & second_ids

    def test_incremental_training(self, one_hot_params, one_hot_train_data):
        key_poses_memory = {"red": [np.array([1.0, 0.0, 0.0])]}
        BoKP(one_hot_params).train(one_hot_train_data, key_poses_memory)
        assert set(key_poses_memory) == {"red", "green", "blue"}

    def test_zones_need_evidence_thresholds(self, one_hot_params, one_hot_train_data):
        one_hot_params.use_zones = True
        with pytest.raises(ValueError):
            BoKP(one_hot_params).train(one_hot_train_data)

    def test_zones(self, one_hot_params, one_hot_train_data):
        one_hot_params.use_zones = True
        one_hot_params.set_evidence_thresholds(300)
        memory = BoKP(one_hot_params).train(one_hot_train_data)
        assert [len(zone) for zone in memory.sequences["green"]] == [35, 35, 30]

    def test_source_weights_need_weights(self, one_hot_params, one_hot_train_data):
        one_hot_params.use_source_weights = True
        one_hot_params.sources = ["only"]
        one_hot_params.feature_sizes = {"only": 3}
        with pytest.raises(ValueError):
            BoKP(one_hot_params).train(one_hot_train_data)


class TestWholeSequence:

    @pytest.fixture
    def bokp(self, one_hot_params, one_hot_train_data):
        bokp = BoKP(one_hot_params)
        bokp.train(one_hot_train_data)
        return bokp

    def test_held_out_vector(self, bokp):
        assert bokp.evaluate_sequence([ORANGE] * 100) == "red"

    def test_every_class(self, bokp):
        assert bokp.evaluate_sequence([RED] * 20) == "red"
        assert bokp.evaluate_sequence([GREEN] * 20) == "green"
        assert bokp.evaluate_sequence([BLUE] * 20) == "blue"

    def test_distance(self, bokp):
        label, distance = bokp.evaluate_sequence([ORANGE] * 10, return_distance=True)
        assert label == "red"
        assert distance == 0.0

    def test_state_machine(self, bokp):
        assert bokp.state == RecognitionState.IDLE
        with pytest.raises(RuntimeError):
            bokp.step()

        bokp.initialize([GREEN, GREEN, GREEN])
        assert bokp.state == RecognitionState.INITIALIZED
        assert bokp.step()
        assert bokp.state == RecognitionState.ACCUMULATING
        assert bokp.step()
        assert not bokp.step()
        assert bokp.state == RecognitionState.EXHAUSTED
        assert len(bokp.matched_sequence) == 3

        label, _ = bokp.classify_matched()
        assert label == "green"
        assert bokp.state == RecognitionState.RECOGNIZED

    def test_summarized_matching(self, one_hot_params, one_hot_train_data):
        one_hot_params.use_summarization = True
        bokp = BoKP(one_hot_params)
        bokp.train(one_hot_train_data)
        bokp.initialize([RED, RED, BLUE, BLUE, RED])
        while bokp.step():
            pass
        assert [key_pose.class_label for key_pose in bokp.matched_sequence] == ["red", "blue", "red"]

    def test_evaluate_poses(self, bokp):
        distances = bokp.evaluate_poses([RED, ORANGE])
        assert distances == pytest.approx([0.0, 0.5])

    def test_one_class_learning(self, one_hot_params, one_hot_train_data):
        one_hot_params.one_class_learning = True
        bokp = BoKP(one_hot_params)
        bokp.train(one_hot_train_data)
        label, distance = bokp.evaluate_sequence([np.array([0.0, 0.8, 0.0])] * 10, return_distance=True)
        assert label == "green"
        assert distance > 0.0
        # Raw frames have no identity and stay out of the cache
        assert len(bokp.memory.distance_cache) == 0

    def test_untrained_model(self, one_hot_params):
        bokp = BoKP(one_hot_params)
        assert bokp.evaluate_sequence([RED] * 5, return_distance=True) == (None, MAX_DISTANCE)
        assert bokp.evaluate_poses([RED]) == [MAX_DISTANCE]

    def test_templates_without_frames(self, one_hot_params, one_hot_train_data):
        one_hot_params.calc_weights_and_sequences = False
        bokp = BoKP(one_hot_params)
        bokp.train(one_hot_train_data)
        assert bokp.memory.num_templates() == 0
        assert bokp.evaluate_sequence([RED] * 5) is None

    def test_fused_sources(self):
        params = LearningParams(
            class_labels=["red", "green", "blue"],
            initial_k=5,
            sources=["source1", "source2"],
            feature_sizes={"source1": 3, "source2": 3},
            source_weights={
                "source1": {"red": 0.8, "green": 0.5, "blue": 0.0},
                "source2": {"red": 0.2, "green": 0.5, "blue": 1.0},
            },
            use_source_weights=True,
            random_state=0,
        )
        train_data = {
            "red": [[np.array([1, 0, 0, 1, 0, 0], dtype=float)] * 100],
            "green": [[np.array([0, 1, 0, 0, 1, 0], dtype=float)] * 100],
            "blue": [[np.array([0, 0, 1, 0, 0, 1], dtype=float)] * 100],
        }
        bokp = BoKP(params)
        bokp.train(train_data)
        assert bokp.evaluate_sequence([np.array([0.9, 0.3, 0.9, 0.3, 0.3, 0.1])] * 100) == "red"

    def test_from_memory(self, bokp):
        restored = BoKP(TrainingMemory.from_dict(bokp.memory.to_dict()))
        assert restored.evaluate_sequence([BLUE] * 8) == "blue"
