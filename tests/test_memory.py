"""Tests for the training memory and its persistence."""

import pytest

from bag_of_key_poses import BoKP, ClusteringType, TrainingMemory


@pytest.fixture
def memory(one_hot_params, one_hot_train_data):
    one_hot_params.clustering = ClusteringType.KMEANS
    one_hot_params.set_distance_thresholds([400, 300, 200])
    return BoKP(one_hot_params).train(one_hot_train_data)


class TestTrainingMemory:

    def test_dict_round_trip(self, memory):
        restored = TrainingMemory.from_dict(memory.to_dict())

        for label, key_poses in memory.key_poses.items():
            restored_poses = restored.key_poses[label]
            assert [key_pose.identity for key_pose in restored_poses] == [key_pose.identity for key_pose in key_poses]
            assert [key_pose.weight for key_pose in restored_poses] == [key_pose.weight for key_pose in key_poses]

        for label, sequences in memory.sequences.items():
            assert [
                [key_pose.identity for key_pose in sequence] for sequence in restored.sequences[label]
            ] == [[key_pose.identity for key_pose in sequence] for sequence in sequences]

        assert restored.id_generator.next_value == memory.id_generator.next_value
        assert restored.params.distance_thresholds == memory.params.distance_thresholds
        assert restored.sse == memory.sse

    def test_templates_share_restored_key_poses(self, memory):
        restored = TrainingMemory.from_dict(memory.to_dict())
        template = restored.sequences["red"][0]
        assert template[0] is restored.key_poses["red"][0]

    def test_save_and_load(self, memory, tmp_path):
        path = tmp_path / "memory.joblib"
        memory.save(str(path))
        loaded = TrainingMemory.load(str(path))
        assert loaded.num_key_poses() == memory.num_key_poses()
        assert loaded.num_templates() == memory.num_templates()
        assert loaded.params.clustering == ClusteringType.KMEANS

    def test_new_identities_after_loading(self, memory):
        restored = TrainingMemory.from_dict(memory.to_dict())
        taken = {key_pose.identity for poses in restored.key_poses.values() for key_pose in poses}
        assert restored.id_generator.next_id() not in taken

    def test_unknown_key_pose_reference(self, memory):
        data = memory.to_dict()
        data["sequences"][0]["key_pose_ids"].append(999)
        with pytest.raises(ValueError):
            TrainingMemory.from_dict(data)

    def test_frames(self, memory):
        key_poses = memory.key_poses_frame()
        assert len(key_poses) == 3
        assert set(key_poses["class_label"]) == {"red", "green", "blue"}
        assert key_poses["weight"].tolist() == [1.0, 1.0, 1.0]

        sequences = memory.sequences_frame()
        assert sequences["length"].tolist() == [100, 100, 100]

    def test_key_pose_features(self, memory):
        features = memory.key_pose_features()
        assert features["green"][0].tolist() == [0.0, 1.0, 0.0]
