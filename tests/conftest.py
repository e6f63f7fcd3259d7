import numpy as np
import pytest

from bag_of_key_poses import LearningParams

RED = np.array([1.0, 0.0, 0.0])
GREEN = np.array([0.0, 1.0, 0.0])
BLUE = np.array([0.0, 0.0, 1.0])


@pytest.fixture
def one_hot_train_data():
    return {
        "red": [[RED.copy() for _ in range(100)]],
        "green": [[GREEN.copy() for _ in range(100)]],
        "blue": [[BLUE.copy() for _ in range(100)]],
    }


@pytest.fixture
def one_hot_params():
    return LearningParams(
        class_labels=["red", "green", "blue"],
        initial_k=1,
        feature_size=3,
        random_state=0,
    )


class ScalarComparison:
    """Absolute difference and exact-match correlation between plain numbers"""

    def distance(self, a, b):
        return abs(a - b)

    def correlation(self, a, b):
        return 1.0 if a == b else -1.0


@pytest.fixture
def scalar_comparison():
    return ScalarComparison()
