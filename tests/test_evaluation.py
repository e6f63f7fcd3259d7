"""Tests for recognition result bookkeeping."""

import pandas as pd
import pytest

from bag_of_key_poses import UNKNOWN, RecognitionResults


class TestRecognitionResults:

    @pytest.fixture
    def results(self):
        results = RecognitionResults(["red", "green"])
        results.add("red", "red", distance=0.5)
        results.add("red", "green")
        results.add("green", "green", distance=1.5)
        results.add("green", None)
        return results

    def test_success_rate(self, results):
        assert results.success_rate() == pytest.approx(0.5)
        assert results.metrics()["correct_count"] == 2
        assert results.metrics()["total_count"] == 4

    def test_missing_prediction_is_unknown(self, results):
        assert results.y_pred[-1] == UNKNOWN
        assert UNKNOWN in results.labels

    def test_confusion_matrix(self, results):
        matrix = results.confusion_matrix()
        assert matrix.loc["red", "red"] == 1
        assert matrix.loc["red", "green"] == 1
        assert matrix.loc["green", UNKNOWN] == 1
        assert matrix.values.sum() == 4

    def test_f1(self, results):
        # red: precision 1, recall 0.5; green: precision 0.5, recall 0.5
        expected = ((2 * 0.5 / 1.5) + 0.5) / 2
        assert results.f1_score() == pytest.approx(expected)

    def test_csv(self, results, tmp_path):
        path = tmp_path / "results.csv"
        results.to_csv(str(path))
        table = pd.read_csv(path, index_col=0)
        assert table.loc["red", "red"] == "1/2"
        assert table.loc["green", "green"] == "1/2"

    def test_continuous(self):
        results = RecognitionResults()
        results.add_continuous(["a", "a", "b", "b"], ["a", "a", "b"])
        assert len(results) == 4
        assert results.success_rate() == pytest.approx(0.75)
        with pytest.raises(ValueError):
            results.add_continuous(["a"], ["a", "a"])

    def test_distance_summary(self, results):
        summary = results.distance_summary()
        assert summary.loc["red", "median"] == 0.5
        assert summary.loc["green", "count"] == 1

    def test_empty(self):
        results = RecognitionResults(["red"])
        assert results.success_rate() == 0.0
        assert results.confusion_matrix().shape == (1, 1)
