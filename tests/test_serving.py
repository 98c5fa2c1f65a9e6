"""Tests for serving engines."""

import pytest
import numpy as np

from forestbridge.config import resolve
from forestbridge.data.dataset import build_dataset
from forestbridge.data.spec import ColumnType, build_data_spec
from forestbridge.models.learners import train_model
from forestbridge.models.serving import SklearnEngine, XGBoostEngine, compile_engine, predict


def train(learner, columns, task="CLASSIFICATION", options=None):
    config = resolve({"learner": learner, "task": task, "label": "y", "options": options or {}})
    kind = ColumnType.CATEGORICAL if task == "CLASSIFICATION" else ColumnType.NUMERICAL
    spec = build_data_spec(columns, guides={"y": kind})
    return train_model(config, build_dataset(spec, columns))


class TestServingEngines:
    """Test batch prediction through compiled engines."""

    def setup_method(self):
        """Set up test fixtures."""
        rows = 40
        self.columns = [
            ("x", [float(i) for i in range(rows)]),
            ("y", ["a" if i < rows // 2 else "b" for i in range(rows)]),
        ]

    def test_engine_selection(self):
        assert isinstance(compile_engine(train("CART", self.columns)), SklearnEngine)
        assert isinstance(compile_engine(train("GRADIENT_BOOSTED_TREES", self.columns)), XGBoostEngine)

    def test_engine_follows_model_features(self):
        model = train("CART", self.columns)
        engine = compile_engine(model)

        assert engine.features == ["x"]
        assert engine.num_classes == 2
        assert engine.allocate_examples(3).shape == (3, 1)
        assert engine.allocate_examples(3).dtype == np.float32

    def test_binary_scores_are_second_class_probability(self):
        model = train("GRADIENT_BOOSTED_TREES", self.columns, options={"num_trees": 20})
        dataset = build_dataset(model.data_spec, self.columns)

        scores = predict(compile_engine(model), dataset)

        assert len(scores) == 40
        assert all(0.0 <= score <= 1.0 for score in scores)
        assert max(scores[:20]) < 0.5 < min(scores[20:])

    def test_predict_matrix_shape(self):
        model = train("RANDOM_FOREST", self.columns, options={"num_trees": 5, "random_seed": 0})
        dataset = build_dataset(model.data_spec, self.columns)

        matrix = compile_engine(model).predict_matrix(dataset)

        assert matrix.shape == (40, 2)
        np.testing.assert_allclose(matrix.sum(axis=1), 1.0)

    def test_multiclass_scores_are_top_probability(self):
        columns = [
            ("x", [float(i) for i in range(30)]),
            ("y", ["a"] * 10 + ["b"] * 10 + ["c"] * 10),
        ]
        model = train("CART", columns)
        dataset = build_dataset(model.data_spec, columns)
        engine = compile_engine(model)

        assert engine.predict_matrix(dataset).shape == (30, 3)
        assert engine.predict(dataset) == [1.0] * 30

    def test_single_class_label(self):
        columns = [("x", [1.0, 2.0, 3.0]), ("y", ["only", "only", "only"])]
        model = train("CART", columns)

        scores = compile_engine(model).predict(build_dataset(model.data_spec, columns))

        assert scores == [1.0, 1.0, 1.0]

    def test_regression_scores(self):
        columns = [("x", [1.0, 2.0, 3.0, 4.0]), ("y", [10.0, 20.0, 30.0, 40.0])]
        model = train("CART", columns, task="REGRESSION")

        scores = compile_engine(model).predict(build_dataset(model.data_spec, columns))

        assert scores == [10.0, 20.0, 30.0, 40.0]

    def test_zero_rows(self):
        model = train("CART", self.columns)
        empty = build_dataset(model.data_spec, [("x", [])], optional=["y"])
        engine = compile_engine(model)

        assert engine.predict(empty) == []
        assert engine.predict_matrix(empty).shape == (0, 2)

    def test_missing_feature_values(self):
        model = train("RANDOM_FOREST", self.columns, options={"num_trees": 5, "random_seed": 0})
        dataset = build_dataset(model.data_spec, [("x", [None, 3.0])], optional=["y"])

        scores = compile_engine(model).predict(dataset)

        assert len(scores) == 2
        assert all(0.0 <= score <= 1.0 for score in scores)
