"""Serving engines: compiled, batch-oriented inference over trained models."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Type

import numpy as np

from .model import TrainedModel
from ..core.errors import DatasetError
from ..core.registry import CLASSIFICATION
from ..data.dataset import MaterializedDataset


class ServingEngine(ABC):
    """Batch predictor bound to one trained model.

    Examples are laid out as a row-major float32 buffer whose columns follow
    ``features``, which is the order the model was trained with.
    """

    def __init__(self, model: TrainedModel):
        self.features: List[str] = list(model.features)
        self.task = model.task
        self.num_classes = len(model.label_classes)
        self.logger = logging.getLogger(self.__class__.__name__)

    def allocate_examples(self, num_examples: int) -> np.ndarray:
        """Example buffer for a batch."""
        return np.empty((num_examples, len(self.features)), dtype=np.float32)

    @abstractmethod
    def _predict_examples(self, examples: np.ndarray) -> np.ndarray:
        """Raw engine output: (n,) scores or (n, num_classes) probabilities."""
        pass

    def predict_matrix(self, dataset: MaterializedDataset) -> np.ndarray:
        """Per-row engine output; class probabilities for classification."""
        if dataset.row_count == 0:
            width = self.num_classes if self.task == CLASSIFICATION else 1
            return np.empty((0, width), dtype=np.float64)

        examples = self.allocate_examples(dataset.row_count)
        dataset.copy_into(examples, self.features)
        output = np.asarray(self._predict_examples(examples), dtype=np.float64)
        del examples

        if output.shape[0] != dataset.row_count:
            raise DatasetError(
                f"Engine returned {output.shape[0]} predictions for {dataset.row_count} rows"
            )
        return output

    def predict(self, dataset: MaterializedDataset) -> List[float]:
        """
        Predict one score per row, in input row order.

        Binary classification yields the probability of the second label
        class, multi-class the probability of the most likely class, and
        regression or ranking the raw score.
        """
        output = self.predict_matrix(dataset)

        if self.task != CLASSIFICATION:
            return output.reshape(-1).tolist()
        if output.shape[1] == 1:
            return output[:, 0].tolist()
        if output.shape[1] == 2:
            return output[:, 1].tolist()
        return output.max(axis=1).tolist()


class SklearnEngine(ServingEngine):
    """Engine for scikit-learn estimators."""

    def __init__(self, model: TrainedModel):
        super().__init__(model)
        self.estimator = model.estimator
        self.classes = getattr(self.estimator, 'classes_', None)

    def _predict_examples(self, examples: np.ndarray) -> np.ndarray:
        if self.task != CLASSIFICATION:
            return self.estimator.predict(examples)

        probabilities = self.estimator.predict_proba(examples)
        # Training may have seen only some of the label classes.
        full = np.zeros((examples.shape[0], max(self.num_classes, 1)), dtype=np.float64)
        full[:, np.asarray(self.classes, dtype=np.int64)] = probabilities
        return full


class XGBoostEngine(ServingEngine):
    """Engine for XGBoost models, predicting through the booster's in-place path."""

    def __init__(self, model: TrainedModel):
        super().__init__(model)
        self.booster = model.estimator.get_booster()

    def _predict_examples(self, examples: np.ndarray) -> np.ndarray:
        output = np.asarray(self.booster.inplace_predict(examples, validate_features=False))

        if self.task == CLASSIFICATION and output.ndim == 1:
            return np.column_stack([1.0 - output, output])
        return output


ENGINES: Dict[str, Type[ServingEngine]] = {
    'sklearn': SklearnEngine,
    'xgboost': XGBoostEngine,
}


def compile_engine(model: TrainedModel) -> ServingEngine:
    """
    Build the serving engine for a model.

    Idempotent and side-effect free, so the result can be cached for the
    lifetime of the model.
    """
    start_time = time.time()
    engine = ENGINES[model.framework](model)
    logging.getLogger(__name__).debug(
        f"Compiled {type(engine).__name__} for {len(engine.features)} features "
        f"in {(time.time() - start_time) * 1000:.1f} ms"
    )
    return engine


def predict(engine: ServingEngine, dataset: MaterializedDataset) -> List[float]:
    """Run batched prediction; one score per dataset row."""
    return engine.predict(dataset)
