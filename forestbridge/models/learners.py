"""Training adapters for the registered decision-forest learners."""

import json
import logging
import pickle
import time
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import joblib
import numpy as np
from sklearn.metrics import accuracy_score, mean_squared_error, mean_absolute_error, r2_score

from .model import TrainedModel
from ..config.schema import TrainingConfig
from ..core.errors import ConfigError, DatasetError, ModelIOError, TrainError
from ..core.registry import CLASSIFICATION, REGRESSION, RANKING, learner_registry
from ..data.dataset import MaterializedDataset
from ..data.spec import ColumnType, OOD_INDEX


# Engine-neutral hyperparameter names mapped to library names.
COMMON_ALIASES = {
    'num_trees': 'n_estimators',
    'random_seed': 'random_state',
}


class LearnerAdapter(ABC):
    """Abstract base class for learner adapters."""

    framework = ""
    estimator_classes: Dict[str, str] = {}
    aliases: Dict[str, str] = {}

    def __init__(self, task: str, parameters: Optional[Dict[str, Any]] = None):
        self.task = task
        self.parameters = dict(parameters or {})
        self.model = None
        self.is_fitted = False
        self.logger = logging.getLogger(self.__class__.__name__)

    def translate_parameters(self) -> Dict[str, Any]:
        """Rename known engine hyperparameters; pass everything else through."""
        aliases = {**COMMON_ALIASES, **self.aliases}
        return {aliases.get(name, name): value for name, value in self.parameters.items()}

    def estimator_class(self):
        if self.task not in self.estimator_classes:
            raise TrainError(f"{self.__class__.__name__} does not support task {self.task}")

        module_path, class_name = self.estimator_classes[self.task].rsplit('.', 1)
        module = __import__(module_path, fromlist=[class_name])
        return getattr(module, class_name)

    def create_model(self) -> Any:
        """Create the estimator; rejected hyperparameters raise TrainError."""
        model_class = self.estimator_class()
        params = self.translate_parameters()
        try:
            self.model = model_class(**params)
        except (TypeError, ValueError) as e:
            raise TrainError(f"Invalid hyperparameters for {model_class.__name__}: {e}",
                             context={"parameters": params}) from e
        return self.model

    @abstractmethod
    def fit(self, X: np.ndarray, y: np.ndarray, group: Optional[np.ndarray] = None) -> None:
        """Fit the estimator."""
        pass

    @abstractmethod
    def save_model(self, directory: Path) -> None:
        """Write the estimator into a model directory."""
        pass

    @abstractmethod
    def load_model(self, directory: Path) -> None:
        """Read the estimator from a model directory."""
        pass

    @abstractmethod
    def library_version(self) -> str:
        pass

    def get_feature_importance(self, features: List[str]) -> Optional[Dict[str, float]]:
        """Feature importance scores keyed by feature name."""
        if not self.is_fitted or not hasattr(self.model, 'feature_importances_'):
            return None
        importances = np.asarray(self.model.feature_importances_, dtype=float)
        return dict(zip(features, importances.tolist()))


class SklearnForestAdapter(LearnerAdapter):
    """Base adapter for scikit-learn tree ensembles."""

    framework = "sklearn"
    model_file = "model.joblib"
    aliases = {'min_examples': 'min_samples_leaf'}

    def fit(self, X: np.ndarray, y: np.ndarray, group: Optional[np.ndarray] = None) -> None:
        if self.model is None:
            self.create_model()

        self.logger.info(f"Training {type(self.model).__name__} on {X.shape[0]} rows, {X.shape[1]} features")
        try:
            self.model.fit(X, y)
        except (TypeError, ValueError) as e:
            raise TrainError(f"Training failed: {e}") from e

        self.is_fitted = True

    def save_model(self, directory: Path) -> None:
        if self.model is None:
            raise ModelIOError("No model to save")
        joblib.dump(self.model, Path(directory) / self.model_file)

    def load_model(self, directory: Path) -> None:
        path = Path(directory) / self.model_file
        if not path.exists():
            raise ModelIOError(f"Model file not found: {path}")
        try:
            model = joblib.load(path)
        except (pickle.UnpicklingError, EOFError, KeyError, IndexError, ValueError,
                TypeError, AttributeError, ImportError) as e:
            raise ModelIOError(f"Corrupt model file {path}: {e!r}", context={"path": str(path)}) from e

        expected = self.estimator_class()
        if not isinstance(model, expected):
            raise ModelIOError(f"Model file {path} holds {type(model).__name__}, expected {expected.__name__}",
                               context={"path": str(path)})
        self.model = model
        self.is_fitted = True

    def library_version(self) -> str:
        import sklearn
        return sklearn.__version__


class RandomForestAdapter(SklearnForestAdapter):
    """Random forest learner."""

    estimator_classes = {
        CLASSIFICATION: 'sklearn.ensemble.RandomForestClassifier',
        REGRESSION: 'sklearn.ensemble.RandomForestRegressor',
    }


class CartAdapter(SklearnForestAdapter):
    """Single decision tree learner."""

    estimator_classes = {
        CLASSIFICATION: 'sklearn.tree.DecisionTreeClassifier',
        REGRESSION: 'sklearn.tree.DecisionTreeRegressor',
    }


class GradientBoostedTreesAdapter(LearnerAdapter):
    """Gradient boosted trees learner backed by XGBoost."""

    framework = "xgboost"
    model_file = "model.json"
    estimator_classes = {
        CLASSIFICATION: 'xgboost.XGBClassifier',
        REGRESSION: 'xgboost.XGBRegressor',
        RANKING: 'xgboost.XGBRanker',
    }
    aliases = {'shrinkage': 'learning_rate', 'min_examples': 'min_child_weight'}

    def fit(self, X: np.ndarray, y: np.ndarray, group: Optional[np.ndarray] = None) -> None:
        import xgboost as xgb

        if self.model is None:
            self.create_model()

        self.logger.info(f"Training {type(self.model).__name__} on {X.shape[0]} rows, {X.shape[1]} features")
        try:
            if self.task == RANKING:
                self.model.fit(X, y, qid=group, verbose=False)
            else:
                self.model.fit(X, y, verbose=False)
        except (TypeError, ValueError, xgb.core.XGBoostError) as e:
            raise TrainError(f"Training failed: {e}") from e

        self.is_fitted = True

    def save_model(self, directory: Path) -> None:
        if self.model is None:
            raise ModelIOError("No model to save")
        self.model.save_model(str(Path(directory) / self.model_file))

    def load_model(self, directory: Path) -> None:
        import xgboost as xgb

        path = Path(directory) / self.model_file
        if not path.exists():
            raise ModelIOError(f"Model file not found: {path}")
        self.model = self.estimator_class()()
        try:
            self.model.load_model(str(path))
        except (xgb.core.XGBoostError, ValueError, TypeError) as e:
            raise ModelIOError(f"Corrupt model file {path}: {e}", context={"path": str(path)}) from e
        self.is_fitted = True

    def library_version(self) -> str:
        import xgboost
        return xgboost.__version__


def select_features(dataset: MaterializedDataset, exclude: List[str]) -> List[str]:
    """Feature columns in spec order: every NUMERICAL or CATEGORICAL column not excluded."""
    logger = logging.getLogger(__name__)
    features = []
    for column in dataset.spec.columns:
        if column.name in exclude:
            continue
        if column.type == ColumnType.TEXT:
            logger.warning(f"Column '{column.name}' is TEXT and is not used as a feature")
            continue
        features.append(column.name)
    return features


def encode_label(dataset: MaterializedDataset, config: TrainingConfig) -> Tuple[np.ndarray, List[str]]:
    """Training targets and, for classification, the ordered label classes."""
    label_spec = dataset.spec.column(config.label)
    values = dataset.column(config.label)

    if config.task == CLASSIFICATION:
        if label_spec.type != ColumnType.CATEGORICAL:
            raise DatasetError(f"Classification label '{config.label}' must be CATEGORICAL",
                               context={"column": config.label})
        missing = int(np.sum(values == OOD_INDEX))
        if missing:
            raise DatasetError(f"Label column '{config.label}' has {missing} missing value(s)",
                               context={"column": config.label})
        classes = label_spec.categorical.values()[1:]
        return (values - 1).astype(np.int64), classes

    if label_spec.type != ColumnType.NUMERICAL:
        raise DatasetError(f"{config.task.capitalize()} label '{config.label}' must be NUMERICAL",
                           context={"column": config.label})
    missing = int(np.isnan(values).sum())
    if missing:
        raise DatasetError(f"Label column '{config.label}' has {missing} missing value(s)",
                           context={"column": config.label})
    return values.astype(np.float64), []


def encode_groups(dataset: MaterializedDataset, group_column: str) -> np.ndarray:
    """Integer query ids for ranking."""
    values = dataset.column(group_column)
    if values.dtype == object:
        raise DatasetError(f"Ranking group column '{group_column}' cannot be TEXT",
                           context={"column": group_column})
    if values.dtype.kind == 'f':
        if np.isnan(values).any():
            raise DatasetError(f"Ranking group column '{group_column}' has missing values",
                               context={"column": group_column})
    return values.astype(np.int64)


def train_model(config: TrainingConfig, dataset: MaterializedDataset) -> TrainedModel:
    """
    Train a model on a materialized dataset.

    Args:
        config: Resolved training configuration
        dataset: Dataset materialized against its own data specification

    Returns:
        TrainedModel: Estimator plus the data specification it was trained on

    Raises:
        ConfigError: Ranking without a ranking_group option
        DatasetError: Unusable label or feature columns
        TrainError: The library rejected the hyperparameters or failed to fit
    """
    logger = logging.getLogger(__name__)
    group_column = config.ranking_group

    if config.task == RANKING and not group_column:
        raise ConfigError("Ranking requires the 'ranking_group' option naming the query id column")
    if group_column and not dataset.spec.has_column(group_column):
        raise DatasetError(f"Ranking group column '{group_column}' not found",
                           context={"column": group_column})

    features = select_features(dataset, [config.label, group_column])
    if not features:
        raise DatasetError("No usable feature columns", context={"label": config.label})

    y, classes = encode_label(dataset, config)
    X = dataset.copy_into(np.empty((dataset.row_count, len(features)), dtype=np.float32), features)

    group = None
    if group_column:
        group = encode_groups(dataset, group_column)
        order = np.argsort(group, kind='stable')
        X, y, group = X[order], y[order], group[order]

    adapter = learner_registry.get_adapter_class(config.learner)(config.task, config.hyperparameters())

    start_time = time.time()
    adapter.fit(X, y, group)
    training_time = time.time() - start_time

    model = TrainedModel(
        learner=config.learner,
        task=config.task,
        label=config.label,
        data_spec=dataset.spec,
        features=features,
        adapter=adapter,
        label_classes=classes,
        ranking_group=group_column,
        hyperparameters=config.hyperparameters(),
    )
    logger.info(f"Trained {config.learner} {config.task} model on {dataset.row_count} rows "
                f"in {training_time:.2f} seconds")

    if config.log_directory:
        write_training_log(model, X, y, training_time, config.log_directory)

    return model


def _training_metrics(model: TrainedModel, X: np.ndarray, y: np.ndarray) -> Dict[str, float]:
    if model.task == RANKING:
        return {}

    predictions = model.adapter.model.predict(X)
    if model.task == CLASSIFICATION:
        return {'accuracy': float(accuracy_score(y, predictions))}

    mse = float(mean_squared_error(y, predictions))
    return {
        'mse': mse,
        'rmse': float(np.sqrt(mse)),
        'mae': float(mean_absolute_error(y, predictions)),
        'r2_score': float(r2_score(y, predictions)) if len(y) > 1 else 0.0,
    }


def write_training_log(model: TrainedModel, X: np.ndarray, y: np.ndarray,
                       training_time: float, log_directory: str) -> Path:
    """Write training_log.json into the configured log directory."""
    log_dir = Path(log_directory)
    log_path = log_dir / "training_log.json"

    entry = {
        'created_at': datetime.now().isoformat(),
        'learner': model.learner,
        'task': model.task,
        'label': model.label,
        'rows': int(X.shape[0]),
        'features': model.features,
        'training_time_seconds': training_time,
        'train_metrics': _training_metrics(model, X, y),
        'feature_importance': model.adapter.get_feature_importance(model.features),
    }

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        with open(log_path, 'w') as f:
            json.dump(entry, f, indent=2)
    except OSError as e:
        raise ModelIOError(f"Cannot write training log to {log_path}: {e}") from e

    logging.getLogger(__name__).info(f"Training log written to {log_path}")
    return log_path
