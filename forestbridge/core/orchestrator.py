"""Entry points composing config resolution, schema inference, training and serving.

Each call runs synchronously on the caller's thread. Inputs are validated
before the training library is engaged, and no handle exists unless training
finished.
"""

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from .errors import ResourceError, TrainError
from .registry import CLASSIFICATION
from .resources import ModelHandle, resource_manager
from ..config.manager import resolve
from ..config.schema import TrainingConfig
from ..data.dataset import DatasetMaterializer, MaterializedDataset
from ..data.ingestion import is_file_reference, open_source
from ..data.spec import ColumnType, DataSpecBuilder, DataSpecification, normalize_columns
from ..models.learners import train_model
from ..models.model import TrainedModel, load_model


logger = logging.getLogger(__name__)


def _label_guides(config: TrainingConfig):
    kind = ColumnType.CATEGORICAL if config.task == CLASSIFICATION else ColumnType.NUMERICAL
    return {config.label: kind}


def _build_training_data(config: TrainingConfig, data: Any):
    """Data specification and raw columns for a training call."""
    guides = _label_guides(config)

    if is_file_reference(data):
        source = open_source(data)
        spec = source.infer_spec(guides)
        return spec, source.read_columns()

    columns = normalize_columns(data)
    spec = DataSpecBuilder().build(columns, guides)
    return spec, columns


def train(config: Mapping[str, Any], data: Any) -> ModelHandle:
    """
    Train a model and return its handle.

    Args:
        config: Mapping with learner, task, label, log_directory and options
        data: Column set, DataFrame, or a file reference such as ``csv:train.csv``

    Returns:
        ModelHandle: Handle to the trained model

    Raises:
        ConfigError: Invalid configuration
        DatasetError: Malformed, empty or misaligned columns
        TrainError: The training library failed
    """
    training_config = resolve(config)
    spec, columns = _build_training_data(training_config, data)
    dataset = DatasetMaterializer().build(spec, columns)

    start_time = time.time()
    model = train_model(training_config, dataset)
    handle = resource_manager.create(model)

    logger.info(f"Training finished in {time.time() - start_time:.2f} seconds: {handle!r}")
    return handle


def materialize_for(model: TrainedModel, data: Any) -> MaterializedDataset:
    """Materialize prediction input against a model's data specification."""
    columns = open_source(data).read_columns() if is_file_reference(data) else data
    unused = [name for name in model.data_spec.column_names() if name not in model.features]
    return DatasetMaterializer().build(model.data_spec, columns, skip=unused)


def predict(handle: ModelHandle, data: Any) -> List[float]:
    """
    Predict one score per input row, in input order.

    The label column may be omitted from ``data``.

    Raises:
        ResourceError: Invalid or released handle
        DatasetError: Columns incompatible with the model's data specification
    """
    model = resource_manager.resolve(handle)
    dataset = materialize_for(model, data)
    engine = resource_manager.engine_for(handle)

    scores = engine.predict(dataset)
    logger.debug(f"Predicted {len(scores)} rows with {handle!r}")
    return scores


def save(handle: ModelHandle, path: Union[str, Path]) -> None:
    """
    Save the model behind a handle to a directory.

    Only handles produced by ``train`` or ``load`` exist, so the handle
    always refers to a trained model.

    Raises:
        ResourceError: Invalid or released handle
        ModelIOError: The directory cannot be written
    """
    resource_manager.save(handle, path)


def load(path: Union[str, Path]) -> ModelHandle:
    """Load a saved model directory and return a new handle."""
    return resource_manager.create(load_model(path))


def data_spec(handle: ModelHandle) -> DataSpecification:
    """Data specification embedded in the model behind a handle."""
    return resource_manager.resolve(handle).data_spec


class ForestState(Enum):
    """Forest lifecycle states."""
    UNTRAINED = "untrained"
    TRAINED = "trained"


class Forest:
    """Object wrapper over the entry points.

    ``UNTRAINED --train()--> TRAINED``; predict and save are only valid once
    trained and never change the state. There is no retrain and no delete.
    """

    def __init__(self, config: Optional[Mapping[str, Any]] = None, handle: Optional[ModelHandle] = None):
        self.config = dict(config or {})
        self._handle = handle
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def state(self) -> ForestState:
        return ForestState.TRAINED if self._handle is not None else ForestState.UNTRAINED

    @property
    def handle(self) -> ModelHandle:
        if self._handle is None:
            raise ResourceError("Forest has not been trained")
        return self._handle

    def train(self, data: Any) -> "Forest":
        """Train on a column set or file reference."""
        if self._handle is not None:
            raise TrainError("Forest is already trained; create a new Forest to retrain")
        self._handle = train(self.config, data)
        return self

    def predict(self, data: Any) -> List[float]:
        return predict(self.handle, data)

    def save(self, path: Union[str, Path]) -> None:
        save(self.handle, path)

    @property
    def data_spec(self) -> DataSpecification:
        return data_spec(self.handle)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Forest":
        """Forest in the TRAINED state from a saved model directory."""
        handle = load(path)
        model = resource_manager.resolve(handle)
        config = {
            "learner": model.learner,
            "task": model.task,
            "label": model.label,
            "options": dict(model.hyperparameters),
        }
        if model.ranking_group:
            config["options"]["ranking_group"] = model.ranking_group
        return cls(config, handle)
