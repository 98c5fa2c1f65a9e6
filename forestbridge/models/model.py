"""Trained model container and its on-disk directory."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import ModelIOError
from ..core.registry import learner_registry
from ..data.spec import DataSpecification


HEADER_FILE = "header.json"
DATA_SPEC_FILE = "data_spec.json"
FORMAT_VERSION = 1

logger = logging.getLogger(__name__)


@dataclass
class TrainedModel:
    """A fitted estimator together with the data specification it was trained on.

    Immutable once built: nothing in the package mutates a trained model.
    """
    learner: str
    task: str
    label: str
    data_spec: DataSpecification
    features: List[str]
    adapter: Any
    label_classes: List[str] = field(default_factory=list)
    ranking_group: Optional[str] = None
    hyperparameters: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def framework(self) -> str:
        return self.adapter.framework

    @property
    def estimator(self) -> Any:
        return self.adapter.model

    def header(self) -> Dict[str, Any]:
        return {
            'format_version': FORMAT_VERSION,
            'learner': self.learner,
            'task': self.task,
            'label': self.label,
            'features': self.features,
            'label_classes': self.label_classes,
            'ranking_group': self.ranking_group,
            'hyperparameters': self.hyperparameters,
            'framework': self.framework,
            'library_version': self.adapter.library_version(),
            'created_at': self.created_at,
        }

    def save(self, path: Union[str, Path]) -> Path:
        """
        Save the model as a directory.

        The directory holds the header, the data specification and the
        estimator written by its own library.

        Raises:
            ModelIOError: If the directory cannot be written
        """
        directory = Path(path)
        if directory.exists() and not directory.is_dir():
            raise ModelIOError(f"Model path exists and is not a directory: {directory}",
                               context={"path": str(directory)})

        try:
            directory.mkdir(parents=True, exist_ok=True)
            with open(directory / HEADER_FILE, 'w') as f:
                json.dump(self.header(), f, indent=2, default=str)
            with open(directory / DATA_SPEC_FILE, 'w') as f:
                f.write(self.data_spec.model_dump_json(indent=2))
            self.adapter.save_model(directory)
        except OSError as e:
            raise ModelIOError(f"Failed to save model to {directory}: {e}",
                               context={"path": str(directory)}) from e

        logger.info(f"Model saved to {directory}")
        return directory


def load_model(path: Union[str, Path]) -> TrainedModel:
    """
    Load a model directory written by ``TrainedModel.save``.

    Raises:
        ModelIOError: If the directory is missing, incomplete or corrupt
    """
    directory = Path(path)
    header_path = directory / HEADER_FILE
    spec_path = directory / DATA_SPEC_FILE

    if not header_path.exists() or not spec_path.exists():
        raise ModelIOError(f"Not a model directory: {directory}", context={"path": str(directory)})

    try:
        with open(header_path, 'r') as f:
            header = json.load(f)
        data_spec = DataSpecification.model_validate_json(spec_path.read_text())
    except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
        raise ModelIOError(f"Failed to read model from {directory}: {e}",
                           context={"path": str(directory)}) from e

    if header.get('format_version') != FORMAT_VERSION:
        raise ModelIOError(f"Unsupported model format version: {header.get('format_version')}",
                           context={"path": str(directory)})

    missing = [key for key in ('learner', 'task', 'label', 'features') if key not in header]
    if missing:
        raise ModelIOError(f"Model header is missing {missing}", context={"path": str(directory)})

    learner_entry = learner_registry.get_learner(header['learner'])
    if learner_entry is None:
        raise ModelIOError(f"Model uses unknown learner '{header['learner']}'",
                           context={"path": str(directory)})
    if not learner_registry.supports(learner_entry.name, header['task']):
        raise ModelIOError(f"Model header names unsupported task '{header['task']}' "
                           f"for learner {learner_entry.name}", context={"path": str(directory)})

    adapter_class = learner_registry.get_adapter_class(learner_entry.name)
    adapter = adapter_class(header['task'], header.get('hyperparameters'))
    try:
        adapter.load_model(directory)
    except OSError as e:
        raise ModelIOError(f"Failed to read estimator from {directory}: {e}",
                           context={"path": str(directory)}) from e

    model = TrainedModel(
        learner=header['learner'],
        task=header['task'],
        label=header['label'],
        data_spec=data_spec,
        features=list(header['features']),
        adapter=adapter,
        label_classes=list(header.get('label_classes', [])),
        ranking_group=header.get('ranking_group'),
        hyperparameters=dict(header.get('hyperparameters') or {}),
        created_at=header.get('created_at', datetime.now().isoformat()),
    )
    logger.info(f"Model loaded from {directory}")
    return model
