"""Core bridge components: errors, learner registry, handles and orchestration."""

from .errors import (
    ForestBridgeError, ConfigError, DatasetError, ResourceError, TrainError, ModelIOError
)
from .registry import LearnerRegistry, learner_registry
from .resources import ModelHandle, ModelResourceManager, resource_manager
from .orchestrator import Forest, ForestState, train, predict, save, load, data_spec

__all__ = [
    "ForestBridgeError",
    "ConfigError",
    "DatasetError",
    "ResourceError",
    "TrainError",
    "ModelIOError",
    "LearnerRegistry",
    "learner_registry",
    "ModelHandle",
    "ModelResourceManager",
    "resource_manager",
    "Forest",
    "ForestState",
    "train",
    "predict",
    "save",
    "load",
    "data_spec",
]
