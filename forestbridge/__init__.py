"""
forestbridge - train, save and serve decision forests from Python columns or files.
"""

__version__ = "0.1.0"
__author__ = "forestbridge developers"

from .core import (
    Forest, ForestState, ModelHandle, train, predict, save, load, data_spec,
    ForestBridgeError, ConfigError, DatasetError, ResourceError, TrainError, ModelIOError,
)
from .config import ConfigManager, TrainingConfig

__all__ = [
    "Forest",
    "ForestState",
    "ModelHandle",
    "train",
    "predict",
    "save",
    "load",
    "data_spec",
    "ForestBridgeError",
    "ConfigError",
    "DatasetError",
    "ResourceError",
    "TrainError",
    "ModelIOError",
    "ConfigManager",
    "TrainingConfig",
]
