"""Model training, persistence and serving components."""

from .model import TrainedModel, load_model
from .learners import (
    LearnerAdapter,
    RandomForestAdapter,
    CartAdapter,
    GradientBoostedTreesAdapter,
    train_model,
)
from .serving import ServingEngine, SklearnEngine, XGBoostEngine, compile_engine

__all__ = [
    "TrainedModel",
    "load_model",
    "LearnerAdapter",
    "RandomForestAdapter",
    "CartAdapter",
    "GradientBoostedTreesAdapter",
    "train_model",
    "ServingEngine",
    "SklearnEngine",
    "XGBoostEngine",
    "compile_engine",
]
