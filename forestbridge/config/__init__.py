"""Configuration management components."""

from .manager import ConfigManager, resolve
from .schema import TrainingConfig, ValidationResult

__all__ = ["ConfigManager", "resolve", "TrainingConfig", "ValidationResult"]
