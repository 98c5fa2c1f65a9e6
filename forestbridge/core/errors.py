"""Error taxonomy for the forest bridge.

Every entry point raises one of the subclasses of ``ForestBridgeError`` on the
first violated precondition. Nothing here retries or recovers: failures are
classified and propagated to the caller.
"""

import time
from typing import Dict, Any, Optional
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of bridge errors."""
    CONFIGURATION = "configuration"
    DATA = "data"
    RESOURCE = "resource"
    TRAINING = "training"
    IO = "io"


class ForestBridgeError(Exception):
    """Base class for all errors raised by this package."""

    def __init__(self, message: str, category: ErrorCategory, severity: ErrorSeverity,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or {}
        self.timestamp = time.time()

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view of the error, used by the CLI."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "context": self.context,
        }


class ConfigError(ForestBridgeError):
    """Invalid learner, task, label or malformed configuration mapping."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.CONFIGURATION, ErrorSeverity.HIGH, context)


class DatasetError(ForestBridgeError):
    """Malformed, empty or misaligned columns, or a value coercion failure."""

    def __init__(self, message: str, severity: ErrorSeverity = ErrorSeverity.MEDIUM,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.DATA, severity, context)


class ResourceError(ForestBridgeError):
    """Invalid, released or foreign model handle."""

    def __init__(self, message: str, severity: ErrorSeverity = ErrorSeverity.HIGH,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.RESOURCE, severity, context)


class TrainError(ForestBridgeError):
    """Training engine rejected the configuration or failed while fitting."""

    def __init__(self, message: str, severity: ErrorSeverity = ErrorSeverity.HIGH,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.TRAINING, severity, context)


class ModelIOError(ForestBridgeError):
    """Saving or loading a model failed."""

    def __init__(self, message: str, severity: ErrorSeverity = ErrorSeverity.HIGH,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.IO, severity, context)
