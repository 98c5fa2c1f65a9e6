"""Model handles: opaque references to trained models owned by a handle table.

A ModelHandle carries no model itself. The model lives in the manager's
table and is released by a ``weakref.finalize`` hook when the handle is
garbage collected. There is no explicit destroy: a model lives exactly as long
as some Python object still references its handle.
"""

import itertools
import logging
import threading
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

from .errors import ResourceError
from ..models.model import TrainedModel
from ..models.serving import ServingEngine, compile_engine


@dataclass(frozen=True)
class ResourceType:
    """Kind of native resource a handle refers to."""
    module: str
    name: str


_resource_type: Optional[ResourceType] = None
_resource_type_lock = threading.Lock()

# Tokens are unique across managers so a handle never aliases another table.
_tokens = itertools.count(1)


def open_resource_type() -> ResourceType:
    """Register the model resource type once per process and return it."""
    global _resource_type
    with _resource_type_lock:
        if _resource_type is None:
            _resource_type = ResourceType(module="forestbridge", name="decision_forest")
        return _resource_type


class ModelHandle:
    """Opaque reference to a trained model."""

    __slots__ = ('_token', '_resource_type', '__weakref__')

    def __init__(self, token: int, resource_type: ResourceType):
        self._token = token
        self._resource_type = resource_type

    def __repr__(self):
        return f"<ModelHandle {self._resource_type.name}#{self._token}>"

    def __reduce__(self):
        raise TypeError("ModelHandle cannot be pickled; save the model instead")


@dataclass
class _Entry:
    model: TrainedModel
    engine: Optional[ServingEngine] = None


class ModelResourceManager:
    """Owns trained models on behalf of their handles."""

    def __init__(self, resource_type: Optional[ResourceType] = None):
        self.resource_type = resource_type or open_resource_type()
        self._entries: Dict[int, _Entry] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger(self.__class__.__name__)

    def create(self, model: TrainedModel) -> ModelHandle:
        """Take ownership of a trained model and return its handle."""
        if not isinstance(model, TrainedModel):
            raise ResourceError(f"Expected a TrainedModel, got {type(model).__name__}")

        with self._lock:
            token = next(_tokens)
            self._entries[token] = _Entry(model)

        handle = ModelHandle(token, self.resource_type)
        weakref.finalize(handle, self._release, token)
        self.logger.debug(f"Created {handle!r}")
        return handle

    def _release(self, token: int) -> None:
        # Runs from garbage collection, possibly while this thread holds
        # self._lock, so it must not take the lock.
        self._entries.pop(token, None)
        self.logger.debug(f"Released model #{token}")

    def _entry(self, handle: ModelHandle) -> _Entry:
        if not isinstance(handle, ModelHandle):
            raise ResourceError(f"Expected a ModelHandle, got {type(handle).__name__}")
        if handle._resource_type != self.resource_type:
            raise ResourceError(
                f"Handle belongs to resource type {handle._resource_type.name}, "
                f"expected {self.resource_type.name}"
            )

        with self._lock:
            entry = self._entries.get(handle._token)
        if entry is None:
            raise ResourceError(f"{handle!r} does not refer to a live model")
        return entry

    def resolve(self, handle: ModelHandle) -> TrainedModel:
        """Return the model behind a handle."""
        return self._entry(handle).model

    def engine_for(self, handle: ModelHandle) -> ServingEngine:
        """Serving engine of a handle, compiled on first use and cached."""
        entry = self._entry(handle)
        if entry.engine is None:
            # Compile outside the lock; the first published engine wins.
            engine = compile_engine(entry.model)
            with self._lock:
                if entry.engine is None:
                    entry.engine = engine
        return entry.engine

    def save(self, handle: ModelHandle, path: Union[str, Path]) -> Path:
        """Write the model behind a handle to a directory."""
        return self.resolve(handle).save(path)

    def live_count(self) -> int:
        """Number of models currently owned by the table."""
        with self._lock:
            return len(self._entries)


# Global model resource manager instance
resource_manager = ModelResourceManager()
