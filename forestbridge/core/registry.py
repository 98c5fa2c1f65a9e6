"""Learner registry: maps learner identifiers to training adapters."""

from typing import Dict, FrozenSet, List, Optional, Type
from dataclasses import dataclass
import logging

from .errors import ConfigError


CLASSIFICATION = "CLASSIFICATION"
REGRESSION = "REGRESSION"
RANKING = "RANKING"

TASKS = (CLASSIFICATION, REGRESSION, RANKING)


@dataclass(frozen=True)
class LearnerEntry:
    """A registered learner and the tasks it can train."""
    name: str
    adapter_path: str
    tasks: FrozenSet[str]
    framework: str


class LearnerRegistry:
    """Registry of learner identifiers.

    Adapters are referenced by dotted path and imported on first use so that
    resolving a configuration never pulls in the training libraries.
    """

    def __init__(self):
        self._learners: Dict[str, LearnerEntry] = {}
        self._adapters: Dict[str, Type] = {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def register_learner(self, name: str, adapter_path: str, tasks: List[str],
                         framework: str) -> None:
        """Register a learner under an upper-case identifier."""
        key = name.upper()
        unknown = [task for task in tasks if task not in TASKS]
        if unknown:
            raise ValueError(f"Learner {key} declares unknown tasks: {unknown}")

        self._learners[key] = LearnerEntry(key, adapter_path, frozenset(tasks), framework)
        self._adapters.pop(key, None)
        self.logger.debug(f"Registered learner: {key}")

    def learner_names(self) -> List[str]:
        """List registered learner identifiers."""
        return sorted(self._learners)

    def get_learner(self, name: str) -> Optional[LearnerEntry]:
        """Get a learner entry by identifier (case-insensitive)."""
        return self._learners.get(str(name).upper())

    def supports(self, learner: str, task: str) -> bool:
        entry = self.get_learner(learner)
        return entry is not None and task in entry.tasks

    def get_adapter_class(self, name: str) -> Type:
        """Import and return the adapter class of a learner."""
        entry = self.get_learner(name)
        if entry is None:
            raise ConfigError(
                f"Unknown learner '{name}'. Expected one of: {', '.join(self.learner_names())}",
                {"learner": name}
            )

        if entry.name not in self._adapters:
            module_path, class_name = entry.adapter_path.rsplit('.', 1)
            module = __import__(module_path, fromlist=[class_name])
            self._adapters[entry.name] = getattr(module, class_name)

        return self._adapters[entry.name]

    def unregister_learner(self, name: str) -> bool:
        """Unregister a learner."""
        key = str(name).upper()
        if key in self._learners:
            del self._learners[key]
            self._adapters.pop(key, None)
            self.logger.debug(f"Unregistered learner: {key}")
            return True
        return False


# Global learner registry instance
learner_registry = LearnerRegistry()
learner_registry.register_learner(
    "GRADIENT_BOOSTED_TREES",
    "forestbridge.models.learners.GradientBoostedTreesAdapter",
    [CLASSIFICATION, REGRESSION, RANKING],
    framework="xgboost",
)
learner_registry.register_learner(
    "RANDOM_FOREST",
    "forestbridge.models.learners.RandomForestAdapter",
    [CLASSIFICATION, REGRESSION],
    framework="sklearn",
)
learner_registry.register_learner(
    "CART",
    "forestbridge.models.learners.CartAdapter",
    [CLASSIFICATION, REGRESSION],
    framework="sklearn",
)
