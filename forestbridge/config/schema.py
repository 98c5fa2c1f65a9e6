"""Configuration schema definitions using Pydantic models."""

from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.registry import learner_registry, TASKS, RANKING


class TrainingConfig(BaseModel):
    """Validated training configuration.

    ``options`` are hyperparameters handed to the learner untouched; the
    training library is the only place they are checked.
    """
    learner: str = Field("GRADIENT_BOOSTED_TREES", description="Learner identifier")
    task: str = Field("CLASSIFICATION", description="Task identifier")
    label: str = Field(..., description="Name of the label column")
    log_directory: Optional[str] = Field(None, description="Directory receiving training logs")
    options: Dict[str, Any] = Field(default_factory=dict, description="Learner hyperparameters")

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    @field_validator('learner')
    @classmethod
    def validate_learner(cls, v):
        """Normalize and check the learner identifier against the registry."""
        key = v.strip().upper()
        if learner_registry.get_learner(key) is None:
            raise ValueError(
                f"unknown learner '{v}', expected one of: {', '.join(learner_registry.learner_names())}"
            )
        return key

    @field_validator('task')
    @classmethod
    def validate_task(cls, v):
        """Normalize and check the task identifier."""
        key = v.strip().upper()
        if key not in TASKS:
            raise ValueError(f"unknown task '{v}', expected one of: {', '.join(TASKS)}")
        return key

    @field_validator('label')
    @classmethod
    def validate_label(cls, v):
        if not v.strip():
            raise ValueError("label must be a non-empty column name")
        return v

    @field_validator('log_directory')
    @classmethod
    def validate_log_directory(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode='after')
    def validate_learner_task(self):
        """Validate that the learner can train the task."""
        if not learner_registry.supports(self.learner, self.task):
            raise ValueError(f"learner {self.learner} does not support task {self.task}")

        if self.task == RANKING and self.options.get("ranking_group") == self.label:
            raise ValueError("ranking_group must differ from the label column")

        return self

    @property
    def ranking_group(self) -> Optional[str]:
        """Column holding query ids for ranking tasks."""
        if self.task != RANKING:
            return None
        return self.options.get("ranking_group")

    def hyperparameters(self) -> Dict[str, Any]:
        """Options destined for the learner (bridge-level keys removed)."""
        return {k: v for k, v in self.options.items() if k != "ranking_group"}


class ValidationResult(BaseModel):
    """Result of configuration validation."""
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    config: Optional[TrainingConfig] = None
