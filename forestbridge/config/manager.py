"""Configuration resolution, file loading and variable substitution."""

import os
import re
import json
import logging
from typing import Dict, Any, List, Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from .schema import TrainingConfig, ValidationResult
from ..core.errors import ConfigError
from ..core.registry import RANKING


def _format_error(error: Dict[str, Any]) -> str:
    field_path = " -> ".join(str(loc) for loc in error['loc']) or "config"
    message = error['msg']
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{field_path}: {message}"


def resolve(options: Mapping[str, Any]) -> TrainingConfig:
    """
    Parse a configuration mapping into a validated TrainingConfig.

    Pure function: never touches the training engine. Hyperparameters under
    ``options`` are passed through as given.

    Args:
        options: Mapping with keys learner, task, label, log_directory, options

    Returns:
        TrainingConfig: Validated configuration

    Raises:
        ConfigError: On the first violated constraint
    """
    if isinstance(options, TrainingConfig):
        return options

    if not isinstance(options, Mapping):
        raise ConfigError(
            f"Configuration must be a mapping, got {type(options).__name__}"
        )

    try:
        return TrainingConfig(**{str(k): v for k, v in options.items()})
    except PydanticValidationError as e:
        errors = e.errors()
        raise ConfigError(
            f"Invalid configuration: {_format_error(errors[0])}",
            {"errors": [_format_error(error) for error in errors]}
        ) from None


class ConfigManager:
    """Loads training configurations from YAML or JSON files."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def load_config(self, config_path: str) -> TrainingConfig:
        """
        Load and resolve configuration from file.

        Args:
            config_path: Path to configuration file (YAML or JSON)

        Returns:
            TrainingConfig: Validated configuration object

        Raises:
            ConfigError: If the file is missing, unreadable or invalid
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        raw_config = self.load_raw_config(config_path)
        config = resolve(self.resolve_variables(raw_config))

        self.logger.info(f"Loaded configuration from {config_path}")
        return config

    def load_raw_config(self, config_path: Path) -> Dict[str, Any]:
        """Load raw configuration mapping from file."""
        config_path = Path(config_path)
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if config_path.suffix.lower() in ['.yaml', '.yml']:
                    raw = yaml.safe_load(f)
                elif config_path.suffix.lower() == '.json':
                    raw = json.load(f)
                else:
                    raise ConfigError(f"Unsupported configuration file format: {config_path.suffix}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax: {str(e)}")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON syntax: {str(e)}")
        except OSError as e:
            raise ConfigError(f"Cannot read configuration file {config_path}: {e}")

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {config_path}")
        return raw

    def validate(self, config: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a configuration mapping without raising.

        Args:
            config: Raw configuration mapping

        Returns:
            ValidationResult: Validation result with errors and warnings
        """
        try:
            training_config = resolve(self.resolve_variables(dict(config)))
        except ConfigError as e:
            return ValidationResult(
                valid=False,
                errors=e.context.get("errors", [e.message]),
                config=None
            )

        return ValidationResult(
            valid=True,
            warnings=self._collect_warnings(training_config),
            config=training_config
        )

    def _collect_warnings(self, config: TrainingConfig) -> List[str]:
        warnings = []

        if config.task == RANKING and not config.ranking_group:
            warnings.append("Ranking task without a 'ranking_group' option; training will fail.")

        if config.log_directory and not Path(config.log_directory).parent.exists():
            warnings.append(f"Parent of log directory does not exist: {config.log_directory}")

        return warnings

    def resolve_variables(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Resolve environment variables in configuration string values.

        Args:
            config: Raw configuration dictionary

        Returns:
            Dict[str, Any]: Configuration with resolved variables
        """
        def resolve_value(value):
            if isinstance(value, str):
                return self._substitute_variables(value)
            elif isinstance(value, dict):
                return {k: resolve_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [resolve_value(item) for item in value]
            else:
                return value

        return resolve_value(config)

    def _substitute_variables(self, value: str) -> str:
        """
        Substitute environment variables in a string value.

        Supports:
        - ${VAR_NAME} or ${VAR_NAME:default_value}
        - $VAR_NAME
        """
        pattern1 = re.compile(r'\$\{([^}:]+)(?::([^}]*))?\}')

        def replace_match(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        result = pattern1.sub(replace_match, value)

        pattern2 = re.compile(r'\$([A-Za-z_][A-Za-z0-9_]*)')

        def replace_simple(match):
            var_name = match.group(1)
            return os.environ.get(var_name, f"${var_name}")  # Keep original if not found

        return pattern2.sub(replace_simple, result)

    def save_config(self, config: TrainingConfig, output_path: str, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save
            output_path: Output file path
            format: Output format ('yaml' or 'json')
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = config.model_dump(mode='json')

        with open(output_path, 'w', encoding='utf-8') as f:
            if format.lower() == 'yaml':
                yaml.dump(config_dict, f, default_flow_style=False, indent=2)
            elif format.lower() == 'json':
                json.dump(config_dict, f, indent=2)
            else:
                raise ValueError(f"Unsupported format: {format}")

        self.logger.info(f"Configuration saved to {output_path}")

    def get_default_config(self) -> Dict[str, Any]:
        """Get a default configuration template."""
        return {
            "learner": "GRADIENT_BOOSTED_TREES",
            "task": "CLASSIFICATION",
            "label": "label",
            "log_directory": None,
            "options": {
                "num_trees": 100,
                "max_depth": 6,
            },
        }
