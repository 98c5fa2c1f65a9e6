"""Tests for the command-line interface."""

import json
import shutil
import tempfile
from pathlib import Path

import pandas as pd
import yaml
from click.testing import CliRunner

from forestbridge.cli import cli


class TestCLI:
    """Test CLI commands end to end."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.runner = CliRunner()

        self.data_path = self.temp_dir / "train.csv"
        pd.DataFrame({
            "x": [1, 2, 8, 9],
            "color": ["red", "red", "blue", "blue"],
            "y": ["a", "a", "b", "b"],
        }).to_csv(self.data_path, index=False)

        self.config_path = self.temp_dir / "config.yaml"
        self.config_path.write_text(yaml.dump({"learner": "CART", "task": "CLASSIFICATION", "label": "y"}))

        self.model_dir = self.temp_dir / "model"

    def teardown_method(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _train(self):
        return self.runner.invoke(cli, [
            'train', '-c', str(self.config_path), '-d', f"csv:{self.data_path}", '-o', str(self.model_dir)
        ])

    def test_version(self):
        result = self.runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert "forestbridge version 0.1.0" in result.output

    def test_train(self):
        result = self._train()

        assert result.exit_code == 0, result.output
        assert (self.model_dir / "header.json").exists()
        assert (self.model_dir / "data_spec.json").exists()
        assert (self.model_dir / "model.joblib").exists()

    def test_train_with_invalid_config(self):
        self.config_path.write_text(yaml.dump({"learner": "PERCEPTRON", "label": "y"}))

        result = self._train()

        assert result.exit_code == 1
        assert not self.model_dir.exists()

    def test_predict_to_file(self):
        assert self._train().exit_code == 0
        output_path = self.temp_dir / "out" / "predictions.json"

        result = self.runner.invoke(cli, [
            'predict', '-m', str(self.model_dir), '-d', str(self.data_path), '-o', str(output_path)
        ])

        assert result.exit_code == 0, result.output
        with open(output_path) as f:
            assert json.load(f) == {"predictions": [0.0, 0.0, 1.0, 1.0]}

    def test_predict_with_incompatible_data(self):
        assert self._train().exit_code == 0
        other_path = self.temp_dir / "other.csv"
        pd.DataFrame({"z": [1, 2]}).to_csv(other_path, index=False)

        result = self.runner.invoke(cli, ['predict', '-m', str(self.model_dir), '-d', str(other_path)])

        assert result.exit_code == 1

    def test_inspect(self):
        assert self._train().exit_code == 0

        result = self.runner.invoke(cli, ['inspect', '-m', str(self.model_dir)])

        assert result.exit_code == 0, result.output
        assert "CART" in result.output
        assert "color" in result.output

    def test_validate(self):
        result = self.runner.invoke(cli, ['validate', '-c', str(self.config_path)])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_validate_invalid(self):
        self.config_path.write_text(yaml.dump({"learner": "RANDOM_FOREST", "task": "RANKING", "label": "y"}))

        result = self.runner.invoke(cli, ['validate', '-c', str(self.config_path)])

        assert result.exit_code == 1
        assert "invalid" in result.output

    def test_no_command_shows_help(self):
        result = self.runner.invoke(cli, [])

        assert result.exit_code == 0
        assert "train" in result.output
