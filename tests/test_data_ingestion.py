"""Tests for file-backed data sources."""

import pytest
import tempfile
import json
import shutil
import pandas as pd
from pathlib import Path

from forestbridge.data.ingestion import (
    CSVConnector, JSONConnector, is_file_reference, open_source
)
from forestbridge.data.spec import ColumnType, OOD_ITEM
from forestbridge.core.errors import DatasetError


class TestOpenSource:
    """Test file reference resolution."""

    def test_format_prefix(self):
        source = open_source("csv:data/train.dat")

        assert isinstance(source, CSVConnector)
        assert source.path == Path("data/train.dat")

    def test_prefix_is_case_insensitive(self):
        assert isinstance(open_source("JSON:records.txt"), JSONConnector)

    def test_suffix_detection(self):
        assert isinstance(open_source("train.csv"), CSVConnector)
        assert isinstance(open_source("train.tsv"), CSVConnector)
        assert isinstance(open_source(Path("train.jsonl")), JSONConnector)

    def test_unknown_format(self):
        with pytest.raises(DatasetError, match="Cannot determine the format"):
            open_source("train.parquet")

    def test_is_file_reference(self):
        assert is_file_reference("csv:train.csv")
        assert is_file_reference(Path("train.csv"))
        assert not is_file_reference([("x", [1])])
        assert not is_file_reference(pd.DataFrame({"x": [1]}))


class TestConnectors:
    """Test reading and schema inference from files."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()

        self.csv_path = Path(self.temp_dir) / "train.csv"
        pd.DataFrame({
            "age": [30, 41, None, 60],
            "color": ["red", "blue", "red", None],
            "label": [0, 1, 1, 0],
        }).to_csv(self.csv_path, index=False)

        self.jsonl_path = Path(self.temp_dir) / "train.jsonl"
        records = [
            {"x": 1.5, "flag": True, "y": 3.0},
            {"x": 2.5, "flag": False, "y": 4.0},
            {"x": 0.5, "flag": True, "y": 1.0},
        ]
        self.jsonl_path.write_text("\n".join(json.dumps(record) for record in records))

    def teardown_method(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_read_columns_keeps_file_order(self):
        columns = open_source(f"csv:{self.csv_path}").read_columns()

        assert [name for name, _ in columns] == ["age", "color", "label"]
        assert all(len(values) == 4 for _, values in columns)

    def test_infer_spec_from_dtypes(self):
        spec = open_source(str(self.csv_path)).infer_spec()

        assert spec.created_num_rows == 4
        assert spec.column("age").type == ColumnType.NUMERICAL
        assert spec.column("age").count_nas == 1
        assert spec.column("color").type == ColumnType.CATEGORICAL
        assert spec.column("color").count_nas == 1
        assert spec.column("label").type == ColumnType.NUMERICAL

    def test_guide_turns_integer_label_categorical(self):
        spec = open_source(str(self.csv_path)).infer_spec({"label": ColumnType.CATEGORICAL})
        label = spec.column("label")

        assert label.type == ColumnType.CATEGORICAL
        assert label.categorical.values() == [OOD_ITEM, "0", "1"]

    def test_guide_numerical_rejects_strings(self):
        with pytest.raises(DatasetError, match="declared NUMERICAL"):
            open_source(str(self.csv_path)).infer_spec({"color": ColumnType.NUMERICAL})

    def test_guide_for_unknown_column(self):
        with pytest.raises(DatasetError, match="not found"):
            open_source(str(self.csv_path)).infer_spec({"price": ColumnType.NUMERICAL})

    def test_jsonl_records(self):
        source = open_source(f"json:{self.jsonl_path}")
        spec = source.infer_spec()

        assert spec.column_names() == ["x", "flag", "y"]
        assert spec.column("x").type == ColumnType.NUMERICAL
        assert spec.column("flag").type == ColumnType.CATEGORICAL
        assert spec.column("flag").categorical.values() == [OOD_ITEM, "true", "false"]

    def test_infinite_value_in_file(self):
        csv_path = Path(self.temp_dir) / "overflow.csv"
        csv_path.write_text("x,label\n1.5,0\ninf,1\n")

        with pytest.raises(DatasetError, match="'x' has non-finite value inf at row 1"):
            open_source(str(csv_path)).infer_spec()

    def test_missing_file(self):
        with pytest.raises(DatasetError, match="CSV file not found"):
            open_source(str(Path(self.temp_dir) / "missing.csv")).read_columns()

    def test_directory_is_not_a_file(self):
        with pytest.raises(DatasetError, match="Not a file"):
            open_source(f"csv:{self.temp_dir}").read_columns()

    def test_malformed_json(self):
        bad_path = Path(self.temp_dir) / "bad.json"
        bad_path.write_text("{not json")

        with pytest.raises(DatasetError, match="Failed to read json data"):
            open_source(str(bad_path)).load_data()

    def test_data_is_read_once(self):
        source = open_source(str(self.csv_path))

        assert source.load_data() is source.load_data()
