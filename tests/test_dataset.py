"""Tests for dataset materialization."""

import pytest
import numpy as np

from forestbridge.data.spec import build_data_spec, ColumnType
from forestbridge.data.dataset import DatasetMaterializer, MaterializedDataset, build_dataset
from forestbridge.core.errors import DatasetError


class TestDatasetMaterializer:
    """Test typed column materialization."""

    def setup_method(self):
        """Set up test fixtures."""
        self.columns = [
            ("x", [1, 2, 8, 9]),
            ("color", ["red", "blue", "red", "green"]),
            ("note", ["a", "b", "c", "d"]),
        ]
        self.spec = build_data_spec(self.columns, guides={"note": ColumnType.TEXT})
        self.materializer = DatasetMaterializer()

    def test_types_and_row_count(self):
        dataset = self.materializer.build(self.spec, self.columns)

        assert dataset.row_count == 4
        assert dataset.column("x").dtype == np.float32
        assert dataset.column("color").dtype == np.int32
        assert dataset.column("note").dtype == object
        np.testing.assert_array_equal(dataset.column("x"), [1, 2, 8, 9])
        # red=1 (2 occurrences), then blue=2, green=3
        np.testing.assert_array_equal(dataset.column("color"), [1, 2, 1, 3])
        assert list(dataset.column("note")) == ["a", "b", "c", "d"]

    def test_spec_order_not_caller_order(self):
        dataset = self.materializer.build(self.spec, list(reversed(self.columns)))

        assert dataset.column_names == ["x", "color", "note"]

    def test_missing_values(self):
        dataset = self.materializer.build(self.spec, [
            ("x", [None, "3", 4.5, ""]),
            ("color", [None, "blue", "", "red"]),
            ("note", [None, "n", "", "m"]),
        ])

        assert np.isnan(dataset.column("x")[0])
        assert np.isnan(dataset.column("x")[3])
        assert dataset.column("x")[1] == 3.0
        np.testing.assert_array_equal(dataset.column("color"), [0, 2, 0, 1])
        assert list(dataset.column("note")) == [None, "n", None, "m"]

    def test_unknown_categories_map_to_sentinel(self):
        dataset = self.materializer.build(self.spec, [
            ("x", [1, 2]),
            ("color", ["purple", "red"]),
            ("note", ["a", "b"]),
        ])

        np.testing.assert_array_equal(dataset.column("color"), [0, 1])
        assert dataset.oov_counts == {"color": 1}
        # The vocabulary is never extended.
        assert "purple" not in self.spec.column("color").categorical.items
        assert self.spec.column("color").categorical.number_of_unique_values == 4

    def test_numeric_coercion_failure_names_column_and_row(self):
        columns = [("x", [1, 2, "oops", 9]), ("color", ["red"] * 4), ("note", ["a"] * 4)]

        with pytest.raises(DatasetError, match="column 'x' at row 2") as exc_info:
            self.materializer.build(self.spec, columns)

        assert exc_info.value.context == {"column": "x", "row": 2}

    def test_infinite_value_names_column_and_row(self):
        columns = [("x", [1, float("inf"), 8, 9]), ("color", ["red"] * 4), ("note", ["a"] * 4)]

        with pytest.raises(DatasetError, match="non-finite value inf at row 1") as exc_info:
            self.materializer.build(self.spec, columns)

        assert exc_info.value.context == {"column": "x", "row": 1}

    def test_missing_required_column(self):
        with pytest.raises(DatasetError, match="'color' required"):
            self.materializer.build(self.spec, [("x", [1]), ("note", ["a"])])

    def test_optional_columns_may_be_absent(self):
        dataset = self.materializer.build(self.spec, [("x", [1, 2])], optional=["color", "note"])

        assert dataset.column_names == ["x"]
        assert dataset.row_count == 2
        with pytest.raises(DatasetError, match="not materialized"):
            dataset.column("color")

    def test_skipped_columns_are_not_materialized(self):
        columns = [("x", [1, 2]), ("color", [3.5, None]), ("note", ["a", "b"])]
        dataset = self.materializer.build(self.spec, columns, skip=["color", "note"])

        assert dataset.column_names == ["x"]
        assert dataset.oov_counts == {}

    def test_skipped_columns_may_hold_any_values(self):
        columns = [("x", ["not a number", None]), ("color", ["red", "blue"])]
        dataset = build_dataset(self.spec, columns, skip=["x", "note"])

        assert dataset.column_names == ["color"]
        np.testing.assert_array_equal(dataset.column("color"), [1, 2])

    def test_extra_columns_ignored(self):
        columns = self.columns + [("unused", [0, 0, 0, 0])]
        dataset = self.materializer.build(self.spec, columns)

        assert "unused" not in dataset.column_names

    def test_unequal_lengths(self):
        with pytest.raises(DatasetError, match="unequal lengths"):
            self.materializer.build(self.spec, [("x", [1, 2]), ("color", ["red"]), ("note", ["a"])])

    def test_copy_into_follows_feature_order(self):
        dataset = build_dataset(self.spec, self.columns)
        buffer = np.empty((4, 2), dtype=np.float32)

        dataset.copy_into(buffer, ["color", "x"])

        np.testing.assert_array_equal(buffer[:, 0], [1, 2, 1, 3])
        np.testing.assert_array_equal(buffer[:, 1], [1, 2, 8, 9])

    def test_copy_into_rejects_text_and_bad_shape(self):
        dataset = build_dataset(self.spec, self.columns)

        with pytest.raises(DatasetError, match="TEXT"):
            dataset.copy_into(np.empty((4, 1), dtype=np.float32), ["note"])
        with pytest.raises(DatasetError, match="buffer shape"):
            dataset.copy_into(np.empty((3, 1), dtype=np.float32), ["x"])

    def test_to_frame(self):
        frame = build_dataset(self.spec, self.columns).to_frame()

        assert list(frame.columns) == ["x", "color", "note"]
        assert frame.shape == (4, 3)

    def test_row_count_invariant(self):
        with pytest.raises(DatasetError, match="expected 3"):
            MaterializedDataset(spec=self.spec, columns={"x": np.zeros(2)}, row_count=3)
