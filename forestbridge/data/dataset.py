"""Dataset materialization: raw columns to typed, row-aligned numpy storage."""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .spec import (
    ColumnSpec, ColumnType, DataSpecification, OOD_INDEX,
    as_token, is_missing, normalize_columns, parse_number,
)
from ..core.errors import DatasetError


@dataclass
class MaterializedDataset:
    """Typed columns in data specification order.

    NUMERICAL columns are float32 with NaN for missing values, CATEGORICAL
    columns are int32 vocabulary indices (0 for missing or unknown values) and
    TEXT columns are object arrays.
    """
    spec: DataSpecification
    columns: Dict[str, np.ndarray]
    row_count: int
    oov_counts: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        for name, values in self.columns.items():
            if len(values) != self.row_count:
                raise DatasetError(
                    f"Column '{name}' has {len(values)} rows, expected {self.row_count}",
                    context={"column": name}
                )

    @property
    def column_names(self) -> List[str]:
        return list(self.columns)

    def column(self, name: str) -> np.ndarray:
        """Typed values of a materialized column."""
        if name not in self.columns:
            raise DatasetError(f"Column '{name}' was not materialized", context={"column": name})
        return self.columns[name]

    def copy_into(self, buffer: np.ndarray, features: Sequence[str]) -> np.ndarray:
        """Copy feature columns, in the given order, into a row-major example buffer."""
        if buffer.shape != (self.row_count, len(features)):
            raise DatasetError(
                f"Example buffer shape {buffer.shape} does not match "
                f"({self.row_count}, {len(features)})"
            )

        for position, name in enumerate(features):
            values = self.column(name)
            if values.dtype == object:
                raise DatasetError(f"Column '{name}' is TEXT and cannot be used as a feature",
                                   context={"column": name})
            buffer[:, position] = values
        return buffer

    def to_frame(self) -> pd.DataFrame:
        """DataFrame view of the typed columns, for inspection."""
        return pd.DataFrame({name: values for name, values in self.columns.items()})


class DatasetMaterializer:
    """Coerces raw columns into a MaterializedDataset following a data spec."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def build(self, spec: DataSpecification, columns: Any,
              optional: Optional[Iterable[str]] = None,
              skip: Optional[Iterable[str]] = None) -> MaterializedDataset:
        """
        Materialize raw columns against a data specification.

        Columns are produced in spec order regardless of the caller's order.
        Extra caller columns are ignored. Categorical vocabularies are never
        extended: unknown values map to the out-of-vocabulary index.

        Args:
            spec: Data specification the model was (or will be) trained with
            columns: Raw column set
            optional: Spec columns that may be absent from the input
            skip: Spec columns that are neither required nor materialized

        Returns:
            MaterializedDataset: Typed columns with a uniform row count

        Raises:
            DatasetError: On missing columns or numeric coercion failures
        """
        raw = dict(normalize_columns(columns))
        row_count = len(next(iter(raw.values())))
        optional = set(optional or ())
        skip = set(skip or ())

        typed: Dict[str, np.ndarray] = {}
        oov_counts: Dict[str, int] = {}

        for column in spec.columns:
            if column.name in skip:
                continue
            if column.name not in raw:
                if column.name in optional:
                    continue
                raise DatasetError(
                    f"Column '{column.name}' required by the data specification is missing",
                    context={"column": column.name, "available": list(raw)}
                )

            values = raw[column.name]
            if column.type == ColumnType.NUMERICAL:
                typed[column.name] = self._numerical(column, values)
            elif column.type == ColumnType.CATEGORICAL:
                typed[column.name], oov = self._categorical(column, values)
                if oov:
                    oov_counts[column.name] = oov
                    self.logger.debug(f"{oov} out-of-vocabulary value(s) in column '{column.name}'")
            else:
                typed[column.name] = self._text(values)

        return MaterializedDataset(spec=spec, columns=typed, row_count=row_count, oov_counts=oov_counts)

    def _numerical(self, column: ColumnSpec, values: List[Any]) -> np.ndarray:
        out = np.empty(len(values), dtype=np.float32)
        for row, value in enumerate(values):
            if is_missing(value):
                out[row] = np.nan
                continue
            number = parse_number(value)
            if number is None:
                raise DatasetError(
                    f"Cannot convert value {value!r} in column '{column.name}' at row {row} to a number",
                    context={"column": column.name, "row": row}
                )
            if math.isinf(number):
                raise DatasetError(
                    f"Column '{column.name}' has non-finite value {value!r} at row {row}",
                    context={"column": column.name, "row": row}
                )
            out[row] = number
        return out

    def _categorical(self, column: ColumnSpec, values: List[Any]):
        domain = column.categorical
        out = np.full(len(values), OOD_INDEX, dtype=np.int32)
        oov = 0
        for row, value in enumerate(values):
            if is_missing(value):
                continue
            index = domain.index_of(as_token(value))
            if index == OOD_INDEX:
                oov += 1
            out[row] = index
        return out, oov

    def _text(self, values: List[Any]) -> np.ndarray:
        out = np.empty(len(values), dtype=object)
        for row, value in enumerate(values):
            out[row] = None if is_missing(value) else as_token(value)
        return out


def build_dataset(spec: DataSpecification, columns: Any,
                  optional: Optional[Iterable[str]] = None,
                  skip: Optional[Iterable[str]] = None) -> MaterializedDataset:
    """Materialize raw columns against a data specification."""
    return DatasetMaterializer().build(spec, columns, optional, skip)
