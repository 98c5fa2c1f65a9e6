"""Data specification: the column schema inferred once per dataset.

A DataSpecification is built when a model is trained and then travels inside
the model. Every later prediction materializes its input against that same
spec, which is what keeps feature columns aligned between training and
serving. Inference must therefore be deterministic: the same columns always
give the same names, order, types and vocabularies.
"""

import math
import logging
import numbers
from collections import Counter
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field

from ..core.errors import DatasetError


logger = logging.getLogger(__name__)

OOD_ITEM = "<OOD>"
OOD_INDEX = 0
DEFAULT_MAX_VOCAB_COUNT = 2000

RawColumn = Tuple[str, List[Any]]


class ColumnType(str, Enum):
    """Semantic type of a column."""
    NUMERICAL = "NUMERICAL"
    CATEGORICAL = "CATEGORICAL"
    TEXT = "TEXT"


class NumericalDomain(BaseModel):
    min_value: float
    max_value: float
    mean: float


class CategoricalItem(BaseModel):
    index: int
    count: int


class CategoricalDomain(BaseModel):
    """Vocabulary of a categorical column; index 0 is the out-of-vocabulary item."""
    items: Dict[str, CategoricalItem] = Field(default_factory=dict)
    number_of_unique_values: int = 0

    def index_of(self, value: str) -> int:
        """Vocabulary index of a value, or the OOD index if unknown."""
        item = self.items.get(value)
        return item.index if item is not None else OOD_INDEX

    def values(self) -> List[str]:
        """Vocabulary values ordered by index, OOD item first."""
        return [value for value, _ in sorted(self.items.items(), key=lambda kv: kv[1].index)]


class ColumnSpec(BaseModel):
    """One column descriptor: name, semantic type and domain."""
    name: str
    type: ColumnType
    count_nas: int = 0
    numerical: Optional[NumericalDomain] = None
    categorical: Optional[CategoricalDomain] = None


class DataSpecification(BaseModel):
    """Ordered column descriptors of a dataset."""
    columns: List[ColumnSpec] = Field(default_factory=list)
    created_num_rows: int = 0

    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def column(self, name: str) -> ColumnSpec:
        """Get a column descriptor by name."""
        for column in self.columns:
            if column.name == name:
                return column
        raise DatasetError(f"Column '{name}' is not part of the data specification",
                           context={"column": name})

    def has_column(self, name: str) -> bool:
        return any(column.name == name for column in self.columns)


def is_missing(value: Any) -> bool:
    """Missing values are None, NaN and blank strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_number(value: Any) -> Optional[float]:
    """Parse a raw value as a float, or return None if it is not a number.

    Booleans are never numbers.
    """
    if isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, numbers.Real):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def as_token(value: Any) -> str:
    """Canonical string form of a categorical or text value."""
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, numbers.Real) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, str):
        return value.strip()
    return str(value)


def normalize_columns(columns: Any) -> List[RawColumn]:
    """
    Turn a caller-supplied column set into an ordered list of (name, values).

    Accepts a sequence of ``(name, values)`` pairs, a mapping of name to values
    or a pandas DataFrame.

    Raises:
        DatasetError: On an empty column set, duplicate names or unequal lengths
    """
    if isinstance(columns, pd.DataFrame):
        pairs = [(str(name), columns[name].tolist()) for name in columns.columns]
    elif isinstance(columns, Mapping):
        pairs = [(str(name), values) for name, values in columns.items()]
    elif isinstance(columns, (list, tuple)):
        pairs = []
        for entry in columns:
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise DatasetError(f"Columns must be (name, values) pairs, got {entry!r}")
            pairs.append((str(entry[0]), entry[1]))
    else:
        raise DatasetError(f"Unsupported column set type: {type(columns).__name__}")

    if not pairs:
        raise DatasetError("Column set is empty")

    normalized = []
    seen = set()
    for name, values in pairs:
        if name in seen:
            raise DatasetError(f"Duplicate column name: '{name}'", context={"column": name})
        seen.add(name)
        if isinstance(values, (str, bytes)) or not hasattr(values, '__iter__'):
            raise DatasetError(f"Column '{name}' values must be a sequence",
                               context={"column": name})
        normalized.append((name, list(values)))

    lengths = {name: len(values) for name, values in normalized}
    if len(set(lengths.values())) > 1:
        raise DatasetError(f"Columns have unequal lengths: {lengths}", context={"lengths": lengths})

    return normalized


def numerical_column(name: str, numbers_: Sequence[float], count_nas: int) -> ColumnSpec:
    """Numerical column descriptor from its parsed non-missing values."""
    array = np.asarray(numbers_, dtype=np.float64)
    return ColumnSpec(
        name=name,
        type=ColumnType.NUMERICAL,
        count_nas=count_nas,
        numerical=NumericalDomain(
            min_value=float(array.min()),
            max_value=float(array.max()),
            mean=float(array.mean()),
        ),
    )


def categorical_domain(tokens: Sequence[str]) -> CategoricalDomain:
    """Vocabulary ordered by frequency (descending) then value."""
    counts = Counter(tokens)
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))

    items = {OOD_ITEM: CategoricalItem(index=OOD_INDEX, count=0)}
    for position, (value, count) in enumerate(ordered, start=1):
        items[value] = CategoricalItem(index=position, count=count)

    return CategoricalDomain(items=items, number_of_unique_values=len(items))


def token_column(name: str, tokens: Sequence[str], count_nas: int,
                 guide: Optional[ColumnType] = None,
                 max_vocab_count: int = DEFAULT_MAX_VOCAB_COUNT) -> ColumnSpec:
    """Categorical or text descriptor from non-missing string tokens."""
    distinct = len(set(tokens))
    if guide == ColumnType.TEXT or (guide is None and distinct >= max_vocab_count):
        return ColumnSpec(name=name, type=ColumnType.TEXT, count_nas=count_nas)

    return ColumnSpec(
        name=name,
        type=ColumnType.CATEGORICAL,
        count_nas=count_nas,
        categorical=categorical_domain(tokens),
    )


def check_finite(name: str, values: Sequence[Any]) -> None:
    """Reject infinite numbers; they are neither valid nor missing."""
    for row, value in enumerate(values):
        if is_missing(value):
            continue
        number = parse_number(value)
        if number is not None and math.isinf(number):
            raise DatasetError(
                f"Column '{name}' has non-finite value {value!r} at row {row}",
                context={"column": name, "row": row}
            )


def infer_column(name: str, values: Sequence[Any], guide: Optional[ColumnType] = None,
                 max_vocab_count: int = DEFAULT_MAX_VOCAB_COUNT) -> ColumnSpec:
    """
    Infer the descriptor of one in-memory column.

    NUMERICAL if every present value parses as a number, CATEGORICAL if the
    number of distinct values is below ``max_vocab_count``, TEXT otherwise.
    A guide overrides the inferred type.
    """
    present = [value for value in values if not is_missing(value)]
    count_nas = len(values) - len(present)

    if not present:
        raise DatasetError(f"Column '{name}' has no valid values", context={"column": name})

    if guide in (None, ColumnType.NUMERICAL):
        parsed = [parse_number(value) for value in present]
        if all(number is not None for number in parsed):
            check_finite(name, values)
            finite = [number for number in parsed if not math.isnan(number)]
            if finite:
                return numerical_column(name, finite, count_nas + len(parsed) - len(finite))
            raise DatasetError(f"Column '{name}' has no valid values", context={"column": name})

        if guide == ColumnType.NUMERICAL:
            row = next(i for i, number in enumerate(parsed) if number is None)
            raise DatasetError(
                f"Column '{name}' is declared NUMERICAL but value {present[row]!r} is not a number",
                context={"column": name}
            )

    tokens = [as_token(value) for value in present]
    return token_column(name, tokens, count_nas, guide, max_vocab_count)


def check_guides(names: Sequence[str], guides: Optional[Mapping[str, ColumnType]]) -> Dict[str, ColumnType]:
    guides = {name: ColumnType(kind) for name, kind in (guides or {}).items()}
    missing = [name for name in guides if name not in names]
    if missing:
        raise DatasetError(f"Column(s) not found in dataset: {missing}",
                           context={"columns": missing, "available": list(names)})
    return guides


class DataSpecBuilder:
    """Builds data specifications from in-memory column sets."""

    def __init__(self, max_vocab_count: int = DEFAULT_MAX_VOCAB_COUNT):
        self.max_vocab_count = max_vocab_count
        self.logger = logging.getLogger(self.__class__.__name__)

    def build(self, columns: Any, guides: Optional[Mapping[str, ColumnType]] = None) -> DataSpecification:
        """
        Infer a data specification.

        Args:
            columns: Column set (pairs, mapping or DataFrame)
            guides: Optional forced types by column name

        Returns:
            DataSpecification: Columns in caller order

        Raises:
            DatasetError: On malformed input or a column without valid values
        """
        normalized = normalize_columns(columns)
        guides = check_guides([name for name, _ in normalized], guides)

        specs = []
        for name, values in normalized:
            column = infer_column(name, values, guides.get(name), self.max_vocab_count)
            self.logger.debug(f"Inferred column '{name}' as {column.type.value}")
            specs.append(column)

        return DataSpecification(columns=specs, created_num_rows=len(normalized[0][1]))


def build_data_spec(columns: Any, guides: Optional[Mapping[str, ColumnType]] = None,
                    max_vocab_count: int = DEFAULT_MAX_VOCAB_COUNT) -> DataSpecification:
    """Infer a data specification from an in-memory column set."""
    return DataSpecBuilder(max_vocab_count).build(columns, guides)
