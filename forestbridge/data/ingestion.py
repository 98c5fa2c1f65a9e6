"""File-backed data sources.

A file reference is ``"<format>:<path>"`` (``csv:data/train.csv``) or a bare
path whose suffix selects the format. Schema inference for files is owned by
the source: types come from the dtypes pandas assigns while reading.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type, Union

import pandas as pd

from .spec import (
    ColumnType, DataSpecification, DEFAULT_MAX_VOCAB_COUNT, RawColumn,
    as_token, check_finite, check_guides, is_missing, numerical_column, token_column,
)
from ..core.errors import DatasetError


class DataSourceConnector(ABC):
    """Abstract base class for file connectors."""

    format_name = ""
    suffixes: tuple = ()

    def __init__(self, path: Union[str, Path], options: Optional[Dict[str, Any]] = None):
        self.path = Path(path)
        self.options = options or {}
        self.logger = logging.getLogger(self.__class__.__name__)
        self._frame: Optional[pd.DataFrame] = None

    def connect(self) -> None:
        """Validate the file exists."""
        if not self.path.exists():
            raise DatasetError(f"{self.format_name.upper()} file not found: {self.path}",
                               context={"path": str(self.path)})
        if not self.path.is_file():
            raise DatasetError(f"Not a file: {self.path}", context={"path": str(self.path)})

    @abstractmethod
    def _read(self) -> pd.DataFrame:
        """Read the file into a DataFrame."""
        pass

    def load_data(self) -> pd.DataFrame:
        """Load (once) and return the file contents."""
        if self._frame is None:
            self.connect()
            try:
                frame = self._read()
            except (ValueError, OSError, pd.errors.ParserError) as e:
                raise DatasetError(f"Failed to read {self.format_name} data from {self.path}: {e}",
                                   context={"path": str(self.path)}) from e
            if frame.shape[1] == 0:
                raise DatasetError(f"No columns found in {self.path}", context={"path": str(self.path)})
            frame.columns = [str(name) for name in frame.columns]
            self.logger.info(f"Loaded {self.format_name} data: {frame.shape[0]} rows, {frame.shape[1]} columns")
            self._frame = frame
        return self._frame

    def read_columns(self) -> List[RawColumn]:
        """Raw column set in file order."""
        frame = self.load_data()
        return [(name, frame[name].tolist()) for name in frame.columns]

    def infer_spec(self, guides: Optional[Mapping[str, ColumnType]] = None,
                   max_vocab_count: int = DEFAULT_MAX_VOCAB_COUNT) -> DataSpecification:
        """
        Infer the data specification from pandas dtypes.

        Numeric (non-boolean) dtypes become NUMERICAL unless guided otherwise;
        other columns are CATEGORICAL or TEXT by their distinct-value count.
        """
        frame = self.load_data()
        guides = check_guides(list(frame.columns), guides)

        columns = []
        for name in frame.columns:
            series = frame[name]
            guide = guides.get(name)
            present = series[~series.map(is_missing).astype(bool)]
            count_nas = len(series) - len(present)

            if present.empty:
                raise DatasetError(f"Column '{name}' has no valid values", context={"column": name})

            numeric = (pd.api.types.is_numeric_dtype(series)
                       and not pd.api.types.is_bool_dtype(series))
            if numeric and guide in (None, ColumnType.NUMERICAL):
                check_finite(name, series.tolist())
                columns.append(numerical_column(name, present.astype(float).tolist(), count_nas))
            elif guide == ColumnType.NUMERICAL:
                parsed = pd.to_numeric(present, errors='coerce')
                if parsed.isna().any():
                    bad = present[parsed.isna()].iloc[0]
                    raise DatasetError(
                        f"Column '{name}' is declared NUMERICAL but value {bad!r} is not a number",
                        context={"column": name}
                    )
                check_finite(name, series.tolist())
                columns.append(numerical_column(name, parsed.astype(float).tolist(), count_nas))
            else:
                tokens = [as_token(value) for value in present.tolist()]
                columns.append(token_column(name, tokens, count_nas, guide, max_vocab_count))

        return DataSpecification(columns=columns, created_num_rows=int(frame.shape[0]))


class CSVConnector(DataSourceConnector):
    """Connector for delimited text files."""

    format_name = "csv"
    suffixes = (".csv", ".tsv", ".txt")

    def _read(self) -> pd.DataFrame:
        default_sep = '\t' if self.path.suffix.lower() == '.tsv' else ','
        pandas_options = {
            'sep': self.options.get('separator', default_sep),
            'header': self.options.get('header', 0),
            'encoding': self.options.get('encoding', 'utf-8'),
            'na_values': self.options.get('na_values', None),
            'skipinitialspace': True,
        }
        pandas_options = {k: v for k, v in pandas_options.items() if v is not None}
        return pd.read_csv(self.path, **pandas_options)


class JSONConnector(DataSourceConnector):
    """Connector for JSON record files (JSON lines by default)."""

    format_name = "json"
    suffixes = (".json", ".jsonl")

    def _read(self) -> pd.DataFrame:
        lines = self.options.get('lines', self.path.suffix.lower() == '.jsonl')
        return pd.read_json(self.path, orient='records', lines=lines, convert_dates=False)


CONNECTORS: Dict[str, Type[DataSourceConnector]] = {
    "csv": CSVConnector,
    "json": JSONConnector,
}


def is_file_reference(data: Any) -> bool:
    """Whether a data argument refers to a file instead of in-memory columns."""
    return isinstance(data, (str, os.PathLike))


def open_source(reference: Union[str, os.PathLike],
                options: Optional[Dict[str, Any]] = None) -> DataSourceConnector:
    """
    Create the connector for a file reference.

    Args:
        reference: ``"<format>:<path>"`` or a path with a known suffix

    Raises:
        DatasetError: If the format cannot be determined
    """
    text = os.fspath(reference)
    prefix, sep, remainder = text.partition(":")

    if sep and prefix.lower() in CONNECTORS:
        return CONNECTORS[prefix.lower()](remainder, options)

    suffix = Path(text).suffix.lower()
    for connector in CONNECTORS.values():
        if suffix in connector.suffixes:
            return connector(text, options)

    raise DatasetError(
        f"Cannot determine the format of '{text}'. Use one of: "
        f"{', '.join(name + ':<path>' for name in CONNECTORS)}",
        context={"reference": text}
    )
