"""Schema inference, file sources and dataset materialization."""

from .spec import (
    ColumnType, ColumnSpec, DataSpecification, DataSpecBuilder, build_data_spec, OOD_ITEM
)
from .dataset import MaterializedDataset, DatasetMaterializer, build_dataset
from .ingestion import CSVConnector, JSONConnector, open_source, is_file_reference

__all__ = [
    "ColumnType",
    "ColumnSpec",
    "DataSpecification",
    "DataSpecBuilder",
    "build_data_spec",
    "OOD_ITEM",
    "MaterializedDataset",
    "DatasetMaterializer",
    "build_dataset",
    "CSVConnector",
    "JSONConnector",
    "open_source",
    "is_file_reference",
]
