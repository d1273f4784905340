"""Command and response models handled by the driver.

Each command type maps to exactly one handler through the static
dispatch table in ``bqdriver.handlers.dispatch``.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import Field, field_validator

from bqdriver.types.base import DriverBaseModel
from bqdriver.types.filters import ExportFilters, OrderBy
from bqdriver.types.imports import ImportOptions, SourceTableMapping, TableReference


class PreviewTableCommand(TableReference):
    """Read a bounded, optionally sampled slice of a table."""
    columns: List[str] = Field(default_factory=list)
    order_by: List[OrderBy] = Field(default_factory=list)
    filters: ExportFilters = Field(default_factory=ExportFilters)


class ExportTableCommand(TableReference):
    """Read table rows for an external file sink."""
    columns: List[str] = Field(default_factory=list)
    order_by: List[OrderBy] = Field(default_factory=list)
    filters: ExportFilters = Field(default_factory=ExportFilters)


class DeleteTableRowsCommand(TableReference):
    """Delete rows matching filters, or every row when none are given."""
    filters: ExportFilters = Field(default_factory=ExportFilters)


class ExecuteQueryCommand(DriverBaseModel):
    """Run an arbitrary statement against a default dataset."""
    path_restriction: List[str] = Field(..., min_length=1)
    query: str = Field(..., min_length=1)
    timeout: int = Field(default=0, ge=0)

    @property
    def dataset_name(self) -> str:
        return self.path_restriction[0]


class TableImportFromTableCommand(DriverBaseModel):
    """Move rows from a source table into a destination table."""
    source: SourceTableMapping
    destination: TableReference
    import_options: ImportOptions = Field(default_factory=ImportOptions)


class PreviewColumnValue(DriverBaseModel):
    column_name: str
    value: Optional[str] = None
    is_truncated: bool = False


class PreviewRow(DriverBaseModel):
    columns: List[PreviewColumnValue] = Field(default_factory=list)


class PreviewTableResponse(DriverBaseModel):
    columns: List[str] = Field(default_factory=list)
    rows: List[PreviewRow] = Field(default_factory=list)


class ExportTableResponse(DriverBaseModel):
    """Exported rows as a DataFrame plus the query that produced them."""
    columns: List[str] = Field(default_factory=list)
    rows_count: int = 0
    data: pd.DataFrame = Field(default_factory=pd.DataFrame, exclude=True)
    sql: str = ""

    def to_csv(self, path: Any, compression: Optional[str] = None) -> None:
        """Write the rows as CSV with a header line; ``compression`` is passed to pandas."""
        self.data.to_csv(path, index=False, compression=compression)


class DeleteTableRowsResponse(DriverBaseModel):
    deleted_rows_count: int = 0
    table_rows_count: int = 0
    table_size_bytes: int = 0


class QueryStatus(str, Enum):
    success = "success"
    error = "error"


class ExecuteQueryData(DriverBaseModel):
    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class ExecuteQueryResponse(DriverBaseModel):
    status: QueryStatus
    message: str
    data: Optional[ExecuteQueryData] = None


class ImportTimer(DriverBaseModel):
    name: str
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @field_validator("duration_seconds")
    @classmethod
    def round_duration(cls, v: float) -> float:
        return round(v, 6)


class TableImportResponse(DriverBaseModel):
    table_rows_count: int = 0
    table_size_bytes: int = 0
    imported_columns: List[str] = Field(default_factory=list)
    imported_rows_count: int = 0
    timers: List[ImportTimer] = Field(default_factory=list)
