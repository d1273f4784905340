"""Models describing a table-to-table import and its resolved context."""

from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import Field

from bqdriver.constants.bigquery import TIMESTAMP_COLUMN
from bqdriver.constants.imports import (
    CreateMode,
    DedupType,
    ImportStrategy,
    ImportType,
    TimestampMode,
)
from bqdriver.types.base import DriverBaseModel, DriverValueModel
from bqdriver.types.filters import WhereFilter
from bqdriver.types.table import TableDefinition


class TableReference(DriverBaseModel):
    """Dataset path plus table name."""
    path: List[str] = Field(..., min_length=1)
    table_name: str = Field(..., min_length=1)

    @property
    def schema_name(self) -> str:
        return self.path[0]


class ColumnMapping(DriverBaseModel):
    """Source column copied into a (possibly renamed) destination column."""
    source_column_name: str = Field(..., min_length=1)
    destination_column_name: str = Field(..., min_length=1)


class SourceTableMapping(TableReference):
    """Source side of an import.

    Attributes:
        column_mappings: Ordered mappings; empty means every source column
        where_filters: Row filters applied on the source
        limit: Row limit, non-positive means no limit
        seconds: Only rows changed within the last N seconds
    """
    column_mappings: List[ColumnMapping] = Field(default_factory=list)
    where_filters: List[WhereFilter] = Field(default_factory=list)
    limit: int = Field(default=0)
    seconds: int = Field(default=0)


class ImportOptions(DriverBaseModel):
    """How an import moves and merges rows."""
    import_type: ImportType = Field(default=ImportType.FULL)
    dedup_type: DedupType = Field(default=DedupType.INSERT_DUPLICATES)
    dedup_columns: List[str] = Field(default_factory=list)
    create_mode: CreateMode = Field(default=CreateMode.CREATE)
    timestamp_column: str = Field(default="")
    timestamp_mode: TimestampMode = Field(default=TimestampMode.CURRENT_TIME)
    import_strategy: ImportStrategy = Field(default=ImportStrategy.STRING_TABLE)
    convert_empty_values_to_null: List[str] = Field(default_factory=list)

    @property
    def use_timestamp(self) -> bool:
        return self.timestamp_column == TIMESTAMP_COLUMN

    @property
    def is_incremental(self) -> bool:
        return self.import_type == ImportType.INCREMENTAL

    @property
    def is_update_duplicates(self) -> bool:
        return self.dedup_type == DedupType.UPDATE_DUPLICATES

    @property
    def requires_deduplication(self) -> bool:
        """Incremental upsert keyed on a non-empty set of dedup columns."""
        return self.is_incremental and self.is_update_duplicates and bool(self.dedup_columns)


class TableSource(DriverValueModel):
    """Bare table reference; eligible for native copy."""
    kind: Literal["table"] = "table"
    schema_name: str
    table_name: str
    columns: Tuple[str, ...] = ()


class SelectSource(DriverValueModel):
    """Parametrized SELECT over the source table."""
    kind: Literal["select"] = "select"
    sql: str
    bindings: Dict[str, str] = Field(default_factory=dict)
    columns: Tuple[str, ...] = ()


ImportSource = Union[TableSource, SelectSource]


class SourceContext(DriverValueModel):
    """Resolved source of one import invocation.

    Attributes:
        source: Table reference or parametrized select
        effective_definition: Selected columns, destination names, mapping order
        full_definition: Every source column in physical order
        selected_columns: Source column names in mapping order
    """
    source: ImportSource = Field(..., discriminator="kind")
    effective_definition: TableDefinition
    full_definition: TableDefinition
    selected_columns: Tuple[str, ...] = ()

    @property
    def is_table_source(self) -> bool:
        return isinstance(self.source, TableSource)


class ImportResult(DriverValueModel):
    """Outcome of loading data into a destination."""
    imported_rows_count: int = 0
    imported_columns: Tuple[str, ...] = ()
    timers: Tuple[Tuple[str, float], ...] = ()
    destination: Optional[TableDefinition] = None
