"""Table and column definitions reflected from, or created in, BigQuery."""

from typing import Iterable, List, Optional, Tuple

from pydantic import Field, field_validator, model_validator

from bqdriver.common.exceptions import ColumnsMismatchError
from bqdriver.constants.bigquery import STRING_TYPE, TIMESTAMP_COLUMN, TYPE_ALIASES
from bqdriver.types.base import DriverValueModel


class ColumnDefinition(DriverValueModel):
    """A single column of a table.

    Names keep their original case but are always compared
    case-insensitively.

    Attributes:
        name: Column name
        data_type: BigQuery type name (STRING, INT64, NUMERIC, ...)
        nullable: Whether the column accepts NULL
        length: Length or precision, e.g. ``"100"`` or ``"4,2"``
        default: SQL default expression
    """
    name: str = Field(..., min_length=1)
    data_type: str = Field(default=STRING_TYPE)
    nullable: bool = Field(default=True)
    length: Optional[str] = Field(default=None)
    default: Optional[str] = Field(default=None)

    @field_validator("data_type")
    @classmethod
    def normalize_data_type(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def base_type(self) -> str:
        """Type family used when comparing two definitions."""
        return TYPE_ALIASES.get(self.data_type, self.data_type)

    @property
    def is_string(self) -> bool:
        return self.data_type == STRING_TYPE

    @property
    def is_system_timestamp(self) -> bool:
        return self.name.lower() == TIMESTAMP_COLUMN

    def matches(self, name: str) -> bool:
        return self.name.lower() == name.lower()

    def renamed(self, name: str) -> "ColumnDefinition":
        return self.model_copy(update={"name": name})

    def type_sql(self) -> str:
        """Render ``TYPE`` or ``TYPE(length)``."""
        if self.length:
            return f"{self.data_type}({self.length})"
        return self.data_type

    def sql_definition(self) -> str:
        """Render the column definition used in CREATE TABLE."""
        definition = self.type_sql()
        if self.default is not None:
            definition += f" DEFAULT {self.default}"
        if not self.nullable:
            definition += " NOT NULL"
        return definition


class TableDefinition(DriverValueModel):
    """Ordered column layout of a table.

    ``dedup_columns`` is advisory only: BigQuery has no enforced primary
    keys, the list is used as the merge key of incremental imports.
    """
    schema_name: str = Field(..., min_length=1)
    table_name: str = Field(..., min_length=1)
    is_temporary: bool = Field(default=False)
    columns: Tuple[ColumnDefinition, ...] = Field(default=())
    dedup_columns: Tuple[str, ...] = Field(default=())

    @model_validator(mode="after")
    def validate_dedup_columns(self):
        missing = _missing_columns(self.columns, self.dedup_columns)
        if missing:
            raise ValueError(
                f"Dedup columns not found in table {self.schema_name}.{self.table_name}: "
                f"{', '.join(missing)}"
            )
        return self

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def string_columns(self) -> List[ColumnDefinition]:
        return [column for column in self.columns if column.is_string]

    def get_column(self, name: str) -> Optional[ColumnDefinition]:
        """Case-insensitive column lookup."""
        for column in self.columns:
            if column.matches(name):
                return column
        return None

    def has_column(self, name: str) -> bool:
        return self.get_column(name) is not None

    def with_columns(self, columns: Iterable[ColumnDefinition]) -> "TableDefinition":
        columns = tuple(columns)
        kept_dedup = tuple(
            name for name in self.dedup_columns
            if any(column.matches(name) for column in columns)
        )
        return self.model_copy(update={"columns": columns, "dedup_columns": kept_dedup})

    def with_dedup_columns(self, dedup_columns: Iterable[str]) -> "TableDefinition":
        """Return a copy keyed on ``dedup_columns``.

        Raises:
            ColumnsMismatchError: If any dedup column is not part of the table.
        """
        dedup_columns = tuple(dedup_columns)
        missing = _missing_columns(self.columns, dedup_columns)
        if missing:
            raise ColumnsMismatchError(
                f'Dedup columns "{", ".join(missing)}" not found in table '
                f'"{self.schema_name}"."{self.table_name}".',
                details={"missing_columns": missing},
            )
        return self.model_copy(update={"dedup_columns": dedup_columns})


class TableStats(DriverValueModel):
    """Row count and storage size of a table."""
    row_count: int = Field(default=0, ge=0)
    size_bytes: int = Field(default=0, ge=0)


def _missing_columns(
    columns: Iterable[ColumnDefinition],
    names: Iterable[str],
) -> List[str]:
    known = {column.name.lower() for column in columns}
    return [name for name in names if name.lower() not in known]
