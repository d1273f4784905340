"""Data Definition Language (DDL) operations.

This module contains operation classes for DDL commands like
CREATE TABLE and TRUNCATE TABLE.
"""

from typing import List, Literal, Optional

from pydantic import Field, model_validator

from bqdriver.constants.sql import QueryType
from bqdriver.operations.base import BaseOperation
from bqdriver.types.table import ColumnDefinition


class CreateTable(BaseOperation):
    """Create table operation.

    Supports two creation patterns:
    - Empty tables via columns definition
    - CREATE TABLE AS SELECT (CTAS) via select_query
    """
    operation_type: Literal[QueryType.CREATE_TABLE] = Field(
        default=QueryType.CREATE_TABLE,
        frozen=True
    )

    columns: Optional[List[ColumnDefinition]] = Field(default=None)
    select_query: Optional[str] = Field(default=None)
    if_not_exists: bool = Field(default=False)

    @model_validator(mode='after')
    def validate_table_definition(self):
        """Ensure exactly one table definition method is provided."""
        if (self.columns is None) == (self.select_query is None):
            raise ValueError(
                "CreateTable requires exactly one definition method: columns or select_query"
            )
        if self.columns is not None and not self.columns:
            raise ValueError("CreateTable requires at least one column")
        return self


class TruncateTable(BaseOperation):
    """Delete every row of a table, keeping its schema."""
    operation_type: Literal[QueryType.TRUNCATE] = Field(
        default=QueryType.TRUNCATE,
        frozen=True
    )
