"""Data Manipulation Language (DML) operations.

This module contains operation classes for DML commands like
INSERT, DELETE and MERGE.
"""

from typing import Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from bqdriver.constants.sql import QueryType
from bqdriver.operations.base import BaseOperation


class Insert(BaseOperation):
    """INSERT INTO ... SELECT operation.

    ``source_query`` projects its columns positionally onto ``columns``.
    """
    operation_type: Literal[QueryType.INSERT] = Field(
        default=QueryType.INSERT,
        frozen=True
    )

    source_query: str = Field(..., min_length=1)
    columns: List[str] = Field(..., min_length=1)


class Delete(BaseOperation):
    """Delete data operation."""
    operation_type: Literal[QueryType.DELETE] = Field(
        default=QueryType.DELETE,
        frozen=True
    )
    where_clause: Optional[str] = Field(default=None)  # None = delete all


class Merge(BaseOperation):
    """Merge (UPSERT) operation.

    Matches target rows to ``source_query`` rows on every key column,
    updates matched rows and inserts the rest.

    Attributes:
        source_query: Query producing the source rows
        key_columns: Columns joined with equality in the ON clause
        update_columns: Target column -> expression for matched rows
        matched_condition: Extra predicate limiting which matches are updated
        insert_columns: Target columns for unmatched rows
        insert_values: Expressions inserted into ``insert_columns``
    """
    operation_type: Literal[QueryType.MERGE] = Field(
        default=QueryType.MERGE,
        frozen=True
    )

    source_query: str = Field(..., min_length=1)
    key_columns: List[str] = Field(..., min_length=1)
    update_columns: Dict[str, str] = Field(default_factory=dict)
    matched_condition: Optional[str] = Field(default=None)
    insert_columns: List[str] = Field(..., min_length=1)
    insert_values: List[str] = Field(..., min_length=1)

    @field_validator('key_columns')
    @classmethod
    def validate_key_columns(cls, v: List[str]) -> List[str]:
        if len({c.lower() for c in v}) != len(v):
            raise ValueError("key_columns must be unique")
        return v

    @model_validator(mode='after')
    def validate_insert_clause(self):
        """Ensure every inserted column has a value expression."""
        if len(self.insert_columns) != len(self.insert_values):
            raise ValueError("insert_columns and insert_values must have the same length")
        return self
