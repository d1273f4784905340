"""Table copy operations.

This module contains operation classes for engine-native table copies
(CLONE and COPY).
"""

from typing import Literal

from pydantic import Field

from bqdriver.constants.sql import QueryType
from bqdriver.operations.base import BaseOperation


class CloneTable(BaseOperation):
    """Zero-copy clone of ``source_schema.source_object`` into this table."""
    operation_type: Literal[QueryType.CLONE_TABLE] = Field(
        default=QueryType.CLONE_TABLE,
        frozen=True
    )
    source_schema: str = Field(..., min_length=1)
    source_object: str = Field(..., min_length=1)


class CopyTable(BaseOperation):
    """Physical copy of ``source_schema.source_object`` into a new table."""
    operation_type: Literal[QueryType.COPY_TABLE] = Field(
        default=QueryType.COPY_TABLE,
        frozen=True
    )
    source_schema: str = Field(..., min_length=1)
    source_object: str = Field(..., min_length=1)
