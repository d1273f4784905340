"""View-related operations.

This module contains operation classes for creating views.
"""

from typing import Literal

from pydantic import Field

from bqdriver.constants.sql import QueryType
from bqdriver.operations.base import BaseOperation


class CreateView(BaseOperation):
    """Create view operation."""
    operation_type: Literal[QueryType.CREATE_VIEW] = Field(
        default=QueryType.CREATE_VIEW,
        frozen=True
    )

    select_query: str = Field(..., min_length=1)
    or_replace: bool = Field(default=False)
