"""Filter, ordering and column selection models for preview, export and delete."""

from typing import List

from pydantic import Field

from bqdriver.constants.sql import DataType, Operator, Order
from bqdriver.types.base import DriverBaseModel


class WhereFilter(DriverBaseModel):
    """Comparison of one column against one or more string values.

    Values always arrive as strings; ``data_type`` tells the query builder
    how to cast them.
    """
    column: str = Field(..., min_length=1)
    operator: Operator = Field(default=Operator.eq)
    values: List[str] = Field(..., min_length=1)
    data_type: DataType = Field(default=DataType.STRING)

    @property
    def is_multi_value(self) -> bool:
        return len(self.values) > 1


class WhereRefTableFilter(DriverBaseModel):
    """Membership test of a column against a column of another table."""
    column: str = Field(..., min_length=1)
    operator: Operator = Field(default=Operator.eq)
    ref_column: str = Field(..., min_length=1)
    ref_path: List[str] = Field(default_factory=list)
    ref_table: str = Field(..., min_length=1)


class OrderBy(DriverBaseModel):
    """Sort specification for one column."""
    column: str = Field(..., min_length=1)
    order: Order = Field(default=Order.ASC)
    data_type: DataType = Field(default=DataType.STRING)


class ExportFilters(DriverBaseModel):
    """Filters shared by preview, export and delete-rows commands.

    Attributes:
        limit: Row limit, non-positive means no limit
        change_since: Unix seconds, rows with ``_timestamp`` at or after
        change_until: Unix seconds, rows with ``_timestamp`` before
        fulltext_search: Token searched in every STRING column
        where_filters: Column comparisons
        where_ref_table_filters: Membership tests against other tables
    """
    limit: int = Field(default=0)
    change_since: str = Field(default="")
    change_until: str = Field(default="")
    fulltext_search: str = Field(default="")
    where_filters: List[WhereFilter] = Field(default_factory=list)
    where_ref_table_filters: List[WhereRefTableFilter] = Field(default_factory=list)

    @property
    def has_active_filter(self) -> bool:
        """Whether any predicate restricts the rows read."""
        return bool(
            self.change_since
            or self.change_until
            or self.fulltext_search
            or self.where_filters
            or self.where_ref_table_filters
        )
