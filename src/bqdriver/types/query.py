"""Generated SQL paired with its named parameter bindings."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from bqdriver.types.base import DriverBaseModel, DriverValueModel


class QueryBuilderResult(DriverValueModel):
    """SQL statement and ordered ``@name`` bindings.

    Consumed exactly once by the execution client.
    """
    sql: str = Field(..., min_length=1)
    bindings: Dict[str, str] = Field(default_factory=dict)


class QueryResult(DriverBaseModel):
    """Rows and statistics of one finished query job.

    Attributes:
        columns: Result column names in schema order
        rows: Result rows keyed by column name
        total_rows: Rows in the result set
        affected_rows: Rows changed by a DML statement, None for queries
        job_id: BigQuery job id
    """
    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    total_rows: int = Field(default=0, ge=0)
    affected_rows: Optional[int] = Field(default=None)
    job_id: Optional[str] = Field(default=None)

    def scalar(self, column: Optional[str] = None) -> Any:
        """First value of the first row, None for an empty result."""
        if not self.rows:
            return None
        row = self.rows[0]
        if column is not None:
            return row.get(column)
        return next(iter(row.values()), None)
