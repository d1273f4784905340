"""Execution client protocol definitions.

This module defines the interface every component of the driver uses to
reach BigQuery. Handlers and import components depend on this protocol
only, which keeps them testable with in-memory fakes.
"""

from typing import Dict, Optional, Protocol, runtime_checkable

from bqdriver.types.query import QueryResult
from bqdriver.types.table import TableDefinition, TableStats


@runtime_checkable
class ExecutionClient(Protocol):
    """Protocol defining the interface for BigQuery execution clients.

    The protocol is marked as runtime_checkable to allow isinstance()
    checks at runtime, which is useful for validation and testing.
    """

    def submit_query(
        self,
        sql: str,
        params: Optional[Dict[str, str]] = None,
        *,
        timeout: Optional[float] = None,
        default_dataset: Optional[str] = None,
        telemetry: Optional[Dict[str, str]] = None,
    ) -> QueryResult:
        """Run a statement and wait for its result.

        Args:
            sql: GoogleSQL statement with ``@name`` placeholders
            params: Named STRING parameters bound to the placeholders
            timeout: Job timeout in seconds, the configured default when None
            default_dataset: Dataset used to resolve unqualified table names
            telemetry: Flattened key/values attached to logs and spans

        Returns:
            QueryResult with rows and statistics of the finished job
        """
        ...

    def reflect_table(self, schema_name: str, table_name: str) -> TableDefinition:
        """Read the column layout of a table.

        Raises:
            DriverError: With TABLE_NOT_FOUND when the table does not exist
        """
        ...

    def table_exists(self, schema_name: str, table_name: str) -> bool:
        """Whether a table or view exists."""
        ...

    def drop_table(self, schema_name: str, table_name: str, if_exists: bool = True) -> None:
        """Drop a table, ignoring a missing one when ``if_exists`` is set."""
        ...

    def create_table(self, definition: TableDefinition) -> None:
        """Create an empty table shaped like ``definition``."""
        ...

    def copy_table(
        self,
        source_schema: str,
        source_table: str,
        destination_schema: str,
        destination_table: str,
    ) -> None:
        """Engine-native copy of a table into a new table."""
        ...

    def get_table_stats(self, schema_name: str, table_name: str) -> TableStats:
        """Row count and storage size of a table."""
        ...
