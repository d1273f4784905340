import re
from abc import ABC, abstractmethod
from typing import Iterable, List

from bqdriver.constants.sql import QueryType
from bqdriver.operations import (
    BaseOperation,
    CloneTable,
    CopyTable,
    CreateTable,
    CreateView,
    Delete,
    Insert,
    Merge,
    TruncateTable,
)


_MAX_IDENTIFIER_LENGTH = 1024


class SQLQuoting:
    """Quoting helpers for BigQuery GoogleSQL.

    Identifiers are back-tick quoted and string literals are single-quoted
    with backslash escaping. Every identifier is validated before it is
    embedded in SQL.
    """

    def quote_identifier(self, identifier: str, identifier_type: str = "identifier") -> str:
        """Quote an identifier for safe SQL usage.

        Args:
            identifier: Identifier to quote
            identifier_type: Type of identifier for error messages

        Returns:
            Back-tick quoted identifier
        """
        self._validate_identifier(identifier, identifier_type)
        return f"`{identifier}`"

    def quote_string(self, value: str) -> str:
        """Quote a string value for SQL.

        Args:
            value: String value to quote

        Returns:
            Single-quoted literal with backslashes and quotes escaped
        """
        escaped = value.replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}'"

    def fully_qualified_name(self, schema: str, object_name: str) -> str:
        """Build `` `schema`.`object` ``."""
        quoted_schema = self.quote_identifier(schema, "schema")
        quoted_object = self.quote_identifier(object_name, "object")
        return f"{quoted_schema}.{quoted_object}"

    def qualified_column(self, table_alias: str, column: str) -> str:
        """Build `` `table`.`column` ``."""
        return f"{self.quote_identifier(table_alias, 'table')}.{self.quote_identifier(column, 'column')}"

    def format_column_list(self, columns: Iterable[str]) -> str:
        """Comma-separated list of quoted columns."""
        return ", ".join(self.quote_identifier(col, "column") for col in columns)

    def _validate_identifier(self, identifier: str, identifier_type: str = "identifier") -> None:
        """Validate an identifier for SQL injection protection.

        Args:
            identifier: The identifier to validate
            identifier_type: Type of identifier for error messages

        Raises:
            ValueError: If identifier is invalid
        """
        if not identifier:
            raise ValueError(f"Empty {identifier_type} name")

        if len(identifier) > _MAX_IDENTIFIER_LENGTH:
            raise ValueError(f"{identifier_type} name too long: {identifier}")

        # Back-ticks would end the quoted identifier, control characters are never valid
        if re.search(r"[`\x00-\x1f]", identifier):
            raise ValueError(f"Invalid {identifier_type} name: {identifier!r}")


class BaseQueryBuilder(SQLQuoting, ABC):
    """Base interface for statement builders with SQL injection protection.

    Statement builders turn operation models into SQL strings. They do NOT
    execute queries; that responsibility belongs to the execution client.

    Security Principles:
        1. **Input Validation**: All identifiers are validated before use
        2. **No Direct Concatenation**: Values travel as ``@name`` parameters
           or escaped literals
        3. **Quoting**: Every identifier is back-tick quoted
    """

    @abstractmethod
    def _build_create_table(self, operation: CreateTable) -> str:
        """Build CREATE TABLE statement."""

    @abstractmethod
    def _build_truncate(self, operation: TruncateTable) -> str:
        """Build TRUNCATE TABLE statement."""

    @abstractmethod
    def _build_clone_table(self, operation: CloneTable) -> str:
        """Build CREATE TABLE ... CLONE statement."""

    @abstractmethod
    def _build_copy_table(self, operation: CopyTable) -> str:
        """Build CREATE TABLE ... COPY statement."""

    @abstractmethod
    def _build_insert(self, operation: Insert) -> str:
        """Build INSERT ... SELECT statement."""

    @abstractmethod
    def _build_delete(self, operation: Delete) -> str:
        """Build DELETE statement."""

    @abstractmethod
    def _build_merge(self, operation: Merge) -> str:
        """Build MERGE statement."""

    @abstractmethod
    def _build_create_view(self, operation: CreateView) -> str:
        """Build CREATE VIEW statement."""

    def build_query(self, operation: BaseOperation) -> str:
        """Build SQL query from operation.

        Args:
            operation: Operation to convert to SQL

        Returns:
            BigQuery SQL statement

        Raises:
            NotImplementedError: If operation type is not supported
        """
        operation_mapping = {
            QueryType.CREATE_TABLE: self._build_create_table,
            QueryType.TRUNCATE: self._build_truncate,
            QueryType.CLONE_TABLE: self._build_clone_table,
            QueryType.COPY_TABLE: self._build_copy_table,
            QueryType.INSERT: self._build_insert,
            QueryType.DELETE: self._build_delete,
            QueryType.MERGE: self._build_merge,
            QueryType.CREATE_VIEW: self._build_create_view,
        }

        builder_method = operation_mapping.get(operation.operation_type)
        if builder_method:
            return builder_method(operation)

        raise NotImplementedError(
            f"Operation type {operation.operation_type} not supported by {self.__class__.__name__}"
        )

    def build_select_all(self, schema: str, object_name: str) -> str:
        """Build ``SELECT * FROM `schema`.`object` ``."""
        return f"SELECT * FROM {self.fully_qualified_name(schema, object_name)}"

    def build_select_columns(self, schema: str, object_name: str, columns: List[str]) -> str:
        """Build a SELECT with specific columns, ``*`` when none are given."""
        if not columns:
            return self.build_select_all(schema, object_name)
        full_name = self.fully_qualified_name(schema, object_name)
        return f"SELECT {self.format_column_list(columns)} FROM {full_name}"
