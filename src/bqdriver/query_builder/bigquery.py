"""BigQuery (GoogleSQL) statement builder implementation."""

from bqdriver.operations import (
    CloneTable,
    CopyTable,
    CreateTable,
    CreateView,
    Delete,
    Insert,
    Merge,
    TruncateTable,
)
from bqdriver.query_builder.base import BaseQueryBuilder

TARGET_ALIAS = "dest"
SOURCE_ALIAS = "src"


class BigQueryQueryBuilder(BaseQueryBuilder):
    """Statement builder for BigQuery.

    Generates GoogleSQL for the table operations used by imports, previews
    and row deletion.

    Key Features:
        - Engine-native CLONE and COPY of tables
        - CREATE TABLE AS SELECT for clone fallbacks
        - MERGE with conditional updates for incremental upserts
        - Back-tick quoting of every identifier
    """

    def _build_create_table(self, operation: CreateTable) -> str:
        """Build CREATE TABLE from columns, or CTAS from a select query."""
        target = self.fully_qualified_name(operation.schema_name, operation.object_name)
        create = "CREATE TABLE IF NOT EXISTS" if operation.if_not_exists else "CREATE TABLE"

        if operation.select_query is not None:
            return f"{create} {target} AS (\n  {operation.select_query}\n);"

        definitions = ",\n  ".join(
            f"{self.quote_identifier(col.name, 'column')} {col.sql_definition()}"
            for col in operation.columns
        )
        return f"{create} {target} (\n  {definitions}\n)"

    def _build_truncate(self, operation: TruncateTable) -> str:
        target = self.fully_qualified_name(operation.schema_name, operation.object_name)
        return f"TRUNCATE TABLE {target}"

    def _build_clone_table(self, operation: CloneTable) -> str:
        target = self.fully_qualified_name(operation.schema_name, operation.object_name)
        source = self.fully_qualified_name(operation.source_schema, operation.source_object)
        return f"CREATE TABLE {target} CLONE {source};"

    def _build_copy_table(self, operation: CopyTable) -> str:
        target = self.fully_qualified_name(operation.schema_name, operation.object_name)
        source = self.fully_qualified_name(operation.source_schema, operation.source_object)
        return f"CREATE TABLE {target} COPY {source}"

    def _build_insert(self, operation: Insert) -> str:
        target = self.fully_qualified_name(operation.schema_name, operation.object_name)
        columns = self.format_column_list(operation.columns)
        return f"INSERT INTO {target} ({columns})\n{operation.source_query}"

    def _build_delete(self, operation: Delete) -> str:
        """Build DELETE statement.

        BigQuery requires a WHERE clause, ``true`` deletes every row.
        """
        target = self.fully_qualified_name(operation.schema_name, operation.object_name)
        return f"DELETE FROM {target} WHERE {operation.where_clause or 'true'}"

    def _build_merge(self, operation: Merge) -> str:
        """Build MERGE statement keyed on every key column."""
        target = self.fully_qualified_name(operation.schema_name, operation.object_name)

        sql = f"MERGE INTO {target} AS {TARGET_ALIAS}"
        sql += f"\nUSING ({operation.source_query}) AS {SOURCE_ALIAS}"
        on_clause = " AND ".join(
            f"{TARGET_ALIAS}.{self.quote_identifier(col, 'column')} = "
            f"{SOURCE_ALIAS}.{self.quote_identifier(col, 'column')}"
            for col in operation.key_columns
        )
        sql += f"\nON {on_clause}"

        if operation.update_columns:
            sql += "\nWHEN MATCHED"
            if operation.matched_condition:
                sql += f" AND ({operation.matched_condition})"
            set_clause = ", ".join(
                f"{self.quote_identifier(col, 'column')} = {value}"
                for col, value in operation.update_columns.items()
            )
            sql += f" THEN UPDATE SET {set_clause}"

        columns_str = self.format_column_list(operation.insert_columns)
        values_str = ", ".join(operation.insert_values)
        sql += f"\nWHEN NOT MATCHED THEN INSERT ({columns_str}) VALUES ({values_str})"
        return sql

    def _build_create_view(self, operation: CreateView) -> str:
        target = self.fully_qualified_name(operation.schema_name, operation.object_name)
        create = "CREATE OR REPLACE VIEW" if operation.or_replace else "CREATE VIEW"
        return f"{create} {target} AS (\n  {operation.select_query}\n);"
