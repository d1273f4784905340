"""Application of staged rows to the destination table."""

from typing import Dict, List, Optional

from bqdriver.common.exceptions import ImportValidationError
from bqdriver.constants.bigquery import TIMESTAMP_COLUMN, UNORDERABLE_TYPES
from bqdriver.constants.imports import DedupType, ImportType, TimestampMode
from bqdriver.imports.timers import ImportTimers
from bqdriver.logging import get_logger
from bqdriver.operations import BaseOperation, Insert, Merge, TruncateTable
from bqdriver.protocols.execution import ExecutionClient
from bqdriver.query_builder.bigquery import SOURCE_ALIAS, TARGET_ALIAS, BigQueryQueryBuilder
from bqdriver.types.imports import ImportOptions
from bqdriver.types.table import TableDefinition

logger = get_logger(__name__)

TIMER_FROM_STAGING = "fromStagingToTarget"

_ROW_NUMBER_COLUMN = "__row_number"
_CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP()"


class MergeEngine:
    """Writes the content of a staging table into the destination.

    - FULL: the destination is truncated and refilled, one row per dedup
      key when the import updates duplicates.
    - INCREMENTAL with dedup columns: ``MERGE`` keyed on every dedup
      column; matched rows are updated when any value differs, the others
      are inserted.
    - INCREMENTAL without dedup columns: rows are appended.

    Deduplication keeps the staging row with the latest ``_timestamp``,
    otherwise the first row ordered by the non-key columns.
    """

    def __init__(
        self,
        client: ExecutionClient,
        query_builder: Optional[BigQueryQueryBuilder] = None,
    ):
        self.client = client
        self.query_builder = query_builder or BigQueryQueryBuilder()

    @staticmethod
    def empty_to_null(
        expression: str,
        column_name: str,
        target: TableDefinition,
        options: ImportOptions,
    ) -> str:
        """Wrap ``expression`` in ``NULLIF(..., '')`` for configured string columns."""
        converted = {name.lower() for name in options.convert_empty_values_to_null}
        if column_name.lower() not in converted:
            return expression
        column = target.get_column(column_name)
        if column is not None and not column.is_string:
            return expression
        return f"NULLIF({expression}, '')"

    def apply(
        self,
        staging: TableDefinition,
        destination: TableDefinition,
        options: ImportOptions,
        timers: ImportTimers,
    ) -> None:
        """Move staged rows into ``destination``.

        Raises:
            ImportValidationError: If a NOT NULL destination column would
                receive NULL values or is not supplied at all.
        """
        self.assert_required_columns(staging, destination, options)

        with timers.measure(TIMER_FROM_STAGING):
            if ImportType(options.import_type) == ImportType.FULL:
                self._replace(staging, destination, options)
            elif options.requires_deduplication:
                self._upsert(staging, destination, options)
            else:
                self._append(staging, destination, options)

    def assert_required_columns(
        self,
        staging: TableDefinition,
        destination: TableDefinition,
        options: ImportOptions,
    ) -> None:
        """Fail before writing when a NOT NULL column would receive NULL."""
        supplied = {
            column.name.lower(): self._value(column.name, destination, options)
            for column in staging.columns
        }
        relation = self.query_builder.fully_qualified_name(staging.schema_name, staging.table_name)
        self.check_required_values(destination, options, supplied, relation)

    def check_required_values(
        self,
        destination: TableDefinition,
        options: ImportOptions,
        supplied: Dict[str, str],
        relation: str,
        bindings: Optional[Dict[str, str]] = None,
    ) -> None:
        """Count NULLs written into the NOT NULL columns of ``destination``.

        Args:
            destination: Table whose NOT NULL columns are checked
            options: Import options, decide whether ``_timestamp`` is written
            supplied: Lower-cased destination column name to the value
                expression over ``src`` written into it
            relation: Table name or parenthesized SELECT aliased as ``src``
            bindings: Query parameters of ``relation``

        Raises:
            ImportValidationError: Naming every required column without a
                value or with NULL values.
        """
        required = [
            column
            for column in destination.columns
            if not column.nullable and not (column.is_system_timestamp and self._writes_timestamp(destination, options))
        ]
        if not required:
            return

        unsupplied = [
            column.name
            for column in required
            if column.name.lower() not in supplied and column.default is None
        ]
        if unsupplied:
            raise ImportValidationError(
                f'Required columns "{", ".join(unsupplied)}" are missing in source.',
                details={"columns": unsupplied},
            )

        checked = [column for column in required if column.name.lower() in supplied]
        counts = ", ".join(
            f"COUNTIF({supplied[column.name.lower()]} IS NULL) "
            f"AS {self.query_builder.quote_identifier(column.name, 'column')}"
            for column in checked
        )
        result = self.client.submit_query(f"SELECT {counts} FROM {relation} AS {SOURCE_ALIAS}", bindings or None)
        row = result.rows[0] if result.rows else {}

        violated = [column.name for column in checked if (row.get(column.name) or 0) > 0]
        if violated:
            raise ImportValidationError(
                f'Required columns "{", ".join(violated)}" cannot contain NULL values.',
                details={"columns": violated},
            )

    def _replace(self, staging: TableDefinition, destination: TableDefinition, options: ImportOptions) -> None:
        truncate = TruncateTable(schema_name=destination.schema_name, object_name=destination.table_name)
        self._submit(truncate)

        if self._deduplicates(options):
            source = f"({self.deduplicated_source_sql(staging, options.dedup_columns)})"
        else:
            source = self.query_builder.fully_qualified_name(staging.schema_name, staging.table_name)
        self._submit(self._insert(staging, destination, options, source))

    def _append(self, staging: TableDefinition, destination: TableDefinition, options: ImportOptions) -> None:
        source = self.query_builder.fully_qualified_name(staging.schema_name, staging.table_name)
        self._submit(self._insert(staging, destination, options, source))

    def _upsert(self, staging: TableDefinition, destination: TableDefinition, options: ImportOptions) -> None:
        columns = self._columns(staging, destination, options)
        keys = {name.lower() for name in options.dedup_columns}

        update_columns: Dict[str, str] = {}
        differences: List[str] = []
        for name in columns:
            if name.lower() in keys:
                continue
            value = self._value(name, destination, options)
            update_columns[name] = value
            target = f"{TARGET_ALIAS}.{self.query_builder.quote_identifier(name, 'column')}"
            differences.append(f"{target} IS DISTINCT FROM {value}")

        insert_columns = list(columns)
        insert_values = [self._value(name, destination, options) for name in columns]
        if self._writes_timestamp(destination, options):
            timestamp = self._timestamp_value(staging, options)
            insert_columns.append(TIMESTAMP_COLUMN)
            insert_values.append(timestamp)
            if update_columns:
                update_columns[TIMESTAMP_COLUMN] = timestamp

        merge = Merge(
            schema_name=destination.schema_name,
            object_name=destination.table_name,
            source_query=self.deduplicated_source_sql(staging, options.dedup_columns),
            key_columns=list(options.dedup_columns),
            update_columns=update_columns,
            matched_condition=" OR ".join(differences) or None,
            insert_columns=insert_columns,
            insert_values=insert_values,
        )
        self._submit(merge)

    def deduplicated_source_sql(self, staging: TableDefinition, key_columns: List[str]) -> str:
        """One staging row per key.

        The latest ``_timestamp`` wins. Without it rows are ordered by every
        other orderable staging column, so identical loads keep the same row.
        """
        quote = self.query_builder.quote_identifier
        partition = ", ".join(quote(c, "column") for c in key_columns)
        if staging.has_column(TIMESTAMP_COLUMN):
            order = f"{quote(TIMESTAMP_COLUMN, 'column')} DESC"
        else:
            keys = {name.lower() for name in key_columns}
            order = ", ".join(
                quote(column.name, "column")
                for column in staging.columns
                if column.name.lower() not in keys
                and column.base_type.split("<", 1)[0] not in UNORDERABLE_TYPES
            ) or partition
        row_number = quote(_ROW_NUMBER_COLUMN, "column")
        target = self.query_builder.fully_qualified_name(staging.schema_name, staging.table_name)
        return (
            f"SELECT * EXCEPT({row_number}) FROM ("
            f"SELECT *, ROW_NUMBER() OVER (PARTITION BY {partition} ORDER BY {order}) AS {row_number} "
            f"FROM {target}"
            f") WHERE {row_number} = 1"
        )

    def _insert(
        self,
        staging: TableDefinition,
        destination: TableDefinition,
        options: ImportOptions,
        source: str,
    ) -> Insert:
        columns = self._columns(staging, destination, options)
        values = [self._value(name, destination, options) for name in columns]
        if self._writes_timestamp(destination, options):
            columns.append(TIMESTAMP_COLUMN)
            values.append(self._timestamp_value(staging, options))
        return Insert(
            schema_name=destination.schema_name,
            object_name=destination.table_name,
            columns=columns,
            source_query=f"SELECT {', '.join(values)} FROM {source} AS {SOURCE_ALIAS}",
        )

    def _columns(self, staging: TableDefinition, destination: TableDefinition, options: ImportOptions) -> List[str]:
        """Staging columns written to the destination, timestamp handled apart."""
        writes_timestamp = self._writes_timestamp(destination, options)
        return [
            column.name
            for column in staging.columns
            if destination.has_column(column.name)
            and not (writes_timestamp and column.is_system_timestamp)
        ]

    def _value(self, name: str, destination: TableDefinition, options: ImportOptions) -> str:
        expression = f"{SOURCE_ALIAS}.{self.query_builder.quote_identifier(name, 'column')}"
        return self.empty_to_null(expression, name, destination, options)

    @staticmethod
    def _writes_timestamp(destination: TableDefinition, options: ImportOptions) -> bool:
        return options.use_timestamp and destination.has_column(TIMESTAMP_COLUMN)

    def _timestamp_value(self, staging: TableDefinition, options: ImportOptions) -> str:
        if TimestampMode(options.timestamp_mode) == TimestampMode.FROM_SOURCE and staging.has_column(TIMESTAMP_COLUMN):
            return f"{SOURCE_ALIAS}.{self.query_builder.quote_identifier(TIMESTAMP_COLUMN, 'column')}"
        return _CURRENT_TIMESTAMP

    @staticmethod
    def _deduplicates(options: ImportOptions) -> bool:
        return DedupType(options.dedup_type) == DedupType.UPDATE_DUPLICATES and bool(options.dedup_columns)

    def _submit(self, operation: BaseOperation) -> None:
        result = self.client.submit_query(
            self.query_builder.build_query(operation),
            telemetry=operation.telemetry_fields(),
        )
        logger.info(
            "Staged rows applied",
            extra={
                **operation.telemetry_fields(),
                "db.rows": result.affected_rows,
            },
        )
