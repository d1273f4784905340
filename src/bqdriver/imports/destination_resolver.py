"""Resolution and validation of the destination table of an import."""

from typing import Dict, List, Optional, Sequence

from bqdriver.common.exceptions import ColumnsMismatchError
from bqdriver.constants.bigquery import STRING_TYPE, TIMESTAMP_COLUMN
from bqdriver.constants.imports import ImportType
from bqdriver.logging import get_logger
from bqdriver.protocols.execution import ExecutionClient
from bqdriver.types.imports import ImportOptions, TableReference
from bqdriver.types.table import ColumnDefinition, TableDefinition

logger = get_logger(__name__)

_TIMESTAMP_COLUMN_TYPE = "TIMESTAMP"


def _by_name(columns: Sequence[ColumnDefinition]) -> Dict[str, ColumnDefinition]:
    return {column.name.lower(): column for column in columns}


def columns_compatible(expected: ColumnDefinition, actual: ColumnDefinition) -> bool:
    """Whether a source column can be loaded into a destination column.

    A STRING destination accepts anything. Otherwise the type families and
    lengths must match; nullability is never compared.
    """
    if actual.data_type == STRING_TYPE:
        return True
    if expected.base_type != actual.base_type:
        return False
    return (expected.length or "") == (actual.length or "")


class DestinationResolver:
    """Finds, or creates, the destination table of an import."""

    def __init__(self, client: ExecutionClient):
        self.client = client

    def resolve_destination(
        self,
        destination: TableReference,
        options: ImportOptions,
        expected_columns: Sequence[ColumnDefinition],
    ) -> Optional[TableDefinition]:
        """Reflect an existing destination or create it from ``expected_columns``.

        VIEW and CLONE imports create their own object, None is returned
        for them and nothing is reflected.

        The created table declares no dedup columns; they are applied by the
        merge only. A ``_timestamp`` column is added when the import writes it.
        """
        if ImportType(options.import_type) in (ImportType.VIEW, ImportType.CLONE):
            return None

        schema_name, table_name = destination.schema_name, destination.table_name
        if self.client.table_exists(schema_name, table_name):
            return self.client.reflect_table(schema_name, table_name)

        columns = list(expected_columns)
        if options.use_timestamp and not any(c.is_system_timestamp for c in columns):
            columns.append(ColumnDefinition(name=TIMESTAMP_COLUMN, data_type=_TIMESTAMP_COLUMN_TYPE))

        definition = TableDefinition(
            schema_name=schema_name,
            table_name=table_name,
            columns=tuple(columns),
        )
        self.client.create_table(definition)
        logger.info(
            "Destination table created",
            extra={"db.sql.table": f"{schema_name}.{table_name}", "columns": len(columns)},
        )
        return definition

    def validate_incremental_destination(
        self,
        destination: TableDefinition,
        expected_columns: Sequence[ColumnDefinition],
        source_full_definition: TableDefinition,
    ) -> None:
        """Check an upsert destination against the mapped source columns.

        Raises:
            ColumnsMismatchError: Naming every column missing on either side,
                or every column whose definitions are incompatible.
        """
        actual = _by_name(destination.columns)
        expected = _by_name(expected_columns)

        missing_in_source = [
            column.name
            for key, column in actual.items()
            if key != TIMESTAMP_COLUMN and key not in expected
        ]
        if missing_in_source:
            raise ColumnsMismatchError(
                "Some columns are missing in source table "
                f"{source_full_definition.schema_name}.{source_full_definition.table_name}. "
                f"Missing columns: {','.join(missing_in_source)}",
                details={"missing_columns": missing_in_source},
            )

        self.assert_destination_has_columns(destination, [column.name for column in expected_columns])

        errors: List[str] = []
        for key, expected_column in expected.items():
            actual_column = actual[key]
            if not columns_compatible(expected_column, actual_column):
                errors.append(
                    f"'{actual_column.name}' mapping '{expected_column.sql_definition()}' / "
                    f"'{actual_column.sql_definition()}'"
                )
        if errors:
            raise ColumnsMismatchError(
                f"Column definitions mismatch. Details: {'; '.join(errors)}",
                details={"mismatched_columns": errors},
            )

    @staticmethod
    def assert_destination_has_columns(destination: TableDefinition, column_names: Sequence[str]) -> None:
        """Check that every loaded column exists in ``destination``.

        Names are compared case-insensitively.

        Raises:
            ColumnsMismatchError: Listing every column missing in ``destination``.
        """
        missing = [
            name
            for name in column_names
            if not destination.has_column(name)
        ]
        if missing:
            raise ColumnsMismatchError(
                "Some columns are missing in workspace table "
                f"{destination.schema_name}.{destination.table_name}. "
                f"Missing columns: {','.join(missing)}",
                details={"missing_columns": missing},
            )
