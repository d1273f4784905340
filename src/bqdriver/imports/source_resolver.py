"""Resolution of the source side of a table-to-table import."""

from typing import Optional

from bqdriver.imports.column_mapping import (
    expected_destination_columns,
    is_full_column_set,
    is_renaming,
    source_column_names,
)
from bqdriver.logging import get_logger
from bqdriver.protocols.execution import ExecutionClient
from bqdriver.query_builder.import_builder import ImportQueryBuilder
from bqdriver.types.imports import (
    ImportSource,
    SelectSource,
    SourceContext,
    SourceTableMapping,
    TableSource,
)
from bqdriver.types.table import TableDefinition

logger = get_logger(__name__)


class SourceResolver:
    """Turns a source mapping into a resolved ``SourceContext``.

    A bare table reference is kept whenever possible so that the staging
    step can use a native copy. A parametrized SELECT is built when the
    import reads a column subset, renames columns, filters rows, limits
    them or reads a time-travel window.
    """

    def __init__(
        self,
        client: ExecutionClient,
        query_builder: Optional[ImportQueryBuilder] = None,
    ):
        self.client = client
        self.query_builder = query_builder or ImportQueryBuilder()

    def create_from_command(self, mapping: SourceTableMapping) -> SourceContext:
        """Reflect the source table and resolve mapped columns.

        Raises:
            ColumnsMismatchError: If mapped source columns are missing
            ColumnNotFoundError: If a where filter references an unknown column
        """
        full_definition = self.client.reflect_table(mapping.schema_name, mapping.table_name)

        selected = source_column_names(mapping.column_mappings, full_definition)
        effective_definition = TableDefinition(
            schema_name=full_definition.schema_name,
            table_name=full_definition.table_name,
            columns=expected_destination_columns(full_definition, mapping.column_mappings),
        )

        source: ImportSource
        if self.requires_select(mapping, full_definition):
            query = self.query_builder.build_select_source_sql(
                full_definition,
                selected,
                where_filters=mapping.where_filters,
                limit=mapping.limit,
                seconds=mapping.seconds,
            )
            source = SelectSource(sql=query.sql, bindings=query.bindings, columns=tuple(selected))
        else:
            source = TableSource(
                schema_name=full_definition.schema_name,
                table_name=full_definition.table_name,
                columns=tuple(selected),
            )

        logger.debug(
            "Import source resolved",
            extra={
                "source.table": f"{full_definition.schema_name}.{full_definition.table_name}",
                "source.kind": source.kind,
                "source.columns": len(selected),
            },
        )
        return SourceContext(
            source=source,
            effective_definition=effective_definition,
            full_definition=full_definition,
            selected_columns=tuple(selected),
        )

    @staticmethod
    def requires_select(mapping: SourceTableMapping, full_definition: TableDefinition) -> bool:
        selected = [m.source_column_name for m in mapping.column_mappings]
        return (
            not is_full_column_set(selected, full_definition)
            or is_renaming(mapping.column_mappings)
            or bool(mapping.where_filters)
            or mapping.limit > 0
            or mapping.seconds > 0
        )
