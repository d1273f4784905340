"""Deletion of table rows matching filters."""

from bqdriver.constants.sql import QueryMode
from bqdriver.handlers.base import CommandHandler
from bqdriver.logging import get_logger
from bqdriver.operations import TruncateTable
from bqdriver.query_builder.bigquery import BigQueryQueryBuilder
from bqdriver.query_builder.filter_builder import FilterQueryBuilder
from bqdriver.types.commands import DeleteTableRowsCommand, DeleteTableRowsResponse
from bqdriver.types.query import QueryBuilderResult

logger = get_logger(__name__)

COMMAND_NAME = "DeleteTableRowsCommand"


class DeleteTableRowsHandler(CommandHandler):
    """Truncates the table when no filter is given, otherwise runs a filtered DELETE.

    The deleted row count is the difference of the table row counts
    before and after the statement.
    """

    operation_name = "bqdriver.table.delete_rows"

    def handle(self, command: DeleteTableRowsCommand) -> DeleteTableRowsResponse:
        filters = command.filters.model_copy(update={"limit": 0, "fulltext_search": ""})
        self.validate_change_filters(COMMAND_NAME, filters)

        definition = self.client.reflect_table(command.schema_name, command.table_name)

        if filters.has_active_filter:
            query = FilterQueryBuilder(self.settings).build(
                QueryMode.DELETE,
                command.schema_name,
                command.table_name,
                filters=filters,
                table_definition=definition,
            )
        else:
            truncate = TruncateTable(schema_name=command.schema_name, object_name=command.table_name)
            query = QueryBuilderResult(sql=BigQueryQueryBuilder().build_query(truncate))

        rows_before = self.client.get_table_stats(command.schema_name, command.table_name).row_count
        self.client.submit_query(query.sql, query.bindings or None)
        stats = self.client.get_table_stats(command.schema_name, command.table_name)

        deleted = max(rows_before - stats.row_count, 0)
        logger.info(
            "Table rows deleted",
            extra={
                "db.sql.table": f"{command.schema_name}.{command.table_name}",
                "db.rows": deleted,
                "truncated": not filters.has_active_filter,
            },
        )
        return DeleteTableRowsResponse(
            deleted_rows_count=deleted,
            table_rows_count=stats.row_count,
            table_size_bytes=stats.size_bytes,
        )
