"""Export of table rows into a pandas DataFrame."""

import pandas as pd

from bqdriver.constants.sql import QueryMode
from bqdriver.handlers.base import CommandHandler
from bqdriver.logging import get_logger
from bqdriver.query_builder.filter_builder import FilterQueryBuilder
from bqdriver.types.commands import ExportTableCommand, ExportTableResponse

logger = get_logger(__name__)

COMMAND_NAME = "ExportTableCommand"


class ExportTableHandler(CommandHandler):
    """Selects the filtered rows of a table.

    Writing files is left to the caller, see ``ExportTableResponse.to_csv``.
    """

    operation_name = "bqdriver.table.export"

    def handle(self, command: ExportTableCommand) -> ExportTableResponse:
        self.validate_change_filters(COMMAND_NAME, command.filters)
        definition = self.client.reflect_table(command.schema_name, command.table_name)

        query = FilterQueryBuilder(self.settings).build(
            QueryMode.SELECT,
            command.schema_name,
            command.table_name,
            columns=command.columns,
            order_by=command.order_by,
            filters=command.filters,
            table_definition=definition,
        )
        result = self.client.submit_query(query.sql, query.bindings or None)

        columns = list(command.columns) or result.columns or definition.column_names
        data = pd.DataFrame.from_records(result.rows, columns=columns)
        logger.info(
            "Table exported",
            extra={
                "db.sql.table": f"{command.schema_name}.{command.table_name}",
                "db.rows": len(data.index),
            },
        )
        return ExportTableResponse(
            columns=columns,
            rows_count=len(data.index),
            data=data,
            sql=query.sql,
        )
