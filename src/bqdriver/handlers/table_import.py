"""Table-to-table import."""

from bqdriver.handlers.base import CommandHandler
from bqdriver.imports import ImportOrchestrator
from bqdriver.types.commands import ImportTimer, TableImportFromTableCommand, TableImportResponse


class TableImportFromTableHandler(CommandHandler):
    """Runs the import pipeline and reports the destination statistics."""

    operation_name = "bqdriver.table.import"

    def handle(self, command: TableImportFromTableCommand) -> TableImportResponse:
        result = ImportOrchestrator(self.client, self.settings).run(command)

        destination = command.destination
        stats = self.client.get_table_stats(destination.schema_name, destination.table_name)
        return TableImportResponse(
            table_rows_count=stats.row_count,
            table_size_bytes=stats.size_bytes,
            imported_columns=list(result.imported_columns),
            imported_rows_count=result.imported_rows_count,
            timers=[ImportTimer(name=name, duration_seconds=seconds) for name, seconds in result.timers],
        )
