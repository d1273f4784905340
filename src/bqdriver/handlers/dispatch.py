"""Static command dispatch."""

from typing import Any, Dict, Optional, Type

from bqdriver.common.exceptions import unsupported_command_error
from bqdriver.handlers.base import CommandHandler
from bqdriver.handlers.delete_rows import DeleteTableRowsHandler
from bqdriver.handlers.execute_query import ExecuteQueryHandler
from bqdriver.handlers.export import ExportTableHandler
from bqdriver.handlers.preview import PreviewTableHandler
from bqdriver.handlers.table_import import TableImportFromTableHandler
from bqdriver.observability.context import execution_request_scope, resolve_request_context
from bqdriver.protocols.execution import ExecutionClient
from bqdriver.settings.imports import ImportSettings
from bqdriver.types.commands import (
    DeleteTableRowsCommand,
    ExecuteQueryCommand,
    ExportTableCommand,
    PreviewTableCommand,
    TableImportFromTableCommand,
)

HANDLERS: Dict[Type[Any], Type[CommandHandler]] = {
    PreviewTableCommand: PreviewTableHandler,
    ExportTableCommand: ExportTableHandler,
    DeleteTableRowsCommand: DeleteTableRowsHandler,
    ExecuteQueryCommand: ExecuteQueryHandler,
    TableImportFromTableCommand: TableImportFromTableHandler,
}


def get_handler(
    command: Any,
    client: ExecutionClient,
    settings: Optional[ImportSettings] = None,
) -> CommandHandler:
    """Instantiate the handler registered for the exact type of ``command``.

    Raises:
        DriverError: With OPERATION_ERROR for an unregistered command type
    """
    handler_class = HANDLERS.get(type(command))
    if handler_class is None:
        raise unsupported_command_error(command)
    return handler_class(client, settings)


def dispatch(
    command: Any,
    client: ExecutionClient,
    *,
    ctx: Optional[Any] = None,
    settings: Optional[ImportSettings] = None,
) -> Any:
    """Run ``command`` inside an execution request scope and return its response."""
    handler = get_handler(command, client, settings)
    context = resolve_request_context(ctx)
    with execution_request_scope(
        context,
        operation=handler.operation_name,
        command=type(command).__name__,
    ):
        return handler.handle(command)
