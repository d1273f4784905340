"""Command handlers.

Each command model maps to exactly one handler class in ``HANDLERS``;
``dispatch`` resolves the handler and runs it inside an execution
request scope.
"""

from bqdriver.handlers.base import CommandHandler
from bqdriver.handlers.delete_rows import DeleteTableRowsHandler
from bqdriver.handlers.dispatch import HANDLERS, dispatch, get_handler
from bqdriver.handlers.execute_query import ExecuteQueryHandler
from bqdriver.handlers.export import ExportTableHandler
from bqdriver.handlers.preview import PreviewTableHandler
from bqdriver.handlers.table_import import TableImportFromTableHandler

__all__ = [
    "HANDLERS",
    "dispatch",
    "get_handler",
    "CommandHandler",
    "PreviewTableHandler",
    "ExportTableHandler",
    "DeleteTableRowsHandler",
    "ExecuteQueryHandler",
    "TableImportFromTableHandler",
]
