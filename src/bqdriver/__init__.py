from bqdriver.__version__ import __version__

from bqdriver.handlers import (
    HANDLERS,
    dispatch,
)
from bqdriver.compute import create_execution_client, BigQueryExecutionClient
from bqdriver.imports import ImportOrchestrator
from bqdriver.query_builder import FilterQueryBuilder, ImportQueryBuilder

from bqdriver.types.commands import (
    DeleteTableRowsCommand,
    DeleteTableRowsResponse,
    ExecuteQueryCommand,
    ExecuteQueryResponse,
    ExportTableCommand,
    ExportTableResponse,
    PreviewTableCommand,
    PreviewTableResponse,
    TableImportFromTableCommand,
    TableImportResponse,
)

from bqdriver.common.exceptions import DriverError, ErrorCode

# Utils (public API)
from bqdriver.utils import (
    retry,
    traced,
)


__all__ = [
    "__version__",

    # Dispatch
    "HANDLERS",
    "dispatch",

    # Client
    "create_execution_client",
    "BigQueryExecutionClient",

    # Engines
    "ImportOrchestrator",
    "FilterQueryBuilder",
    "ImportQueryBuilder",

    # Commands
    "PreviewTableCommand",
    "PreviewTableResponse",
    "ExportTableCommand",
    "ExportTableResponse",
    "DeleteTableRowsCommand",
    "DeleteTableRowsResponse",
    "ExecuteQueryCommand",
    "ExecuteQueryResponse",
    "TableImportFromTableCommand",
    "TableImportResponse",

    # Exceptions (public API)
    "DriverError",
    "ErrorCode",

    # Utilities (public API)
    "retry",
    "traced",
]
