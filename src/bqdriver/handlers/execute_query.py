"""Execution of an arbitrary statement against a default dataset."""

from bqdriver.common.error_messages import decode_error_message
from bqdriver.constants.bigquery import DEFAULT_QUERY_TIMEOUT_SECONDS
from bqdriver.handlers.base import CommandHandler
from bqdriver.logging import get_logger
from bqdriver.types.commands import (
    ExecuteQueryCommand,
    ExecuteQueryData,
    ExecuteQueryResponse,
    QueryStatus,
)

logger = get_logger(__name__)


class ExecuteQueryHandler(CommandHandler):
    """Runs ``command.query`` and reports failures in the response.

    The first entry of ``path_restriction`` is the default dataset. A
    non-positive timeout means one hour.
    """

    operation_name = "bqdriver.query.execute"

    def handle(self, command: ExecuteQueryCommand) -> ExecuteQueryResponse:
        timeout = command.timeout if command.timeout > 0 else DEFAULT_QUERY_TIMEOUT_SECONDS
        try:
            result = self.client.submit_query(
                command.query,
                timeout=timeout,
                default_dataset=command.dataset_name,
            )
        except Exception as exc:
            logger.error(
                "Query execution failed",
                extra={"db.dataset": command.dataset_name, "error": str(exc)},
                exc_info=True,
            )
            return ExecuteQueryResponse(
                status=QueryStatus.error,
                message=decode_error_message(exc),
            )

        if result.job_id:
            message = f'Query "{result.job_id}" executed successfully.'
        else:
            message = "Query executed successfully."

        data = None
        if result.columns:
            data = ExecuteQueryData(columns=result.columns, rows=result.rows)
        return ExecuteQueryResponse(status=QueryStatus.success, message=message, data=data)
