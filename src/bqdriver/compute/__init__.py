"""bqdriver compute module.

Provides the BigQuery execution client, its scoped factory and the retry
policy applied to every BigQuery API call.

Example Usage:

    >>> from bqdriver.compute import create_execution_client
    >>> with create_execution_client() as client:
    ...     result = client.submit_query(
    ...         "SELECT COUNT(*) AS n FROM `sales`.`orders` WHERE `region` = @region",
    ...         {"region": "US"},
    ...     )
    ...     result.scalar("n")
"""

from bqdriver.compute.engines.bigquery import BigQueryExecutionClient
from bqdriver.compute.factory import create_execution_client
from bqdriver.compute.retry import handle_retry_exception, should_retry

__all__ = [
    "BigQueryExecutionClient",
    "create_execution_client",
    "handle_retry_exception",
    "should_retry",
]
