"""Factory for BigQuery execution clients.

Execution clients are scoped resources: every request acquires one
through ``create_execution_client`` and the underlying HTTP session is
closed on every exit path, including errors.

Configuration:
    The client is configured through environment variables with the
    BIGQUERY_ prefix:

    - BIGQUERY_PROJECT_ID: Project the jobs run in
    - BIGQUERY_LOCATION: Job location
    - BIGQUERY_CREDENTIALS_FILE: Service account key, application
      default credentials when unset

    See bqdriver.settings.BigQuerySettings for all options.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from bqdriver.compute.engines.bigquery import BigQueryExecutionClient
from bqdriver.logging import get_logger
from bqdriver.settings import get_settings
from bqdriver.settings.bigquery import BigQuerySettings

logger = get_logger(__name__)


@contextmanager
def create_execution_client(
    settings: Optional[BigQuerySettings] = None,
) -> Iterator[BigQueryExecutionClient]:
    """Yield a BigQuery execution client and close it afterwards.

    Args:
        settings: BigQuery settings, the global ``settings.bigquery`` when None

    Example:
        >>> with create_execution_client() as client:
        ...     stats = client.get_table_stats("sales", "orders")
    """
    client = BigQueryExecutionClient(settings or get_settings().bigquery)
    try:
        yield client
    finally:
        client.close()
        logger.debug("Execution client closed")
