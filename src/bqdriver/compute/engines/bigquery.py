import functools
import os
import time
from typing import Any, Dict, List, Optional

from google.cloud import bigquery
from google.cloud.exceptions import NotFound

from bqdriver.common.exceptions import DriverError, ErrorCode, connection_error
from bqdriver.compute.retry import handle_retry_exception, should_retry
from bqdriver.constants.bigquery import (
    BACKEND_NAME,
    REST_TYPE_NAMES,
)
from bqdriver.logging import get_logger
from bqdriver.operations import CopyTable, CreateTable
from bqdriver.query_builder.bigquery import BigQueryQueryBuilder
from bqdriver.settings.bigquery import BigQuerySettings
from bqdriver.types.query import QueryResult
from bqdriver.types.table import ColumnDefinition, TableDefinition, TableStats
from bqdriver.utils.decorators import retry_with_backoff as retry, traced

logger = get_logger(__name__)

_MAX_STATEMENT_ATTRIBUTE_LENGTH = 4096


def _api_retry(func):
    """Retry a client method with the backoff configured on ``self.settings``."""
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        return retry(
            max_retries=self.settings.max_retries,
            initial_delay=self.settings.retry_delay_seconds,
            exponential_base=2,
            max_delay=self.settings.backoff_cap_seconds,
            retry_condition=should_retry,
            on_give_up=handle_retry_exception,
        )(func)(self, *args, **kwargs)

    return wrapper


def column_from_schema_field(field: Any) -> ColumnDefinition:
    """Convert a ``bigquery.SchemaField`` into a ColumnDefinition.

    REST type names are normalized to GoogleSQL names and REPEATED fields
    become ``ARRAY``. Length is taken from ``max_length`` or from
    ``precision``/``scale``.
    """
    data_type = REST_TYPE_NAMES.get(field.field_type.upper(), field.field_type.upper())
    if field.mode == "REPEATED":
        data_type = "ARRAY"

    length: Optional[str] = None
    if getattr(field, "max_length", None):
        length = str(field.max_length)
    elif getattr(field, "precision", None):
        length = str(field.precision)
        if getattr(field, "scale", None) is not None:
            length = f"{field.precision},{field.scale}"

    return ColumnDefinition(
        name=field.name,
        data_type=data_type,
        nullable=field.mode != "REQUIRED",
        length=length,
        default=getattr(field, "default_value_expression", None),
    )


class BigQueryExecutionClient:
    """BigQuery implementation of the ``ExecutionClient`` protocol.

    Wraps a ``google.cloud.bigquery.Client``. Every remote call is traced,
    retried on transient failures and logged with the caller's telemetry.

    Features:
        - Named STRING query parameters (``@name``)
        - Job polling with bounded exponential backoff and a job timeout
        - Table reflection with type normalization
        - Engine-native table copies

    Example:
        >>> with create_execution_client() as client:
        ...     result = client.submit_query("SELECT 1 AS one")
        ...     result.scalar()
        1
    """

    def __init__(self, settings: BigQuerySettings, client: Optional[bigquery.Client] = None):
        """Initialize the execution client.

        Args:
            settings: BigQuery connection settings
            client: Already configured BigQuery client, created lazily when None
        """
        self.settings = settings
        self._client = client
        self._builder = BigQueryQueryBuilder()

    @property
    def client(self) -> bigquery.Client:
        """Get or create the BigQuery client with lazy initialization."""
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> bigquery.Client:
        if self.settings.uses_service_account_file and not os.path.isfile(self.settings.credentials_file):
            raise DriverError.from_error_code(
                ErrorCode.CONFIG_ERROR,
                f"Credentials file \"{self.settings.credentials_file}\" does not exist.",
                details={"credentials_file": self.settings.credentials_file},
            )

        try:
            if self.settings.uses_service_account_file:
                client = bigquery.Client.from_service_account_json(
                    self.settings.credentials_file,
                    project=self.settings.project_id,
                    location=self.settings.location,
                )
            else:
                client = bigquery.Client(
                    project=self.settings.project_id,
                    location=self.settings.location,
                )
        except Exception as e:
            raise connection_error(
                "Failed to create BigQuery client",
                service=BACKEND_NAME,
                cause=e,
            )

        logger.info(
            "Created BigQuery client",
            extra={"gcp.project": client.project, "gcp.location": self.settings.location},
        )
        return client

    def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "BigQueryExecutionClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _table_id(self, schema_name: str, table_name: str) -> str:
        return f"{self.client.project}.{schema_name}.{table_name}"

    def _span_attributes(
        self,
        query: Optional[str],
        telemetry: Optional[Dict[str, str]] = None,
        *,
        operation: str,
        table: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build OpenTelemetry span attributes for BigQuery calls."""
        sanitized_query = (query or "").strip()
        if len(sanitized_query) > _MAX_STATEMENT_ATTRIBUTE_LENGTH:
            sanitized_query = f"{sanitized_query[:_MAX_STATEMENT_ATTRIBUTE_LENGTH - 3]}..."

        attributes: Dict[str, Any] = {
            "db.system": BACKEND_NAME,
            "db.operation": operation,
        }
        if sanitized_query:
            attributes["db.statement"] = sanitized_query
            attributes["db.statement.length"] = len(sanitized_query)
        if table:
            attributes["db.sql.table"] = table

        if telemetry:
            table_name = telemetry.get("operation.object")
            if table_name and not table:
                attributes["db.sql.table"] = table_name
            for key, value in telemetry.items():
                attributes[f"bqdriver.telemetry.{key}"] = value

        return attributes

    def _wait_for_job(self, job: Any, timeout: float) -> None:
        """Poll ``job`` until it is done, sleeping ``min(2^attempt, cap)`` between polls.

        Raises:
            DriverError: With TIMEOUT_ERROR when the job outlives ``timeout``;
                the job is cancelled first.
        """
        deadline = time.monotonic() + timeout
        attempt = 0
        while not job.done():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                job.cancel()
                raise DriverError(
                    f"Job {job.job_id} did not finish within {timeout:g} seconds",
                    error_code=ErrorCode.TIMEOUT_ERROR,
                    details={"job_id": job.job_id, "timeout_seconds": timeout},
                )
            time.sleep(min(2 ** attempt, self.settings.backoff_cap_seconds, remaining))
            attempt += 1

    def _job_config(
        self,
        params: Optional[Dict[str, str]],
        default_dataset: Optional[str],
    ) -> bigquery.QueryJobConfig:
        job_config = bigquery.QueryJobConfig()
        if params:
            job_config.query_parameters = [
                bigquery.ScalarQueryParameter(name, "STRING", value)
                for name, value in params.items()
            ]
        dataset = default_dataset or self.settings.default_dataset
        if dataset:
            job_config.default_dataset = f"{self.client.project}.{dataset}"
        return job_config

    @traced(
        span_name="bqdriver.compute.query.submit",
        attribute_getter=lambda self, sql, params=None, **kwargs: self._span_attributes(
            sql,
            kwargs.get("telemetry"),
            operation="submit_query",
        ),
    )
    @_api_retry
    def submit_query(
        self,
        sql: str,
        params: Optional[Dict[str, str]] = None,
        *,
        timeout: Optional[float] = None,
        default_dataset: Optional[str] = None,
        telemetry: Optional[Dict[str, str]] = None,
    ) -> QueryResult:
        """Run a statement, wait for the job and fetch every row."""
        start_time = time.time()
        payload: Dict[str, str] = dict(telemetry or {})
        job_timeout = timeout or self.settings.job_timeout_seconds

        try:
            job = self.client.query(sql, job_config=self._job_config(params, default_dataset))
            self._wait_for_job(job, job_timeout)
            row_iterator = job.result()
            rows: List[Dict[str, Any]] = [dict(row.items()) for row in row_iterator]
            columns = [field.name for field in (row_iterator.schema or [])]

            duration = time.time() - start_time
            logger.info(
                "SQL query executed",
                extra={
                    **payload,
                    "duration.seconds": f"{duration:.6f}",
                    "bigquery.job_id": job.job_id,
                    "db.rows": len(rows),
                },
            )
            return QueryResult(
                columns=columns,
                rows=rows,
                total_rows=len(rows),
                affected_rows=job.num_dml_affected_rows,
                job_id=job.job_id,
            )

        except DriverError:
            raise
        except Exception as exc:
            duration = time.time() - start_time
            logger.error(
                "SQL query failed",
                extra={**payload, "duration.seconds": f"{duration:.6f}", "error": str(exc)},
                exc_info=True,
            )
            raise

    @traced(
        span_name="bqdriver.compute.table.reflect",
        attribute_getter=lambda self, schema_name, table_name: self._span_attributes(
            None,
            operation="reflect_table",
            table=f"{schema_name}.{table_name}",
        ),
    )
    @_api_retry
    def reflect_table(self, schema_name: str, table_name: str) -> TableDefinition:
        """Read the column layout of a table.

        Raises:
            DriverError: With TABLE_NOT_FOUND when the table does not exist
        """
        try:
            table = self.client.get_table(self._table_id(schema_name, table_name))
        except NotFound as exc:
            raise DriverError.from_error_code(
                ErrorCode.TABLE_NOT_FOUND,
                f'Table "{schema_name}"."{table_name}" not found.',
                details={"schema": schema_name, "table": table_name},
                cause=exc,
            )

        return TableDefinition(
            schema_name=schema_name,
            table_name=table_name,
            columns=tuple(column_from_schema_field(field) for field in table.schema),
        )

    @traced(
        span_name="bqdriver.compute.table.exists",
        attribute_getter=lambda self, schema_name, table_name: self._span_attributes(
            None,
            operation="table_exists",
            table=f"{schema_name}.{table_name}",
        ),
    )
    @_api_retry
    def table_exists(self, schema_name: str, table_name: str) -> bool:
        try:
            self.client.get_table(self._table_id(schema_name, table_name))
        except NotFound:
            return False
        return True

    @traced(
        span_name="bqdriver.compute.table.drop",
        attribute_getter=lambda self, schema_name, table_name, if_exists=True: self._span_attributes(
            None,
            operation="drop_table",
            table=f"{schema_name}.{table_name}",
        ),
    )
    @_api_retry
    def drop_table(self, schema_name: str, table_name: str, if_exists: bool = True) -> None:
        self.client.delete_table(self._table_id(schema_name, table_name), not_found_ok=if_exists)
        logger.info("Table dropped", extra={"db.sql.table": f"{schema_name}.{table_name}"})

    def create_table(self, definition: TableDefinition) -> None:
        """Create an empty table through a CREATE TABLE statement."""
        operation = CreateTable(
            schema_name=definition.schema_name,
            object_name=definition.table_name,
            columns=list(definition.columns),
        )
        self.submit_query(
            self._builder.build_query(operation),
            telemetry=operation.telemetry_fields(),
        )

    def copy_table(
        self,
        source_schema: str,
        source_table: str,
        destination_schema: str,
        destination_table: str,
    ) -> None:
        """Engine-native copy of a table through ``CREATE TABLE ... COPY``."""
        operation = CopyTable(
            schema_name=destination_schema,
            object_name=destination_table,
            source_schema=source_schema,
            source_object=source_table,
        )
        self.submit_query(
            self._builder.build_query(operation),
            telemetry=operation.telemetry_fields(),
        )

    @traced(
        span_name="bqdriver.compute.table.stats",
        attribute_getter=lambda self, schema_name, table_name: self._span_attributes(
            None,
            operation="get_table_stats",
            table=f"{schema_name}.{table_name}",
        ),
    )
    @_api_retry
    def get_table_stats(self, schema_name: str, table_name: str) -> TableStats:
        table = self.client.get_table(self._table_id(schema_name, table_name))
        return TableStats(row_count=table.num_rows or 0, size_bytes=table.num_bytes or 0)
