"""Unit tests for the BigQuery execution client with a mocked google client."""

from unittest.mock import Mock, patch

import pytest
from google.api_core.exceptions import NotFound, ServiceUnavailable
from google.cloud import bigquery

from bqdriver.common.exceptions import DriverError, ErrorCode
from bqdriver.compute import BigQueryExecutionClient, create_execution_client
from bqdriver.settings import BigQuerySettings
from bqdriver.types.table import ColumnDefinition, TableDefinition


class RowIterator(list):
    """List of rows carrying a result schema like ``google.cloud.bigquery.table.RowIterator``."""

    def __init__(self, rows, schema):
        super().__init__(rows)
        self.schema = schema


def finished_job(rows=(), schema=(), affected_rows=None, job_id="job_1"):
    job = Mock()
    job.done.return_value = True
    job.result.return_value = RowIterator(list(rows), list(schema))
    job.num_dml_affected_rows = affected_rows
    job.job_id = job_id
    return job


@pytest.fixture
def google_client():
    client = Mock(spec=bigquery.Client)
    client.project = "proj"
    return client


@pytest.fixture
def execution_client(google_client):
    return BigQueryExecutionClient(BigQuerySettings(job_timeout_seconds=30), client=google_client)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("bqdriver.utils.decorators.time.sleep") as sleep:
        yield sleep


class TestSubmitQuery:
    """Test job submission and result collection."""

    def test_rows_and_parameters(self, execution_client, google_client):
        """Test named STRING parameters, default dataset and fetched rows."""
        google_client.query.return_value = finished_job(
            rows=[{"id": 1, "name": "a"}],
            schema=[bigquery.SchemaField("id", "INTEGER"), bigquery.SchemaField("name", "STRING")],
        )

        result = execution_client.submit_query(
            "SELECT * FROM t WHERE name = @dcValue1",
            {"dcValue1": "a"},
            default_dataset="sales",
        )

        assert result.columns == ["id", "name"]
        assert result.rows == [{"id": 1, "name": "a"}]
        assert result.total_rows == 1
        assert result.job_id == "job_1"

        job_config = google_client.query.call_args.kwargs["job_config"]
        parameter = job_config.query_parameters[0]
        assert (parameter.name, parameter.type_, parameter.value) == ("dcValue1", "STRING", "a")
        assert job_config.default_dataset.project == "proj"
        assert job_config.default_dataset.dataset_id == "sales"

    def test_dml_reports_affected_rows(self, execution_client, google_client):
        """Test num_dml_affected_rows."""
        google_client.query.return_value = finished_job(affected_rows=12)

        result = execution_client.submit_query("DELETE FROM t WHERE true")

        assert result.affected_rows == 12
        assert result.rows == []

    def test_transient_failures_are_retried(self, execution_client, google_client):
        """Test that 503 answers are retried."""
        google_client.query.side_effect = [ServiceUnavailable("later"), finished_job()]

        execution_client.submit_query("SELECT 1")

        assert google_client.query.call_count == 2

    def test_configured_retry_count(self, google_client):
        """Test that max_retries bounds the attempts."""
        execution_client = BigQueryExecutionClient(BigQuerySettings(max_retries=0), client=google_client)
        google_client.query.side_effect = ServiceUnavailable("later")

        with pytest.raises(ServiceUnavailable):
            execution_client.submit_query("SELECT 1")

        assert google_client.query.call_count == 1

    def test_job_timeout_cancels_job(self, execution_client, google_client):
        """Test that a job outliving the timeout is cancelled."""
        job = finished_job()
        job.done.return_value = False
        google_client.query.return_value = job

        with patch("bqdriver.compute.engines.bigquery.time.sleep"):
            with pytest.raises(DriverError) as exc_info:
                execution_client.submit_query("SELECT 1", timeout=0.01)

        assert exc_info.value.error_code == ErrorCode.TIMEOUT_ERROR
        job.cancel.assert_called_once()
        assert google_client.query.call_count == 1


class TestCatalog:
    """Test reflection, existence checks and statistics."""

    def test_reflect_table_normalizes_types(self, execution_client, google_client):
        """Test REST names, REPEATED fields, lengths and nullability."""
        google_client.get_table.return_value = Mock(schema=[
            bigquery.SchemaField("id", "INTEGER", mode="REQUIRED"),
            bigquery.SchemaField("name", "STRING", max_length=10),
            bigquery.SchemaField("amount", "NUMERIC", precision=12, scale=2),
            bigquery.SchemaField("tags", "STRING", mode="REPEATED"),
            bigquery.SchemaField("flag", "BOOLEAN"),
        ])

        definition = execution_client.reflect_table("sales", "orders")

        google_client.get_table.assert_called_once_with("proj.sales.orders")
        assert [(c.name, c.data_type, c.nullable, c.length) for c in definition.columns] == [
            ("id", "INT64", False, None),
            ("name", "STRING", True, "10"),
            ("amount", "NUMERIC", True, "12,2"),
            ("tags", "ARRAY", True, None),
            ("flag", "BOOL", True, None),
        ]

    def test_reflect_missing_table(self, execution_client, google_client):
        """Test TABLE_NOT_FOUND without retries."""
        google_client.get_table.side_effect = NotFound("Not found: Table proj:sales.orders")

        with pytest.raises(DriverError) as exc_info:
            execution_client.reflect_table("sales", "orders")

        assert exc_info.value.error_code == ErrorCode.TABLE_NOT_FOUND
        assert google_client.get_table.call_count == 1

    def test_table_exists(self, execution_client, google_client):
        """Test existence checks."""
        assert execution_client.table_exists("sales", "orders")

        google_client.get_table.side_effect = NotFound("missing")
        assert not execution_client.table_exists("sales", "orders")

    def test_table_stats(self, execution_client, google_client):
        """Test row count and size, missing values count as zero."""
        google_client.get_table.return_value = Mock(num_rows=42, num_bytes=None)

        stats = execution_client.get_table_stats("sales", "orders")

        assert (stats.row_count, stats.size_bytes) == (42, 0)


class TestTableStatements:
    """Test DDL issued by the client."""

    def test_drop_table(self, execution_client, google_client):
        """Test delete_table with not_found_ok."""
        execution_client.drop_table("sales", "orders")

        google_client.delete_table.assert_called_once_with("proj.sales.orders", not_found_ok=True)

    def test_create_table(self, execution_client, google_client):
        """Test CREATE TABLE from a definition."""
        google_client.query.return_value = finished_job()

        execution_client.create_table(TableDefinition(
            schema_name="sales",
            table_name="orders",
            columns=(ColumnDefinition(name="id", data_type="INT64", nullable=False),),
        ))

        assert google_client.query.call_args.args[0] == "CREATE TABLE `sales`.`orders` (\n  `id` INT64 NOT NULL\n)"

    def test_copy_table(self, execution_client, google_client):
        """Test native copy statement."""
        google_client.query.return_value = finished_job()

        execution_client.copy_table("in", "src", "out", "__temp_1")

        assert google_client.query.call_args.args[0] == "CREATE TABLE `out`.`__temp_1` COPY `in`.`src`"


class TestLifecycle:
    """Test scoped client creation."""

    def test_missing_credentials_file(self, tmp_path):
        """Test CONFIG_ERROR before any client is created."""
        settings = BigQuerySettings(credentials_file=str(tmp_path / "missing.json"))

        with patch("bqdriver.compute.engines.bigquery.bigquery.Client") as client_class:
            with pytest.raises(DriverError) as exc_info:
                BigQueryExecutionClient(settings).client

        assert exc_info.value.error_code == ErrorCode.CONFIG_ERROR
        client_class.from_service_account_json.assert_not_called()

    def test_factory_closes_client(self):
        """Test that the HTTP session is closed on exit, also on errors."""
        with patch("bqdriver.compute.factory.BigQueryExecutionClient") as client_class:
            with pytest.raises(RuntimeError):
                with create_execution_client(BigQuerySettings()) as client:
                    raise RuntimeError("boom")

        client.close.assert_called_once()
        client_class.assert_called_once()

    def test_close_releases_google_client(self, execution_client, google_client):
        """Test close and context manager protocol."""
        with execution_client:
            pass

        google_client.close.assert_called_once()
        assert execution_client._client is None
