"""Execution engines reaching BigQuery.

Engines are the execution layer of the driver. They handle the actual
communication with BigQuery: job submission and polling, table
reflection, native copies, retries of transient failures and structured
logging of every call.

Engines do NOT handle:
    - Query generation (see query_builder module)
    - Import sequencing (see imports module)
    - Command handling (see handlers module)
"""

from bqdriver.compute.engines.bigquery import BigQueryExecutionClient, column_from_schema_field

__all__ = ["BigQueryExecutionClient", "column_from_schema_field"]
