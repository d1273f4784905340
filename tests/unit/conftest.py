"""Shared fixtures for unit tests."""

from typing import Callable, Dict, List, Optional, Tuple

import pytest

from bqdriver.common.exceptions import DriverError, ErrorCode
from bqdriver.settings import ImportSettings
from bqdriver.types.query import QueryResult
from bqdriver.types.table import ColumnDefinition, TableDefinition, TableStats


class FakeExecutionClient:
    """In-memory execution client recording every statement.

    ``responder`` decides the result of ``submit_query``; it may raise to
    simulate a BigQuery failure. Without a responder, queued ``results``
    are returned in order, then empty results.
    """

    def __init__(self):
        self.tables: Dict[Tuple[str, str], TableDefinition] = {}
        self.stats: Dict[Tuple[str, str], TableStats] = {}
        self.queries: List[Tuple[str, Optional[Dict[str, str]], dict]] = []
        self.results: List[QueryResult] = []
        self.responder: Optional[Callable[[str, Optional[Dict[str, str]]], QueryResult]] = None
        self.created: List[TableDefinition] = []
        self.dropped: List[Tuple[str, str]] = []
        self.copies: List[Tuple[str, str, str, str]] = []

    def add_table(self, definition: TableDefinition, row_count: int = 0, size_bytes: int = 0) -> None:
        key = (definition.schema_name, definition.table_name)
        self.tables[key] = definition
        self.stats[key] = TableStats(row_count=row_count, size_bytes=size_bytes)

    @property
    def statements(self) -> List[str]:
        return [sql for sql, _, _ in self.queries]

    def submit_query(self, sql, params=None, *, timeout=None, default_dataset=None, telemetry=None):
        self.queries.append((sql, params, {"timeout": timeout, "default_dataset": default_dataset}))
        if self.responder is not None:
            return self.responder(sql, params)
        if self.results:
            return self.results.pop(0)
        return QueryResult()

    def reflect_table(self, schema_name, table_name):
        try:
            return self.tables[(schema_name, table_name)]
        except KeyError:
            raise DriverError.from_error_code(
                ErrorCode.TABLE_NOT_FOUND,
                f"Table {schema_name}.{table_name} not found",
            )

    def table_exists(self, schema_name, table_name):
        return (schema_name, table_name) in self.tables

    def drop_table(self, schema_name, table_name, if_exists=True):
        self.dropped.append((schema_name, table_name))
        self.tables.pop((schema_name, table_name), None)

    def create_table(self, definition):
        self.created.append(definition)
        self.tables[(definition.schema_name, definition.table_name)] = definition

    def copy_table(self, source_schema, source_table, destination_schema, destination_table):
        self.copies.append((source_schema, source_table, destination_schema, destination_table))
        source = self.tables[(source_schema, source_table)]
        self.tables[(destination_schema, destination_table)] = source.model_copy(
            update={"schema_name": destination_schema, "table_name": destination_table}
        )

    def get_table_stats(self, schema_name, table_name):
        return self.stats.get((schema_name, table_name), TableStats())


def make_table(schema_name: str, table_name: str, *columns, dedup_columns=()) -> TableDefinition:
    """Build a definition from ``(name, type)`` pairs or ColumnDefinition objects."""
    definitions = [
        column if isinstance(column, ColumnDefinition) else ColumnDefinition(name=column[0], data_type=column[1])
        for column in columns
    ]
    return TableDefinition(
        schema_name=schema_name,
        table_name=table_name,
        columns=tuple(definitions),
        dedup_columns=tuple(dedup_columns),
    )


@pytest.fixture
def fake_client():
    """Empty fake execution client."""
    return FakeExecutionClient()


@pytest.fixture
def import_settings():
    """Import settings with the documented defaults."""
    return ImportSettings(
        staging_table_prefix="__temp_",
        large_table_threshold=10_000,
        default_sample_percent=10,
        minimum_sample_percent=1,
        preview_default_limit=100,
        preview_max_limit=1000,
        truncate_length=16384,
    )


@pytest.fixture
def table():
    """Factory building table definitions, see ``make_table``."""
    return make_table
