"""Filtered SELECT, DELETE and PREVIEW statements over one table.

Translates protocol-level column selection, filters, ordering and limits
into a parameterized BigQuery statement.
"""

from typing import List, Optional, Sequence

from bqdriver.common.exceptions import ColumnNotFoundError, QueryBuilderError
from bqdriver.constants.bigquery import TEMPORAL_TYPES
from bqdriver.constants.sql import DataType, Order, QueryMode
from bqdriver.logging import get_logger
from bqdriver.operations import Delete
from bqdriver.query_builder.base import SQLQuoting
from bqdriver.query_builder.bigquery import BigQueryQueryBuilder
from bqdriver.query_builder.predicates import PredicateBuilder
from bqdriver.query_builder.type_converter import TypeConverter
from bqdriver.settings import ImportSettings, get_settings
from bqdriver.types.filters import ExportFilters, OrderBy
from bqdriver.types.query import QueryBuilderResult
from bqdriver.types.table import ColumnDefinition, TableDefinition

logger = get_logger(__name__)

TRUNCATION_FLAG_PREFIX = "__truncated_"


def truncation_flag(column: str) -> str:
    """Name of the flag column telling whether ``column`` was truncated."""
    return f"{TRUNCATION_FLAG_PREFIX}{column}"


class FilterQueryBuilder(SQLQuoting):
    """Builds filtered statements for preview, export and row deletion.

    Conditions are emitted in a fixed order: time range, where filters (or
    full-text search), reference table filters. Value parameters are named
    ``dcValue1..N`` across all filters.

    Args:
        settings: Import settings providing sampling and truncation limits,
            defaults to the global settings
    """

    def __init__(self, settings: Optional[ImportSettings] = None):
        self.settings = settings or get_settings().imports

    def build(
        self,
        mode: QueryMode,
        schema_name: str,
        table_name: str,
        columns: Sequence[str] = (),
        order_by: Sequence[OrderBy] = (),
        filters: Optional[ExportFilters] = None,
        table_definition: Optional[TableDefinition] = None,
        row_count: Optional[int] = None,
        truncate_large_columns: bool = False,
    ) -> QueryBuilderResult:
        """Build the statement for ``mode``.

        Args:
            mode: SELECT, DELETE or PREVIEW
            schema_name: Dataset of the table
            table_name: Table name, also used to qualify columns
            columns: Projection in requested order, empty means ``*``
            order_by: Sort specifications, all of them are honored
            filters: Row filters and limit
            table_definition: Catalog definition of the table
            row_count: Current row count, enables sampling in PREVIEW mode
            truncate_large_columns: Render preview truncation expressions

        Returns:
            Statement with ``@name`` parameters and ordered bindings

        Raises:
            QueryBuilderError: On invalid filter combinations
            ColumnNotFoundError: If a selected or sorted column is unknown
        """
        mode = QueryMode(mode)
        filters = filters or ExportFilters()

        if filters.fulltext_search and filters.where_filters:
            raise QueryBuilderError("Cannot use fulltextSearch and whereFilters at the same time")

        self._assert_columns_exist(columns, order_by, table_definition)

        predicates = PredicateBuilder(table_name, table_definition)
        predicates.add_time_range(filters.change_since, filters.change_until)
        if filters.fulltext_search:
            predicates.add_fulltext(filters.fulltext_search)
        else:
            predicates.add_where_filters(filters.where_filters)
        predicates.add_ref_table_filters(filters.where_ref_table_filters)
        where = predicates.where_sql()

        target = self.fully_qualified_name(schema_name, table_name)

        if mode == QueryMode.DELETE:
            delete = Delete(schema_name=schema_name, object_name=table_name, where_clause=where or None)
            return predicates.finalize(BigQueryQueryBuilder().build_query(delete))

        parts = [
            "SELECT",
            self._projection(table_name, columns, table_definition, truncate_large_columns),
            "FROM",
            target,
        ]

        if mode == QueryMode.PREVIEW:
            sample_percent = self.sample_percent(filters, row_count)
            if sample_percent is not None:
                parts.append(f"TABLESAMPLE SYSTEM ({sample_percent} PERCENT)")

        if where:
            parts.append(f"WHERE {where}")

        if order_by:
            parts.append(f"ORDER BY {self._order_by(table_name, order_by)}")

        if filters.limit > 0:
            parts.append(f"LIMIT {filters.limit}")

        result = predicates.finalize(" ".join(parts))
        logger.debug(
            "Filter query built",
            extra={"query.mode": mode.value, "db.statement": result.sql},
        )
        return result

    def sample_percent(self, filters: ExportFilters, row_count: Optional[int]) -> Optional[int]:
        """Percentage sampled from a large, unfiltered table, None for no sampling."""
        if filters.has_active_filter or row_count is None:
            return None
        if row_count <= self.settings.large_table_threshold:
            return None

        minimum_rows = row_count * self.settings.minimum_sample_percent / 100
        if 0 < filters.limit <= minimum_rows:
            return self.settings.minimum_sample_percent
        return self.settings.default_sample_percent

    def _assert_columns_exist(
        self,
        columns: Sequence[str],
        order_by: Sequence[OrderBy],
        table_definition: Optional[TableDefinition],
    ) -> None:
        if table_definition is None:
            return

        missing: List[str] = []
        for name in [*columns, *(spec.column for spec in order_by)]:
            if not table_definition.has_column(name) and name not in missing:
                missing.append(name)

        if missing:
            raise ColumnNotFoundError(
                f'Column "{missing[0]}" not found in table definition.',
                details={"missing_columns": missing},
            )

    def _projection(
        self,
        table_name: str,
        columns: Sequence[str],
        table_definition: Optional[TableDefinition],
        truncate_large_columns: bool,
    ) -> str:
        if not columns:
            return "*"

        if not truncate_large_columns:
            return ", ".join(self.qualified_column(table_name, column) for column in columns)

        if table_definition is None:
            raise QueryBuilderError("Table definition has to be set to truncate large columns")

        expressions: List[str] = []
        for column in columns:
            expressions.extend(
                self._truncated_column(table_name, table_definition.get_column(column))
            )
        return ", ".join(expressions)

    def _truncated_column(self, table_name: str, column: ColumnDefinition) -> List[str]:
        """Value expression plus its truncation flag."""
        reference = self.qualified_column(table_name, column.name)
        alias = self.quote_identifier(column.name, "column")
        flag = self.quote_identifier(truncation_flag(column.name), "column")
        size = self.settings.truncate_length

        if column.is_string:
            return [
                f"SUBSTRING(CAST({reference} as STRING), 0, {size}) AS {alias}",
                f"(CASE WHEN LENGTH(CAST({reference} as STRING)) > {size} THEN 1 ELSE 0 END) AS {flag}",
            ]

        if column.data_type in TEMPORAL_TYPES:
            value = f"{reference} AS {alias}"
        else:
            value = f"CAST({reference} as STRING) AS {alias}"
        return [value, f"0 AS {flag}"]

    def _order_by(self, table_name: str, order_by: Sequence[OrderBy]) -> str:
        entries = []
        for spec in order_by:
            data_type = DataType(spec.data_type)
            if data_type == DataType.STRING:
                expression = self.qualified_column(table_name, spec.column)
            else:
                expression = TypeConverter.cast_expression(table_name, spec.column, data_type.value)
            entries.append(f"{expression} {Order(spec.order).value}")
        return ", ".join(entries)
