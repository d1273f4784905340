"""Source SELECT of a table-to-table import."""

from typing import Sequence

from bqdriver.common.exceptions import ColumnNotFoundError
from bqdriver.query_builder.base import SQLQuoting
from bqdriver.query_builder.predicates import PredicateBuilder
from bqdriver.types.filters import WhereFilter
from bqdriver.types.query import QueryBuilderResult
from bqdriver.types.table import TableDefinition


class ImportQueryBuilder(SQLQuoting):
    """Builds the parametrized SELECT reading import source rows.

    Filter columns are validated against the full source definition and
    never projected unless they are also selected.
    """

    def build_select_source_sql(
        self,
        source_definition: TableDefinition,
        select_columns: Sequence[str],
        where_filters: Sequence[WhereFilter] = (),
        limit: int = 0,
        seconds: int = 0,
    ) -> QueryBuilderResult:
        """Build the source SELECT.

        Args:
            source_definition: Full definition of the source table
            select_columns: Source columns in destination order, empty
                selects every column
            where_filters: Row filters on the source
            limit: Row limit, non-positive means no limit
            seconds: Time-travel window on ``_timestamp``, non-positive
                means no window

        Raises:
            ColumnNotFoundError: If a filter references an unknown column
        """
        table_name = source_definition.table_name
        missing = [
            where_filter.column
            for where_filter in where_filters
            if not source_definition.has_column(where_filter.column)
        ]
        if missing:
            raise ColumnNotFoundError(
                f'Column "{missing[0]}" not found in table definition.',
                details={"missing_columns": missing},
            )

        if select_columns:
            projection = ", ".join(
                self.qualified_column(table_name, column) for column in select_columns
            )
        else:
            projection = f"{self.quote_identifier(table_name, 'table')}.*"

        predicates = PredicateBuilder(table_name, source_definition)
        predicates.add_time_travel(seconds)
        predicates.add_where_filters(where_filters)

        target = self.fully_qualified_name(source_definition.schema_name, table_name)
        sql = f"SELECT {projection} FROM {target}"
        where = predicates.where_sql()
        if where:
            sql += f" WHERE {where}"
        if limit > 0:
            sql += f" LIMIT {limit}"

        return predicates.finalize(sql)
