"""WHERE clause assembly shared by the filter and import query builders.

Conditions are collected in order and combined with ``AND``; a single
condition is emitted bare, several are each parenthesized. Parameters are
generated as ``:name`` placeholders and rewritten to BigQuery ``@name``
parameters when the statement is finalized.
"""

import re
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from bqdriver.common.exceptions import QueryBuilderError
from bqdriver.constants.bigquery import TIMESTAMP_COLUMN, TIMESTAMP_FORMAT
from bqdriver.constants.sql import (
    MULTI_VALUE_OPERATOR_SQL,
    OPERATOR_SQL,
    DataType,
    Operator,
)
from bqdriver.query_builder.base import SQLQuoting
from bqdriver.query_builder.type_converter import TypeConverter
from bqdriver.types.filters import WhereFilter, WhereRefTableFilter
from bqdriver.types.query import QueryBuilderResult
from bqdriver.types.table import TableDefinition

VALUE_PARAMETER_PREFIX = "dcValue"
CHANGED_SINCE_PARAMETER = "changedSince"
CHANGED_UNTIL_PARAMETER = "changedUntil"


def combine_conditions(conditions: List[str], operator: str = "AND") -> str:
    """Join conditions, parenthesizing each one when there is more than one."""
    if len(conditions) == 1:
        return conditions[0]
    return f" {operator} ".join(f"({condition})" for condition in conditions)


# Quoted literals and identifiers are matched first and kept verbatim.
_PLACEHOLDER_PATTERN = re.compile(
    r"('(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\"|`[^`]*`)|:(\w+)",
    re.DOTALL,
)


def rewrite_placeholders(sql: str, bindings: Iterable[str]) -> str:
    """Rewrite bound ``:name`` placeholders into BigQuery ``@name`` parameters.

    Text inside string literals and quoted identifiers is never rewritten.
    """
    names = set(bindings)

    def replace(match: "re.Match[str]") -> str:
        name = match.group(2)
        if name is None or name not in names:
            return match.group(0)
        return f"@{name}"

    return _PLACEHOLDER_PATTERN.sub(replace, sql)


def format_unix_timestamp(value: str) -> str:
    """Unix seconds string -> UTC ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.fromtimestamp(int(value), tz=timezone.utc).strftime(TIMESTAMP_FORMAT)


class PredicateBuilder(SQLQuoting):
    """Collects WHERE conditions and their parameter bindings for one table.

    Args:
        table_alias: Name used to qualify column references
        table_definition: Catalog definition used for cast decisions and
            full-text column discovery
    """

    def __init__(self, table_alias: str, table_definition: Optional[TableDefinition] = None):
        self.table_alias = table_alias
        self.table_definition = table_definition
        self.conditions: List[str] = []
        self.bindings: Dict[str, str] = {}
        self._value_counter = 0

    def add_condition(self, condition: str) -> None:
        self.conditions.append(condition)

    def bind(self, value: str, name: Optional[str] = None) -> str:
        """Register a binding and return its ``:name`` placeholder."""
        if name is None:
            self._value_counter += 1
            name = f"{VALUE_PARAMETER_PREFIX}{self._value_counter}"
        self.bindings[name] = value
        return f":{name}"

    def column(self, column_name: str) -> str:
        return self.qualified_column(self.table_alias, column_name)

    def add_time_range(self, change_since: str = "", change_until: str = "") -> None:
        """Restrict rows by the system timestamp column."""
        timestamp = self.column(TIMESTAMP_COLUMN)
        if change_since:
            placeholder = self.bind(format_unix_timestamp(change_since), CHANGED_SINCE_PARAMETER)
            self.add_condition(f"{timestamp} >= {placeholder}")
        if change_until:
            placeholder = self.bind(format_unix_timestamp(change_until), CHANGED_UNTIL_PARAMETER)
            self.add_condition(f"{timestamp} < {placeholder}")

    def add_time_travel(self, seconds: int) -> None:
        """Keep rows changed within the last ``seconds`` seconds."""
        if seconds > 0:
            self.add_condition(
                f"{self.column(TIMESTAMP_COLUMN)} >= "
                f"TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL {int(seconds)} SECOND)"
            )

    def add_where_filters(self, filters: Iterable[WhereFilter]) -> None:
        for where_filter in filters:
            self.add_where_filter(where_filter)

    def add_where_filter(self, where_filter: WhereFilter) -> None:
        """Add one column comparison.

        Raises:
            QueryBuilderError: If several values are combined with an
                operator other than ``eq`` or ``ne``.
        """
        operator = Operator(where_filter.operator)
        if where_filter.is_multi_value and operator not in MULTI_VALUE_OPERATOR_SQL:
            raise QueryBuilderError(
                'whereFilter with multiple values can be used only with "eq", "ne" operators',
                details={"column": where_filter.column, "operator": operator.value},
            )

        column_sql, cast_value = self._comparison_sides(where_filter)
        placeholders = [cast_value(self.bind(value)) for value in where_filter.values]

        if where_filter.is_multi_value:
            self.add_condition(
                f"{column_sql} {MULTI_VALUE_OPERATOR_SQL[operator]} UNNEST([{', '.join(placeholders)}])"
            )
        else:
            self.add_condition(f"{column_sql} {OPERATOR_SQL[operator]} {placeholders[0]}")

    def add_ref_table_filters(self, filters: Iterable[WhereRefTableFilter]) -> None:
        for ref_filter in filters:
            self.add_ref_table_filter(ref_filter)

    def add_ref_table_filter(self, ref_filter: WhereRefTableFilter) -> None:
        """Add a membership test against a column of another table."""
        operator = Operator(ref_filter.operator)
        if operator not in MULTI_VALUE_OPERATOR_SQL:
            raise QueryBuilderError(
                "Only IN or NOT INT operator is allowed.",
                details={"column": ref_filter.column, "operator": operator.value},
            )
        ref_table = self.quote_identifier(
            ".".join([*ref_filter.ref_path, ref_filter.ref_table]), "table"
        )
        ref_column = self.quote_identifier(ref_filter.ref_column, "column")
        self.add_condition(
            f"{self.column(ref_filter.column)} {MULTI_VALUE_OPERATOR_SQL[operator]} "
            f"(SELECT {ref_column} FROM {ref_table})"
        )

    def add_fulltext(self, needle: str) -> None:
        """Search ``needle`` in every STRING column of the catalog definition."""
        if self.table_definition is None:
            raise QueryBuilderError("Table definition has to be set to use fulltextSearch")

        pattern = self.quote_string(f"%{needle}%")
        matches = [
            f"{self.column(column.name)} LIKE {pattern}"
            for column in self.table_definition.string_columns
        ]
        if matches:
            self.add_condition(combine_conditions(matches, "OR"))

    def where_sql(self) -> Optional[str]:
        if not self.conditions:
            return None
        return combine_conditions(self.conditions)

    def finalize(self, sql: str) -> QueryBuilderResult:
        """Rewrite placeholders and pair the statement with its bindings."""
        return QueryBuilderResult(
            sql=rewrite_placeholders(sql, self.bindings),
            bindings=dict(self.bindings),
        )

    def _comparison_sides(self, where_filter: WhereFilter):
        """Column expression and a function casting a placeholder.

        A non-string catalog column keeps the column plain and casts the
        parameter to the catalog type. A string (or unknown) catalog column
        compared with a non-string logical type casts both sides.
        """
        catalog_column = None
        if self.table_definition is not None:
            catalog_column = self.table_definition.get_column(where_filter.column)

        column_ref = self.column(where_filter.column)
        if catalog_column is not None and not catalog_column.is_string:
            catalog_type = catalog_column.data_type
            return column_ref, lambda placeholder: f"SAFE_CAST({placeholder} AS {catalog_type})"

        data_type = DataType(where_filter.data_type)
        if data_type != DataType.STRING:
            return (
                TypeConverter.cast_expression(self.table_alias, where_filter.column, data_type.value),
                lambda placeholder: TypeConverter.cast_value(placeholder, data_type.value),
            )

        return column_ref, lambda placeholder: placeholder
