"""Preview of a bounded, optionally sampled slice of a table."""

import datetime
from typing import Any, Dict, List, Tuple

from google.api_core.exceptions import BadRequest

from bqdriver.common.error_messages import filter_type_error
from bqdriver.common.exceptions import BadExportFilterParametersError, UnsupportedTypeError
from bqdriver.constants.bigquery import BACKEND_NAME, PREVIEW_DATETIME_FORMAT, UNSUPPORTED_FILTER_TYPES
from bqdriver.constants.sql import QueryMode
from bqdriver.handlers.base import CommandHandler
from bqdriver.logging import get_logger
from bqdriver.query_builder.filter_builder import FilterQueryBuilder, truncation_flag
from bqdriver.types.commands import (
    PreviewColumnValue,
    PreviewRow,
    PreviewTableCommand,
    PreviewTableResponse,
)
from bqdriver.types.filters import ExportFilters
from bqdriver.types.table import TableDefinition

logger = get_logger(__name__)

COMMAND_NAME = "PreviewTableCommand"


class PreviewTableHandler(CommandHandler):
    """Reads at most ``preview_max_limit`` rows of the requested columns.

    Large values are truncated to ``truncate_length`` characters and every
    value carries its truncation flag. Unfiltered previews of large tables
    read a TABLESAMPLE of the table.
    """

    operation_name = "bqdriver.table.preview"

    def handle(self, command: PreviewTableCommand) -> PreviewTableResponse:
        self._validate_columns(command)
        filters = self._resolve_limit(command.filters)
        self.validate_change_filters(COMMAND_NAME, filters)

        definition = self.client.reflect_table(command.schema_name, command.table_name)
        self._assert_supported_filter_types(filters, definition)
        stats = self.client.get_table_stats(command.schema_name, command.table_name)

        query = FilterQueryBuilder(self.settings).build(
            QueryMode.PREVIEW,
            command.schema_name,
            command.table_name,
            columns=command.columns,
            order_by=command.order_by,
            filters=filters,
            table_definition=definition,
            row_count=stats.row_count,
            truncate_large_columns=True,
        )

        try:
            result = self.client.submit_query(query.sql, query.bindings or None)
        except BadRequest as exc:
            bad_filter = filter_type_error(exc)
            if bad_filter is not None:
                raise bad_filter from exc
            raise

        rows = [
            PreviewRow(columns=[
                PreviewColumnValue(column_name=name, value=value, is_truncated=truncated)
                for name, (value, truncated) in zip(command.columns, self.row_values(row, command.columns))
            ])
            for row in result.rows
        ]
        logger.info(
            "Table previewed",
            extra={
                "db.sql.table": f"{command.schema_name}.{command.table_name}",
                "db.rows": len(rows),
            },
        )
        return PreviewTableResponse(columns=list(command.columns), rows=rows)

    @staticmethod
    def row_values(row: Dict[str, Any], columns: List[str]) -> List[Tuple[Any, bool]]:
        """``(value, is_truncated)`` per requested column."""
        values = []
        for name in columns:
            value = row.get(name)
            if isinstance(value, datetime.datetime):
                value = value.strftime(PREVIEW_DATETIME_FORMAT)
            elif value is not None:
                value = str(value)
            values.append((value, row.get(truncation_flag(name)) == 1))
        return values

    @staticmethod
    def _validate_columns(command: PreviewTableCommand) -> None:
        if not command.columns:
            raise BadExportFilterParametersError(f"{COMMAND_NAME}.columns is required")
        if len({name.lower() for name in command.columns}) != len(command.columns):
            raise BadExportFilterParametersError(f"{COMMAND_NAME}.columns has non unique names")

    def _resolve_limit(self, filters: ExportFilters) -> ExportFilters:
        """Apply the default limit; limits above the maximum are rejected."""
        if filters.limit > self.settings.preview_max_limit:
            raise BadExportFilterParametersError(
                f"{COMMAND_NAME}.limit cannot be greater than {self.settings.preview_max_limit}",
                details={"limit": filters.limit},
            )
        if filters.limit <= 0:
            return filters.model_copy(update={"limit": self.settings.preview_default_limit})
        return filters

    @staticmethod
    def _assert_supported_filter_types(filters: ExportFilters, definition: TableDefinition) -> None:
        for where_filter in filters.where_filters:
            column = definition.get_column(where_filter.column)
            if column is None:
                # reported by the query builder
                continue
            if column.base_type.split("<", 1)[0] in UNSUPPORTED_FILTER_TYPES:
                raise UnsupportedTypeError(
                    f'Filtering by column "{column.name}" of type "{column.data_type}" '
                    f'is not supported by the backend "{BACKEND_NAME}".',
                    details={"column": column.name, "data_type": column.data_type},
                )
