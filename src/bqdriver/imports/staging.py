"""Staging of import data.

``decide_load_strategy`` picks how rows reach the destination, the
``staging_table`` context manager owns the lifecycle of a staging table
and ``StagingOrchestrator`` fills it.
"""

import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from bqdriver.common.exceptions import DriverError
from bqdriver.constants.bigquery import STRING_TYPE
from bqdriver.constants.imports import DedupType, ImportStrategy, ImportType, LoadStrategy
from bqdriver.imports.column_mapping import same_columns_ordered, staging_columns
from bqdriver.imports.merge import MergeEngine
from bqdriver.imports.timers import ImportTimers
from bqdriver.logging import get_logger
from bqdriver.operations import Insert, TruncateTable
from bqdriver.protocols.execution import ExecutionClient
from bqdriver.query_builder.bigquery import SOURCE_ALIAS, BigQueryQueryBuilder
from bqdriver.settings import get_settings
from bqdriver.settings.imports import ImportSettings
from bqdriver.types.imports import ImportOptions, ImportSource, SourceContext, TableSource
from bqdriver.types.table import TableDefinition

logger = get_logger(__name__)

TIMER_DIRECT_LOAD = "directLoad"
TIMER_COPY_TO_STAGING = "copyToStaging"
TIMER_INSERT_TO_STAGING = "insertToStaging"


def decide_load_strategy(
    source: ImportSource,
    options: ImportOptions,
    staging_definition: TableDefinition,
    source_definition: TableDefinition,
) -> LoadStrategy:
    """Pick the data movement strategy of a FULL or INCREMENTAL import.

    - DIRECT_LOAD: FULL import inserting duplicates without a timestamp,
      the destination is replaced straight from the source.
    - NATIVE_COPY_TO_STAGING: bare table source whose columns match the
      staging table in order (``_timestamp`` ignored) and no keyed upsert.
    - SQL_STAGED_LOAD: everything else.
    """
    if (
        ImportType(options.import_type) == ImportType.FULL
        and DedupType(options.dedup_type) == DedupType.INSERT_DUPLICATES
        and not options.use_timestamp
    ):
        return LoadStrategy.DIRECT_LOAD

    if (
        isinstance(source, TableSource)
        and same_columns_ordered(source_definition.columns, staging_definition.columns)
        and not options.requires_deduplication
    ):
        return LoadStrategy.NATIVE_COPY_TO_STAGING

    return LoadStrategy.SQL_STAGED_LOAD


def generate_staging_table_name(prefix: Optional[str] = None) -> str:
    """``__temp_<hex>`` unique per call."""
    if prefix is None:
        prefix = get_settings().imports.staging_table_prefix
    return f"{prefix}{uuid.uuid4().hex}"


def staging_table_definition(
    destination: TableDefinition,
    column_names: Sequence[str],
    options: ImportOptions,
    prefix: Optional[str] = None,
) -> TableDefinition:
    """Staging table shaped like ``destination`` for ``column_names``.

    Dedup columns are carried only for UPDATE_DUPLICATES imports.
    """
    dedup_columns = (
        tuple(options.dedup_columns)
        if DedupType(options.dedup_type) == DedupType.UPDATE_DUPLICATES
        else ()
    )
    columns = staging_columns(destination, column_names, dedup_columns)
    known = {column.name.lower() for column in columns}
    return TableDefinition(
        schema_name=destination.schema_name,
        table_name=generate_staging_table_name(prefix),
        is_temporary=True,
        columns=columns,
        dedup_columns=tuple(name for name in dedup_columns if name.lower() in known),
    )


@contextmanager
def staging_table(
    client: ExecutionClient,
    definition: TableDefinition,
    *,
    create: bool = True,
) -> Iterator[TableDefinition]:
    """Acquire a staging table and always drop it on the way out.

    The first error wins: a failing drop never replaces an error raised
    by the body. Drop failures are logged and, when the primary error is a
    ``DriverError``, listed in its ``cleanup_errors`` detail.

    Args:
        client: Execution client
        definition: Staging table definition
        create: Create the table up front; False when a copy creates it
    """
    if create:
        client.create_table(definition)

    primary: Optional[BaseException] = None
    try:
        yield definition
    except BaseException as exc:
        primary = exc
        raise
    finally:
        try:
            client.drop_table(definition.schema_name, definition.table_name, if_exists=True)
        except Exception as cleanup_exc:
            logger.warning(
                "Staging table cleanup failed",
                extra={
                    "db.sql.table": f"{definition.schema_name}.{definition.table_name}",
                    "error": str(cleanup_exc),
                },
            )
            if isinstance(primary, DriverError):
                primary.details.setdefault("cleanup_errors", []).append(str(cleanup_exc))


class StagingOrchestrator:
    """Moves source rows into a staging table, or straight into the destination.

    STRING_TABLE imports cast every non-string source column written into
    a STRING column; USER_DEFINED_TABLE imports copy values as they are.
    """

    def __init__(
        self,
        client: ExecutionClient,
        query_builder: Optional[BigQueryQueryBuilder] = None,
        settings: Optional[ImportSettings] = None,
    ):
        self.client = client
        self.query_builder = query_builder or BigQueryQueryBuilder()
        self.settings = settings or get_settings().imports
        self.merge_engine = MergeEngine(client, self.query_builder)

    def create_staging_definition(
        self,
        destination: TableDefinition,
        context: SourceContext,
        options: ImportOptions,
    ) -> TableDefinition:
        return staging_table_definition(
            destination,
            context.effective_definition.column_names,
            options,
            prefix=self.settings.staging_table_prefix,
        )

    @contextmanager
    def stage(
        self,
        context: SourceContext,
        staging_definition: TableDefinition,
        strategy: LoadStrategy,
        timers: ImportTimers,
        options: Optional[ImportOptions] = None,
    ) -> Iterator[int]:
        """Fill a staging table and yield the number of staged rows.

        The staging table is dropped when the block exits.
        """
        if LoadStrategy(strategy) == LoadStrategy.NATIVE_COPY_TO_STAGING:
            source = context.source
            with staging_table(self.client, staging_definition, create=False):
                with timers.measure(TIMER_COPY_TO_STAGING):
                    self.client.copy_table(
                        source.schema_name,
                        source.table_name,
                        staging_definition.schema_name,
                        staging_definition.table_name,
                    )
                    rows = self.client.get_table_stats(
                        staging_definition.schema_name,
                        staging_definition.table_name,
                    ).row_count
                yield rows
            return

        options = options or ImportOptions()
        with staging_table(self.client, staging_definition):
            with timers.measure(TIMER_INSERT_TO_STAGING):
                projections = self._projections(context, staging_definition, options)
                rows = self._insert_from_source(context, staging_definition, projections)
            yield rows

    def load_direct(
        self,
        context: SourceContext,
        destination: TableDefinition,
        options: ImportOptions,
        timers: ImportTimers,
    ) -> int:
        """Replace the destination content with the source rows.

        Raises:
            ImportValidationError: If a NOT NULL destination column would
                receive NULL, checked before the destination is truncated.
        """
        projections = self._projections(context, destination, options, convert_empty_values=True)
        source_sql, bindings = self._source_query(context)
        self.merge_engine.check_required_values(
            destination,
            options,
            {name.lower(): value for name, value in zip(context.effective_definition.column_names, projections)},
            f"({source_sql})",
            bindings,
        )

        with timers.measure(TIMER_DIRECT_LOAD):
            truncate = TruncateTable(
                schema_name=destination.schema_name,
                object_name=destination.table_name,
            )
            self.client.submit_query(
                self.query_builder.build_query(truncate),
                telemetry=truncate.telemetry_fields(),
            )
            return self._insert_from_source(context, destination, projections)

    def _projections(
        self,
        context: SourceContext,
        target: TableDefinition,
        options: ImportOptions,
        convert_empty_values: bool = False,
    ) -> List[str]:
        """Value expressions over ``src``, one per destination column."""
        cast_to_string = ImportStrategy(options.import_strategy) == ImportStrategy.STRING_TABLE

        # positional: source column i lands in destination column i
        projections: List[str] = []
        for source_name, column in zip(context.selected_columns, context.effective_definition.columns):
            expression = f"{SOURCE_ALIAS}.{self.query_builder.quote_identifier(source_name, 'column')}"
            target_column = target.get_column(column.name)
            if cast_to_string and not column.is_string and target_column is not None and target_column.is_string:
                expression = f"CAST({expression} AS {STRING_TYPE})"
            if convert_empty_values:
                expression = MergeEngine.empty_to_null(expression, column.name, target, options)
            projections.append(expression)
        return projections

    def _insert_from_source(
        self,
        context: SourceContext,
        target: TableDefinition,
        projections: Sequence[str],
    ) -> int:
        source_sql, bindings = self._source_query(context)
        insert = Insert(
            schema_name=target.schema_name,
            object_name=target.table_name,
            columns=list(context.effective_definition.column_names),
            source_query=f"SELECT {', '.join(projections)} FROM ({source_sql}) AS {SOURCE_ALIAS}",
        )
        result = self.client.submit_query(
            self.query_builder.build_query(insert),
            bindings or None,
            telemetry=insert.telemetry_fields(),
        )
        rows = result.affected_rows or 0
        logger.info(
            "Rows loaded",
            extra={
                "db.sql.table": f"{target.schema_name}.{target.table_name}",
                "source.kind": context.source.kind,
                "db.rows": rows,
            },
        )
        return rows

    def _source_query(self, context: SourceContext):
        source = context.source
        if isinstance(source, TableSource):
            sql = self.query_builder.build_select_columns(
                source.schema_name,
                source.table_name,
                list(context.selected_columns),
            )
            return sql, {}
        return source.sql, dict(source.bindings)
