"""Table-to-table import orchestration.

Overview:
    ``ImportOrchestrator`` is the state machine over the import type:

    - FULL / INCREMENTAL: resolve the destination, pick a load strategy,
      stage the rows and merge them into the destination.
    - VIEW: create a view selecting every source row.
    - CLONE: clone the source, or copy it with CREATE TABLE AS SELECT when
      BigQuery refuses to clone between the two tables.

    REPLACE create mode drops an existing destination before a VIEW or a
    CLONE is created.

Error Handling:
    BigQuery conflicts on VIEW and CLONE become ``ObjectAlreadyExistsError``.
    Length overflows during a load become ``MaximumLengthOverflowError``,
    NULLs written into NOT NULL columns ``ImportValidationError`` and
    rejected filter values ``BadExportFilterParametersError``.
    Everything else propagates unchanged once the staging table is dropped.
"""

from typing import Optional

from google.api_core.exceptions import BadRequest, Conflict, GoogleAPICallError

from bqdriver.common.error_messages import filter_type_error, length_overflow_error, required_value_error
from bqdriver.common.exceptions import DriverError, ImportValidationError, ObjectAlreadyExistsError
from bqdriver.constants.imports import CreateMode, ImportType, LoadStrategy
from bqdriver.imports.column_mapping import expected_destination_columns
from bqdriver.imports.destination_resolver import DestinationResolver
from bqdriver.imports.merge import MergeEngine
from bqdriver.imports.source_resolver import SourceResolver
from bqdriver.imports.staging import StagingOrchestrator, decide_load_strategy
from bqdriver.imports.timers import ImportTimers
from bqdriver.logging import get_logger
from bqdriver.operations import CloneTable, CreateTable, CreateView
from bqdriver.protocols.execution import ExecutionClient
from bqdriver.query_builder.bigquery import BigQueryQueryBuilder
from bqdriver.settings.imports import ImportSettings
from bqdriver.types.commands import TableImportFromTableCommand
from bqdriver.types.imports import (
    ImportOptions,
    ImportResult,
    SourceContext,
    TableReference,
    TableSource,
)
from bqdriver.types.table import TableDefinition

logger = get_logger(__name__)

CANNOT_CLONE_MESSAGE = "Cannot clone tables"
TIMER_CREATE_VIEW = "createView"
TIMER_CLONE = "clone"


class ImportOrchestrator:
    """Runs one ``TableImportFromTableCommand`` against BigQuery.

    Attributes:
        client: Execution client of the request
        source_resolver: Resolves the source mapping
        destination_resolver: Resolves or creates the destination
        staging: Loads source rows into staging or the destination
        merge_engine: Applies staged rows to the destination
    """

    def __init__(
        self,
        client: ExecutionClient,
        settings: Optional[ImportSettings] = None,
        query_builder: Optional[BigQueryQueryBuilder] = None,
    ):
        self.client = client
        self.query_builder = query_builder or BigQueryQueryBuilder()
        self.source_resolver = SourceResolver(client)
        self.destination_resolver = DestinationResolver(client)
        self.staging = StagingOrchestrator(client, self.query_builder, settings)
        self.merge_engine = MergeEngine(client, self.query_builder)

    def run(self, command: TableImportFromTableCommand) -> ImportResult:
        """Import the source table of ``command`` into its destination.

        Returns:
            ImportResult with imported rows, imported columns and phase timers
        """
        options = command.import_options
        import_type = ImportType(options.import_type)
        timers = ImportTimers()

        context = self.source_resolver.create_from_command(command.source)
        expected_columns = expected_destination_columns(
            context.full_definition,
            command.source.column_mappings,
        )
        destination = self.destination_resolver.resolve_destination(
            command.destination,
            options,
            expected_columns,
        )

        if destination is not None and options.is_incremental and options.is_update_duplicates:
            self.destination_resolver.validate_incremental_destination(
                destination,
                expected_columns,
                context.full_definition,
            )

        if import_type in (ImportType.VIEW, ImportType.CLONE):
            source = self._require_table_source(context, import_type)
            if CreateMode(options.create_mode) == CreateMode.REPLACE:
                self._drop_existing(command.destination)
            if import_type == ImportType.VIEW:
                with timers.measure(TIMER_CREATE_VIEW):
                    result = self._create_view(command.destination, source)
            else:
                with timers.measure(TIMER_CLONE):
                    result = self._clone(command.destination, source)
            return result.model_copy(update={"timers": timers.as_tuple()})

        try:
            imported_rows = self._load(context, destination, options, timers)
        except GoogleAPICallError as exc:
            translated = self._translate_load_error(exc, command)
            if translated is None:
                raise
            raise translated from exc

        logger.info(
            "Import finished",
            extra={
                "import.type": import_type.value,
                "db.sql.table": f"{destination.schema_name}.{destination.table_name}",
                "db.rows": imported_rows,
            },
        )
        return ImportResult(
            imported_rows_count=imported_rows,
            imported_columns=tuple(context.effective_definition.column_names),
            timers=timers.as_tuple(),
            destination=destination,
        )

    def _load(
        self,
        context: SourceContext,
        destination: TableDefinition,
        options: ImportOptions,
        timers: ImportTimers,
    ) -> int:
        if self._keyed(options):
            destination = destination.with_dedup_columns(options.dedup_columns)
        self.destination_resolver.assert_destination_has_columns(
            destination,
            context.effective_definition.column_names,
        )

        staging_definition = self.staging.create_staging_definition(destination, context, options)
        strategy = decide_load_strategy(
            context.source,
            options,
            staging_definition,
            context.effective_definition,
        )
        logger.info(
            "Load strategy selected",
            extra={"import.strategy": LoadStrategy(strategy).value, "source.kind": context.source.kind},
        )

        if LoadStrategy(strategy) == LoadStrategy.DIRECT_LOAD:
            return self.staging.load_direct(context, destination, options, timers)

        with self.staging.stage(context, staging_definition, strategy, timers, options) as staged_rows:
            self.merge_engine.apply(staging_definition, destination, options, timers)
        return staged_rows

    @staticmethod
    def _keyed(options: ImportOptions) -> bool:
        return options.is_update_duplicates and bool(options.dedup_columns)

    @staticmethod
    def _translate_load_error(
        exc: GoogleAPICallError,
        command: TableImportFromTableCommand,
    ) -> Optional[DriverError]:
        translated = length_overflow_error(exc) or required_value_error(exc)
        if translated is not None:
            return translated
        if command.source.where_filters:
            return filter_type_error(exc)
        return None

    @staticmethod
    def _require_table_source(context: SourceContext, import_type: ImportType) -> TableSource:
        if not isinstance(context.source, TableSource):
            raise ImportValidationError(
                f"{import_type.value} import requires the whole source table, "
                "column mappings, filters, limit and time travel are not supported",
                details={"import_type": import_type.value},
            )
        return context.source

    def _drop_existing(self, destination: TableReference) -> None:
        if self.client.table_exists(destination.schema_name, destination.table_name):
            self.client.drop_table(destination.schema_name, destination.table_name)
            logger.info(
                "Existing destination dropped",
                extra={"db.sql.table": f"{destination.schema_name}.{destination.table_name}"},
            )

    def _select_all_from(self, source: TableSource) -> str:
        return self.query_builder.build_select_all(source.schema_name, source.table_name)

    def _create_view(self, destination: TableReference, source: TableSource) -> ImportResult:
        """CREATE VIEW selecting every source row; views report 0 imported rows."""
        operation = CreateView(
            schema_name=destination.schema_name,
            object_name=destination.table_name,
            select_query=self._select_all_from(source),
        )
        try:
            self.client.submit_query(
                self.query_builder.build_query(operation),
                telemetry=operation.telemetry_fields(),
            )
        except Conflict as exc:
            raise ObjectAlreadyExistsError(cause=exc) from exc
        return ImportResult(imported_rows_count=0)

    def _clone(self, destination: TableReference, source: TableSource) -> ImportResult:
        """Zero-copy clone with a CREATE TABLE AS SELECT fallback."""
        operation = CloneTable(
            schema_name=destination.schema_name,
            object_name=destination.table_name,
            source_schema=source.schema_name,
            source_object=source.table_name,
        )
        try:
            self.client.submit_query(
                self.query_builder.build_query(operation),
                telemetry=operation.telemetry_fields(),
            )
            return ImportResult(imported_rows_count=0)
        except Conflict as exc:
            raise ObjectAlreadyExistsError(cause=exc) from exc
        except BadRequest as exc:
            if CANNOT_CLONE_MESSAGE not in str(exc):
                raise
            logger.info(
                "Clone rejected, copying with CREATE TABLE AS SELECT",
                extra={"db.sql.table": f"{destination.schema_name}.{destination.table_name}"},
            )

        fallback = CreateTable(
            schema_name=destination.schema_name,
            object_name=destination.table_name,
            select_query=self._select_all_from(source),
        )
        self.client.submit_query(
            self.query_builder.build_query(fallback),
            telemetry=fallback.telemetry_fields(),
        )
        stats = self.client.get_table_stats(destination.schema_name, destination.table_name)
        return ImportResult(imported_rows_count=stats.row_count)
