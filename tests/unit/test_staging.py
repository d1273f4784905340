"""Unit tests for load strategy selection and staging tables."""

from unittest.mock import Mock

import pytest

from bqdriver.common.exceptions import DriverError, ImportValidationError
from bqdriver.constants.imports import LoadStrategy
from bqdriver.imports.staging import (
    StagingOrchestrator,
    decide_load_strategy,
    generate_staging_table_name,
    staging_table,
    staging_table_definition,
)
from bqdriver.imports.timers import ImportTimers
from bqdriver.types.imports import ImportOptions, SelectSource, SourceContext, TableSource
from bqdriver.types.query import QueryResult
from bqdriver.types.table import ColumnDefinition


@pytest.fixture
def source_definition(table):
    return table("in", "src", ("id", "INT64"), ("name", "STRING"))


@pytest.fixture
def destination(table):
    return table(
        "out", "dest",
        ColumnDefinition(name="id", data_type="INT64", nullable=False),
        ("name", "STRING"),
        ("_timestamp", "TIMESTAMP"),
    )


@pytest.fixture
def table_context(source_definition):
    return SourceContext(
        source=TableSource(schema_name="in", table_name="src", columns=("id", "name")),
        effective_definition=source_definition,
        full_definition=source_definition,
        selected_columns=("id", "name"),
    )


class TestDecideLoadStrategy:
    """Test the data movement strategy decision."""

    def test_full_insert_duplicates_without_timestamp_loads_directly(self, source_definition, destination):
        """Test DIRECT_LOAD for plain full imports."""
        options = ImportOptions(import_type="FULL", dedup_type="INSERT_DUPLICATES")
        staging = staging_table_definition(destination, ["id", "name"], options, prefix="__temp_")
        source = TableSource(schema_name="in", table_name="src")

        assert decide_load_strategy(source, options, staging, source_definition) == LoadStrategy.DIRECT_LOAD

    def test_matching_table_source_uses_native_copy(self, source_definition, destination):
        """Test NATIVE_COPY_TO_STAGING when column order and types match."""
        options = ImportOptions(import_type="FULL", timestamp_column="_timestamp")
        staging = staging_table_definition(destination, ["id", "name"], options, prefix="__temp_")
        source = TableSource(schema_name="in", table_name="src")

        assert decide_load_strategy(source, options, staging, source_definition) == LoadStrategy.NATIVE_COPY_TO_STAGING

    def test_select_source_uses_sql_staging(self, source_definition, destination):
        """Test that a parametrized select can never be copied."""
        options = ImportOptions(import_type="INCREMENTAL")
        staging = staging_table_definition(destination, ["id", "name"], options, prefix="__temp_")
        source = SelectSource(sql="SELECT 1")

        assert decide_load_strategy(source, options, staging, source_definition) == LoadStrategy.SQL_STAGED_LOAD

    def test_incremental_upsert_uses_sql_staging(self, source_definition, destination):
        """Test that keyed incremental upserts never copy."""
        options = ImportOptions(
            import_type="INCREMENTAL",
            dedup_type="UPDATE_DUPLICATES",
            dedup_columns=["id"],
        )
        staging = staging_table_definition(destination, ["id", "name"], options, prefix="__temp_")
        source = TableSource(schema_name="in", table_name="src")

        assert decide_load_strategy(source, options, staging, source_definition) == LoadStrategy.SQL_STAGED_LOAD

    def test_type_mismatch_uses_sql_staging(self, table, destination):
        """Test that differing type families disable the native copy."""
        source_definition = table("in", "src", ("id", "STRING"), ("name", "STRING"))
        options = ImportOptions(import_type="INCREMENTAL")
        staging = staging_table_definition(destination, ["id", "name"], options, prefix="__temp_")
        source = TableSource(schema_name="in", table_name="src")

        assert decide_load_strategy(source, options, staging, source_definition) == LoadStrategy.SQL_STAGED_LOAD


class TestStagingDefinition:
    """Test staging table naming and shape."""

    def test_generated_names_are_unique(self):
        """Test prefix plus a 32 character hex suffix."""
        first = generate_staging_table_name("__temp_")
        second = generate_staging_table_name("__temp_")

        assert first.startswith("__temp_")
        assert len(first) == len("__temp_") + 32
        assert first != second

    def test_columns_follow_destination_types(self, destination):
        """Test destination types, STRING for unknown columns and dedup nullability."""
        options = ImportOptions(dedup_type="UPDATE_DUPLICATES", dedup_columns=["id"])

        staging = staging_table_definition(destination, ["id", "name", "extra"], options, prefix="__temp_")

        assert staging.schema_name == "out"
        assert staging.is_temporary
        assert [(c.name, c.data_type, c.nullable) for c in staging.columns] == [
            ("id", "INT64", False),
            ("name", "STRING", True),
            ("extra", "STRING", True),
        ]
        assert staging.dedup_columns == ("id",)

    def test_insert_duplicates_relaxes_not_null(self, destination):
        """Test that staging columns are nullable without an upsert key."""
        staging = staging_table_definition(destination, ["id"], ImportOptions(), prefix="__temp_")

        assert staging.get_column("id").nullable
        assert staging.dedup_columns == ()


class TestStagingTableLifecycle:
    """Test that staging tables are always dropped."""

    def test_table_is_created_and_dropped(self, fake_client, destination):
        """Test the happy path."""
        with staging_table(fake_client, destination) as acquired:
            assert acquired is destination
            assert fake_client.table_exists("out", "dest")

        assert fake_client.dropped == [("out", "dest")]

    def test_table_is_dropped_when_body_fails(self, fake_client, destination):
        """Test cleanup on error without masking it."""
        with pytest.raises(ValueError, match="boom"):
            with staging_table(fake_client, destination):
                raise ValueError("boom")

        assert fake_client.dropped == [("out", "dest")]

    def test_cleanup_error_is_attached_to_primary_error(self, destination):
        """Test first-error-wins with cleanup errors in details."""
        client = Mock()
        client.drop_table.side_effect = RuntimeError("drop failed")

        with pytest.raises(DriverError) as exc_info:
            with staging_table(client, destination):
                raise DriverError("load failed")

        assert exc_info.value.message == "load failed"
        assert exc_info.value.details["cleanup_errors"] == ["drop failed"]

    def test_cleanup_error_alone_is_not_raised(self, destination):
        """Test that a failing drop after success is only logged."""
        client = Mock()
        client.drop_table.side_effect = RuntimeError("drop failed")

        with staging_table(client, destination, create=False):
            pass

        client.create_table.assert_not_called()
        client.drop_table.assert_called_once_with("out", "dest", if_exists=True)


class TestStagingOrchestrator:
    """Test filling staging tables and direct loads."""

    def test_native_copy(self, fake_client, import_settings, source_definition, destination, table_context):
        """Test that native copies create the staging table by copy and count rows."""
        fake_client.add_table(source_definition, row_count=7)
        orchestrator = StagingOrchestrator(fake_client, settings=import_settings)
        staging = orchestrator.create_staging_definition(destination, table_context, ImportOptions())
        fake_client.stats[("out", staging.table_name)] = fake_client.stats[("in", "src")]
        timers = ImportTimers()

        with orchestrator.stage(table_context, staging, LoadStrategy.NATIVE_COPY_TO_STAGING, timers) as rows:
            assert rows == 7
            assert fake_client.created == []

        assert fake_client.copies == [("in", "src", "out", staging.table_name)]
        assert fake_client.dropped == [("out", staging.table_name)]
        assert [name for name, _ in timers.as_tuple()] == ["copyToStaging"]

    def test_sql_staged_load(self, fake_client, import_settings, destination, table_context):
        """Test CREATE plus INSERT ... SELECT into the staging table."""
        fake_client.results = [QueryResult(affected_rows=2)]
        orchestrator = StagingOrchestrator(fake_client, settings=import_settings)
        staging = orchestrator.create_staging_definition(destination, table_context, ImportOptions())
        timers = ImportTimers()

        with orchestrator.stage(table_context, staging, LoadStrategy.SQL_STAGED_LOAD, timers) as rows:
            assert rows == 2

        assert fake_client.created == [staging]
        assert fake_client.statements == [
            f"INSERT INTO `out`.`{staging.table_name}` (`id`, `name`)\n"
            "SELECT src.`id`, src.`name` FROM (SELECT `id`, `name` FROM `in`.`src`) AS src"
        ]
        assert fake_client.dropped == [("out", staging.table_name)]
        assert [name for name, _ in timers.as_tuple()] == ["insertToStaging"]

    def test_select_source_passes_bindings(self, fake_client, import_settings, source_definition, destination):
        """Test that select sources are wrapped and keep their parameters."""
        context = SourceContext(
            source=SelectSource(
                sql="SELECT `src`.`id` FROM `in`.`src` WHERE `src`.`name` = @dcValue1",
                bindings={"dcValue1": "x"},
                columns=("id",),
            ),
            effective_definition=source_definition.with_columns(source_definition.columns[:1]),
            full_definition=source_definition,
            selected_columns=("id",),
        )
        orchestrator = StagingOrchestrator(fake_client, settings=import_settings)
        staging = orchestrator.create_staging_definition(destination, context, ImportOptions())

        with orchestrator.stage(context, staging, LoadStrategy.SQL_STAGED_LOAD, ImportTimers()):
            pass

        sql, params, _ = fake_client.queries[0]
        assert sql.endswith(
            "SELECT src.`id` FROM (SELECT `src`.`id` FROM `in`.`src` WHERE `src`.`name` = @dcValue1) AS src"
        )
        assert params == {"dcValue1": "x"}

    def test_direct_load_truncates_and_converts_empty_values(
        self, fake_client, import_settings, destination, table_context
    ):
        """Test DIRECT_LOAD statements and empty string conversion."""
        fake_client.results = [QueryResult(rows=[{"id": 0}]), QueryResult(), QueryResult(affected_rows=3)]
        options = ImportOptions(convert_empty_values_to_null=["name"])
        timers = ImportTimers()

        rows = StagingOrchestrator(fake_client, settings=import_settings).load_direct(
            table_context, destination, options, timers
        )

        assert rows == 3
        assert fake_client.statements == [
            "SELECT COUNTIF(src.`id` IS NULL) AS `id` FROM (SELECT `id`, `name` FROM `in`.`src`) AS src",
            "TRUNCATE TABLE `out`.`dest`",
            "INSERT INTO `out`.`dest` (`id`, `name`)\n"
            "SELECT src.`id`, NULLIF(src.`name`, '') FROM (SELECT `id`, `name` FROM `in`.`src`) AS src",
        ]
        assert [name for name, _ in timers.as_tuple()] == ["directLoad"]

    def test_direct_load_rejects_nulls_before_truncating(
        self, fake_client, import_settings, destination, table_context
    ):
        """Test that NULLs bound for a NOT NULL column leave the destination untouched."""
        fake_client.results = [QueryResult(rows=[{"id": 2}])]

        with pytest.raises(ImportValidationError) as exc_info:
            StagingOrchestrator(fake_client, settings=import_settings).load_direct(
                table_context, destination, ImportOptions(), ImportTimers()
            )

        assert exc_info.value.message == 'Required columns "id" cannot contain NULL values.'
        assert exc_info.value.details["columns"] == ["id"]
        assert len(fake_client.statements) == 1
        assert fake_client.statements[0].startswith("SELECT COUNTIF(src.`id` IS NULL)")

    def test_direct_load_null_check_keeps_select_bindings(
        self, fake_client, import_settings, source_definition, destination
    ):
        """Test that the NULL count reads the parametrized source select."""
        context = SourceContext(
            source=SelectSource(
                sql="SELECT `src`.`id` FROM `in`.`src` WHERE `src`.`name` = @dcValue1",
                bindings={"dcValue1": "x"},
                columns=("id",),
            ),
            effective_definition=source_definition.with_columns(source_definition.columns[:1]),
            full_definition=source_definition,
            selected_columns=("id",),
        )
        fake_client.results = [QueryResult(rows=[{"id": 0}])]

        StagingOrchestrator(fake_client, settings=import_settings).load_direct(
            context, destination, ImportOptions(), ImportTimers()
        )

        sql, params, _ = fake_client.queries[0]
        assert sql == (
            "SELECT COUNTIF(src.`id` IS NULL) AS `id` "
            "FROM (SELECT `src`.`id` FROM `in`.`src` WHERE `src`.`name` = @dcValue1) AS src"
        )
        assert params == {"dcValue1": "x"}


class TestStringTableCasts:
    """Test how typed source values reach STRING destination columns."""

    @pytest.fixture
    def string_destination(self, table):
        return table(
            "out", "dest",
            ("id", "STRING"),
            ("name", "STRING"),
            ("_timestamp", "TIMESTAMP"),
        )

    def test_staging_insert_casts_typed_columns(
        self, fake_client, import_settings, string_destination, table_context
    ):
        """Test CAST to STRING for an INT64 source column loaded into STRING."""
        options = ImportOptions(
            import_type="INCREMENTAL",
            dedup_type="UPDATE_DUPLICATES",
            dedup_columns=["id"],
        )
        orchestrator = StagingOrchestrator(fake_client, settings=import_settings)
        staging = orchestrator.create_staging_definition(string_destination, table_context, options)

        with orchestrator.stage(table_context, staging, LoadStrategy.SQL_STAGED_LOAD, ImportTimers(), options):
            pass

        assert [(c.name, c.data_type) for c in staging.columns] == [("id", "STRING"), ("name", "STRING")]
        assert fake_client.statements == [
            f"INSERT INTO `out`.`{staging.table_name}` (`id`, `name`)\n"
            "SELECT CAST(src.`id` AS STRING), src.`name` FROM (SELECT `id`, `name` FROM `in`.`src`) AS src"
        ]

    def test_direct_load_casts_before_converting_empty_values(
        self, fake_client, import_settings, string_destination, table_context
    ):
        """Test that NULLIF wraps the cast value."""
        options = ImportOptions(convert_empty_values_to_null=["id"])

        StagingOrchestrator(fake_client, settings=import_settings).load_direct(
            table_context, string_destination, options, ImportTimers()
        )

        assert fake_client.statements[-1] == (
            "INSERT INTO `out`.`dest` (`id`, `name`)\n"
            "SELECT NULLIF(CAST(src.`id` AS STRING), ''), src.`name` "
            "FROM (SELECT `id`, `name` FROM `in`.`src`) AS src"
        )

    def test_user_defined_table_keeps_source_values(
        self, fake_client, import_settings, string_destination, table_context
    ):
        """Test that USER_DEFINED_TABLE imports never cast."""
        options = ImportOptions(import_strategy="USER_DEFINED_TABLE")

        StagingOrchestrator(fake_client, settings=import_settings).load_direct(
            table_context, string_destination, options, ImportTimers()
        )

        assert "CAST" not in fake_client.statements[-1]
