"""Unit tests for destination resolution and incremental validation."""

import pytest

from bqdriver.common.exceptions import ColumnsMismatchError
from bqdriver.imports.destination_resolver import DestinationResolver, columns_compatible
from bqdriver.types.imports import ImportOptions, TableReference
from bqdriver.types.table import ColumnDefinition


def column(name, data_type, length=None, nullable=True):
    return ColumnDefinition(name=name, data_type=data_type, length=length, nullable=nullable)


class TestColumnsCompatible:
    """Test source to destination column compatibility."""

    def test_string_destination_accepts_anything(self):
        """Test that STRING destinations accept every source type."""
        assert columns_compatible(column("a", "INT64"), column("a", "STRING"))

    def test_type_aliases_share_a_family(self):
        """Test INT family and DECIMAL aliases."""
        assert columns_compatible(column("a", "INT64"), column("a", "INTEGER"))
        assert columns_compatible(column("a", "BIGINT"), column("a", "INT64"))
        assert columns_compatible(column("a", "DECIMAL"), column("a", "NUMERIC"))
        assert columns_compatible(column("a", "BIGDECIMAL"), column("a", "BIGNUMERIC"))

    def test_lengths_must_match(self):
        """Test that precision differences are incompatible."""
        assert not columns_compatible(column("a", "NUMERIC", "10,2"), column("a", "NUMERIC", "12,2"))

    def test_nullability_is_ignored(self):
        """Test that NOT NULL never makes columns incompatible."""
        assert columns_compatible(column("a", "INT64", nullable=False), column("a", "INT64"))

    def test_different_families_mismatch(self):
        """Test incompatible type families."""
        assert not columns_compatible(column("a", "STRING"), column("a", "INT64"))


class TestResolveDestination:
    """Test destination lookup and creation."""

    def test_existing_destination_is_reflected(self, fake_client, table):
        """Test that an existing table is returned without being created."""
        existing = table("out", "dest", ("id", "INT64"))
        fake_client.add_table(existing)

        resolved = DestinationResolver(fake_client).resolve_destination(
            TableReference(path=["out"], table_name="dest"),
            ImportOptions(import_type="FULL"),
            [column("id", "INT64")],
        )

        assert resolved == existing
        assert fake_client.created == []

    def test_missing_destination_is_created(self, fake_client):
        """Test creation from the expected columns with a timestamp column."""
        resolved = DestinationResolver(fake_client).resolve_destination(
            TableReference(path=["out"], table_name="dest"),
            ImportOptions(import_type="INCREMENTAL", timestamp_column="_timestamp", dedup_columns=["id"]),
            [column("id", "INT64"), column("name", "STRING")],
        )

        assert resolved.column_names == ["id", "name", "_timestamp"]
        assert resolved.get_column("_timestamp").data_type == "TIMESTAMP"
        assert resolved.dedup_columns == ()
        assert fake_client.created == [resolved]

    def test_created_destination_without_timestamp(self, fake_client):
        """Test that no timestamp column is added when imports do not write it."""
        resolved = DestinationResolver(fake_client).resolve_destination(
            TableReference(path=["out"], table_name="dest"),
            ImportOptions(import_type="FULL"),
            [column("id", "INT64")],
        )

        assert resolved.column_names == ["id"]

    @pytest.mark.parametrize("import_type", ["VIEW", "CLONE"])
    def test_view_and_clone_never_create(self, fake_client, import_type):
        """Test that VIEW and CLONE imports resolve nothing."""
        resolved = DestinationResolver(fake_client).resolve_destination(
            TableReference(path=["out"], table_name="dest"),
            ImportOptions(import_type=import_type),
            [column("id", "INT64")],
        )

        assert resolved is None
        assert fake_client.created == []


class TestValidateIncrementalDestination:
    """Test validation of upsert destinations."""

    @pytest.fixture
    def source(self, table):
        return table("in", "src", ("id", "INT64"), ("name", "STRING"))

    def test_matching_destination_passes(self, fake_client, table, source):
        """Test that the timestamp column is exempt and case is ignored."""
        destination = table("out", "dest", ("ID", "INTEGER"), ("name", "STRING"), ("_timestamp", "TIMESTAMP"))

        DestinationResolver(fake_client).validate_incremental_destination(
            destination, source.columns, source
        )

    def test_destination_column_missing_in_source(self, fake_client, table, source):
        """Test destination columns absent from the source."""
        destination = table("out", "dest", ("id", "INT64"), ("name", "STRING"), ("extra", "STRING"))

        with pytest.raises(ColumnsMismatchError) as exc_info:
            DestinationResolver(fake_client).validate_incremental_destination(
                destination, source.columns, source
            )

        assert exc_info.value.message == "Some columns are missing in source table in.src. Missing columns: extra"

    def test_source_column_missing_in_destination(self, fake_client, table, source):
        """Test source columns absent from the destination."""
        destination = table("out", "dest", ("id", "INT64"))

        with pytest.raises(ColumnsMismatchError) as exc_info:
            DestinationResolver(fake_client).validate_incremental_destination(
                destination, source.columns, source
            )

        assert exc_info.value.message == (
            "Some columns are missing in workspace table out.dest. Missing columns: name"
        )

    def test_incompatible_definitions(self, fake_client, table, source):
        """Test that every incompatible column is named."""
        destination = table("out", "dest", ("id", "DATE"), ("name", "STRING"))

        with pytest.raises(ColumnsMismatchError) as exc_info:
            DestinationResolver(fake_client).validate_incremental_destination(
                destination, source.columns, source
            )

        assert exc_info.value.message == "Column definitions mismatch. Details: 'id' mapping 'INT64' / 'DATE'"
