"""Unit tests for filtered SELECT, DELETE and PREVIEW statements."""

import pytest

from bqdriver.common.exceptions import ColumnNotFoundError, QueryBuilderError
from bqdriver.constants.sql import QueryMode
from bqdriver.query_builder.filter_builder import FilterQueryBuilder, truncation_flag
from bqdriver.types.filters import ExportFilters, OrderBy, WhereFilter, WhereRefTableFilter


@pytest.fixture
def builder(import_settings):
    return FilterQueryBuilder(import_settings)


@pytest.fixture
def definition(table):
    return table(
        "s", "t",
        ("id", "INT64"),
        ("name", "STRING"),
        ("note", "STRING"),
        ("age", "STRING"),
        ("price", "NUMERIC"),
        ("_timestamp", "TIMESTAMP"),
    )


class TestProjection:
    """Test column projection."""

    def test_requested_columns_keep_order(self, builder):
        """Test that columns are qualified and emitted in requested order."""
        result = builder.build(QueryMode.SELECT, "s", "t", columns=["name", "id"])

        assert result.sql == "SELECT `t`.`name`, `t`.`id` FROM `s`.`t`"
        assert result.bindings == {}

    def test_empty_projection_selects_star(self, builder):
        """Test that no columns means SELECT *."""
        result = builder.build(QueryMode.SELECT, "s", "t")

        assert result.sql == "SELECT * FROM `s`.`t`"

    def test_unknown_columns_are_reported(self, builder, definition):
        """Test that every missing column is listed in the error details."""
        with pytest.raises(ColumnNotFoundError) as exc_info:
            builder.build(
                QueryMode.SELECT, "s", "t",
                columns=["id", "nope"],
                order_by=[OrderBy(column="other")],
                table_definition=definition,
            )

        assert exc_info.value.message == 'Column "nope" not found in table definition.'
        assert exc_info.value.details["missing_columns"] == ["nope", "other"]

    def test_column_lookup_is_case_insensitive(self, builder, definition):
        """Test that column names match the catalog case-insensitively."""
        result = builder.build(QueryMode.SELECT, "s", "t", columns=["ID"], table_definition=definition)

        assert result.sql == "SELECT `t`.`ID` FROM `s`.`t`"


class TestWhereFilters:
    """Test where filter translation."""

    def test_single_value_filter(self, builder):
        """Test one comparison without catalog information."""
        filters = ExportFilters(where_filters=[WhereFilter(column="name", values=["John"])])

        result = builder.build(QueryMode.SELECT, "s", "t", columns=["id"], filters=filters)

        assert result.sql == "SELECT `t`.`id` FROM `s`.`t` WHERE `t`.`name` = @dcValue1"
        assert result.bindings == {"dcValue1": "John"}

    @pytest.mark.parametrize(
        "operator,sql",
        [("eq", "="), ("ne", "<>"), ("gt", ">"), ("ge", ">="), ("lt", "<"), ("le", "<=")],
    )
    def test_operator_table(self, builder, operator, sql):
        """Test the SQL operator rendered for every filter operator."""
        filters = ExportFilters(
            where_filters=[WhereFilter(column="name", operator=operator, values=["a"])]
        )

        result = builder.build(QueryMode.SELECT, "s", "t", filters=filters)

        assert result.sql == f"SELECT * FROM `s`.`t` WHERE `t`.`name` {sql} @dcValue1"

    def test_multi_value_filters(self, builder):
        """Test IN UNNEST and NOT IN UNNEST with sequential parameters."""
        filters = ExportFilters(where_filters=[
            WhereFilter(column="name", operator="eq", values=["a", "b"]),
            WhereFilter(column="note", operator="ne", values=["c", "d"]),
        ])

        result = builder.build(QueryMode.SELECT, "s", "t", filters=filters)

        assert result.sql == (
            "SELECT * FROM `s`.`t` WHERE "
            "(`t`.`name` IN UNNEST([@dcValue1, @dcValue2])) AND "
            "(`t`.`note` NOT IN UNNEST([@dcValue3, @dcValue4]))"
        )
        assert list(result.bindings) == ["dcValue1", "dcValue2", "dcValue3", "dcValue4"]
        assert list(result.bindings.values()) == ["a", "b", "c", "d"]

    def test_multi_value_requires_eq_or_ne(self, builder):
        """Test that several values with a range operator are rejected."""
        filters = ExportFilters(
            where_filters=[WhereFilter(column="id", operator="gt", values=["1", "2"])]
        )

        with pytest.raises(QueryBuilderError) as exc_info:
            builder.build(QueryMode.SELECT, "s", "t", filters=filters)

        assert exc_info.value.message == (
            'whereFilter with multiple values can be used only with "eq", "ne" operators'
        )

    def test_non_string_catalog_column_casts_parameter(self, builder, definition):
        """Test that a typed catalog column keeps the column plain."""
        filters = ExportFilters(where_filters=[WhereFilter(column="price", values=["10.5"])])

        result = builder.build(
            QueryMode.SELECT, "s", "t", columns=["id"], filters=filters, table_definition=definition
        )

        assert result.sql == (
            "SELECT `t`.`id` FROM `s`.`t` WHERE `t`.`price` = SAFE_CAST(@dcValue1 AS NUMERIC)"
        )

    def test_string_catalog_column_with_logical_type_casts_both_sides(self, builder, definition):
        """Test that numeric comparison of a STRING column casts column and value."""
        filters = ExportFilters(where_filters=[
            WhereFilter(column="age", operator="ge", values=["18"], data_type="INTEGER"),
        ])

        result = builder.build(
            QueryMode.SELECT, "s", "t", columns=["id"], filters=filters, table_definition=definition
        )

        assert result.sql == (
            "SELECT `t`.`id` FROM `s`.`t` "
            "WHERE SAFE_CAST(`t`.`age` AS INT64) >= SAFE_CAST(@dcValue1 AS INT64)"
        )

    def test_fulltext_and_where_filters_are_exclusive(self, builder, definition):
        """Test that full-text search cannot be combined with where filters."""
        filters = ExportFilters(
            fulltext_search="foo",
            where_filters=[WhereFilter(column="name", values=["a"])],
        )

        with pytest.raises(QueryBuilderError) as exc_info:
            builder.build(QueryMode.SELECT, "s", "t", filters=filters, table_definition=definition)

        assert exc_info.value.message == "Cannot use fulltextSearch and whereFilters at the same time"

    def test_fulltext_searches_string_columns(self, builder, table):
        """Test that full-text search ORs a LIKE over every STRING column."""
        definition = table("s", "t", ("id", "INT64"), ("name", "STRING"), ("note", "STRING"))
        filters = ExportFilters(fulltext_search="foo")

        result = builder.build(
            QueryMode.SELECT, "s", "t", columns=["id"], filters=filters, table_definition=definition
        )

        assert result.sql == (
            "SELECT `t`.`id` FROM `s`.`t` "
            "WHERE (`t`.`name` LIKE '%foo%') OR (`t`.`note` LIKE '%foo%')"
        )
        assert result.bindings == {}

    def test_fulltext_needle_keeps_parameter_like_text(self, builder, table):
        """Test that a needle spelled like a bound parameter stays literal."""
        definition = table("s", "t", ("name", "STRING"), ("_timestamp", "TIMESTAMP"))
        filters = ExportFilters(change_since="1609459200", fulltext_search="it's :changedSince")

        result = builder.build(
            QueryMode.SELECT, "s", "t", columns=["name"], filters=filters, table_definition=definition
        )

        assert result.sql == (
            "SELECT `t`.`name` FROM `s`.`t` WHERE "
            "(`t`.`_timestamp` >= @changedSince) AND "
            "(`t`.`name` LIKE '%it\\'s :changedSince%')"
        )
        assert result.bindings == {"changedSince": "2021-01-01 00:00:00"}


class TestTimeRangeAndRefTables:
    """Test change range and reference table filters."""

    def test_change_range_comes_first(self, builder):
        """Test that time bounds precede value parameters."""
        filters = ExportFilters(
            change_since="1609459200",
            change_until="1609545600",
            where_filters=[WhereFilter(column="name", values=["x"])],
        )

        result = builder.build(QueryMode.SELECT, "s", "t", columns=["id"], filters=filters)

        assert result.sql == (
            "SELECT `t`.`id` FROM `s`.`t` WHERE "
            "(`t`.`_timestamp` >= @changedSince) AND "
            "(`t`.`_timestamp` < @changedUntil) AND "
            "(`t`.`name` = @dcValue1)"
        )
        assert result.bindings == {
            "changedSince": "2021-01-01 00:00:00",
            "changedUntil": "2021-01-02 00:00:00",
            "dcValue1": "x",
        }

    def test_ref_table_filter(self, builder):
        """Test membership against a column of another table."""
        filters = ExportFilters(where_ref_table_filters=[
            WhereRefTableFilter(
                column="id",
                operator="eq",
                ref_column="id",
                ref_path=["universe", "milkyway"],
                ref_table="mars",
            )
        ])

        result = builder.build(QueryMode.DELETE, "s", "t", filters=filters)

        assert result.sql == (
            "DELETE FROM `s`.`t` WHERE `t`.`id` IN (SELECT `id` FROM `universe.milkyway.mars`)"
        )

    def test_ref_table_filter_ne(self, builder):
        """Test that ne renders NOT IN."""
        filters = ExportFilters(where_ref_table_filters=[
            WhereRefTableFilter(column="id", operator="ne", ref_column="ref_id", ref_table="mars"),
        ])

        result = builder.build(QueryMode.SELECT, "s", "t", filters=filters)

        assert result.sql == "SELECT * FROM `s`.`t` WHERE `t`.`id` NOT IN (SELECT `ref_id` FROM `mars`)"

    def test_ref_table_filter_rejects_range_operators(self, builder):
        """Test that only eq and ne are accepted for reference tables."""
        filters = ExportFilters(where_ref_table_filters=[
            WhereRefTableFilter(column="id", operator="gt", ref_column="id", ref_table="mars"),
        ])

        with pytest.raises(QueryBuilderError) as exc_info:
            builder.build(QueryMode.SELECT, "s", "t", filters=filters)

        assert exc_info.value.message == "Only IN or NOT INT operator is allowed."

    def test_delete_without_filters_matches_every_row(self, builder):
        """Test that DELETE always carries a WHERE clause."""
        result = builder.build(QueryMode.DELETE, "s", "t")

        assert result.sql == "DELETE FROM `s`.`t` WHERE true"


class TestOrderingAndLimits:
    """Test ORDER BY, LIMIT and preview sampling."""

    def test_every_order_by_entry_is_honored(self, builder):
        """Test cast-aware ordering over several columns."""
        order_by = [
            OrderBy(column="age", order="DESC", data_type="INTEGER"),
            OrderBy(column="name"),
        ]

        result = builder.build(
            QueryMode.SELECT, "s", "t",
            columns=["id"],
            order_by=order_by,
            filters=ExportFilters(limit=10),
        )

        assert result.sql == (
            "SELECT `t`.`id` FROM `s`.`t` "
            "ORDER BY SAFE_CAST(`t`.`age` AS INT64) DESC, `t`.`name` ASC LIMIT 10"
        )

    def test_non_positive_limit_is_ignored(self, builder):
        """Test that limit 0 emits no LIMIT clause."""
        result = builder.build(QueryMode.SELECT, "s", "t", filters=ExportFilters(limit=0))

        assert "LIMIT" not in result.sql

    def test_small_table_is_not_sampled(self, builder):
        """Test that tables up to the threshold are read whole."""
        assert builder.sample_percent(ExportFilters(limit=100), 10_000) is None

    def test_large_table_uses_default_sample(self, builder):
        """Test the default sample of a large table."""
        assert builder.sample_percent(ExportFilters(limit=1000), 10_001) == 10

    def test_small_limit_uses_minimum_sample(self, builder):
        """Test that a limit within 1% of the rows drops the sample to 1%."""
        assert builder.sample_percent(ExportFilters(limit=100), 100_001) == 1

    def test_active_filter_disables_sampling(self, builder):
        """Test that filtered previews are never sampled."""
        filters = ExportFilters(limit=100, change_since="1609459200")

        assert builder.sample_percent(filters, 1_000_000) is None

    def test_preview_renders_sample_before_where(self, builder):
        """Test the position of the TABLESAMPLE clause."""
        result = builder.build(
            QueryMode.PREVIEW, "s", "t",
            columns=["id"],
            filters=ExportFilters(limit=1000),
            row_count=50_000,
        )

        assert result.sql == "SELECT `t`.`id` FROM `s`.`t` TABLESAMPLE SYSTEM (10 PERCENT) LIMIT 1000"

    def test_select_mode_never_samples(self, builder):
        """Test that SELECT ignores the row count."""
        result = builder.build(QueryMode.SELECT, "s", "t", row_count=50_000)

        assert "TABLESAMPLE" not in result.sql


class TestTruncation:
    """Test preview truncation expressions."""

    def test_truncated_projection(self, builder, definition):
        """Test string, temporal and other column truncation expressions."""
        result = builder.build(
            QueryMode.PREVIEW, "s", "t",
            columns=["name", "id", "_timestamp"],
            table_definition=definition,
            truncate_large_columns=True,
        )

        assert result.sql == (
            "SELECT "
            "SUBSTRING(CAST(`t`.`name` as STRING), 0, 16384) AS `name`, "
            "(CASE WHEN LENGTH(CAST(`t`.`name` as STRING)) > 16384 THEN 1 ELSE 0 END) "
            "AS `__truncated_name`, "
            "CAST(`t`.`id` as STRING) AS `id`, 0 AS `__truncated_id`, "
            "`t`.`_timestamp` AS `_timestamp`, 0 AS `__truncated__timestamp` "
            "FROM `s`.`t`"
        )

    def test_truncation_requires_definition(self, builder):
        """Test that truncation without catalog information is rejected."""
        with pytest.raises(QueryBuilderError):
            builder.build(QueryMode.PREVIEW, "s", "t", columns=["id"], truncate_large_columns=True)

    def test_truncation_flag_name(self):
        """Test the flag column naming."""
        assert truncation_flag("name") == "__truncated_name"
