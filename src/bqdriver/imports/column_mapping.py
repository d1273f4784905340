"""Column mapping helpers shared by the import components.

A mapping list renames and reorders source columns; an empty list means
every source column, unchanged, in physical order.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from bqdriver.common.exceptions import ColumnsMismatchError
from bqdriver.constants.bigquery import STRING_TYPE, TIMESTAMP_COLUMN
from bqdriver.types.imports import ColumnMapping
from bqdriver.types.table import ColumnDefinition, TableDefinition


def source_column_names(
    mappings: Sequence[ColumnMapping],
    definition: TableDefinition,
) -> List[str]:
    """Source column names in mapping order, catalog spelling.

    Raises:
        ColumnsMismatchError: Listing every mapped name absent from ``definition``.
    """
    if not mappings:
        return definition.column_names

    names: List[str] = []
    missing: List[str] = []
    for mapping in mappings:
        column = definition.get_column(mapping.source_column_name)
        if column is None:
            missing.append(mapping.source_column_name)
            continue
        names.append(column.name)

    if missing:
        raise _missing_in_source(definition, missing)
    return names


def expected_destination_columns(
    definition: TableDefinition,
    mappings: Sequence[ColumnMapping],
) -> Tuple[ColumnDefinition, ...]:
    """Source column definitions renamed to their destination names, mapping order.

    Raises:
        ColumnsMismatchError: Listing every mapped name absent from ``definition``.
    """
    if not mappings:
        return tuple(definition.columns)

    columns: List[ColumnDefinition] = []
    missing: List[str] = []
    for mapping in mappings:
        column = definition.get_column(mapping.source_column_name)
        if column is None:
            missing.append(mapping.source_column_name)
            continue
        columns.append(column.renamed(mapping.destination_column_name))

    if missing:
        raise _missing_in_source(definition, missing)
    return tuple(columns)


def is_full_column_set(columns: Sequence[str], definition: TableDefinition) -> bool:
    """Whether ``columns`` is every column of ``definition`` in physical order."""
    if not columns:
        return True
    return [name.lower() for name in columns] == [name.lower() for name in definition.column_names]


def is_renaming(mappings: Sequence[ColumnMapping]) -> bool:
    return any(
        mapping.source_column_name.lower() != mapping.destination_column_name.lower()
        for mapping in mappings
    )


def same_columns_ordered(
    source: Iterable[ColumnDefinition],
    destination: Iterable[ColumnDefinition],
    ignore: Sequence[str] = (TIMESTAMP_COLUMN,),
) -> bool:
    """Whether both column lists carry the same names and type families in the same order."""
    ignored = {name.lower() for name in ignore}

    def shape(columns: Iterable[ColumnDefinition]) -> List[Tuple[str, str]]:
        return [
            (column.name.lower(), column.base_type)
            for column in columns
            if column.name.lower() not in ignored
        ]

    return shape(source) == shape(destination)


def staging_columns(
    destination: TableDefinition,
    column_names: Sequence[str],
    dedup_columns: Sequence[str] = (),
) -> Tuple[ColumnDefinition, ...]:
    """Columns of a staging table for ``column_names``.

    Types, lengths and defaults come from the destination; names unknown
    to the destination become nullable STRING. Dedup columns stay NOT NULL.
    """
    dedup = {name.lower() for name in dedup_columns}
    columns: List[ColumnDefinition] = []
    for name in column_names:
        existing: Optional[ColumnDefinition] = destination.get_column(name)
        if existing is None:
            columns.append(ColumnDefinition(name=name, data_type=STRING_TYPE))
            continue
        columns.append(
            existing.model_copy(update={"name": name, "nullable": name.lower() not in dedup})
        )
    return tuple(columns)


def _missing_in_source(definition: TableDefinition, missing: List[str]) -> ColumnsMismatchError:
    return ColumnsMismatchError(
        f"Some columns are missing in source table "
        f"{definition.schema_name}.{definition.table_name}. "
        f"Missing columns: {','.join(missing)}",
        details={"missing_columns": missing},
    )
