"""Import-related constants and enumerations.

These enums describe how rows move from a source table into a destination
and which execution strategy the orchestrator picks for it.
"""

from enum import Enum


class ImportType(str, Enum):
    """Kind of import requested by the caller.

    Values:
        FULL: Destination content is replaced by the source rows.
        INCREMENTAL: Source rows are appended or upserted into the destination.
        VIEW: Destination becomes a view selecting from the source.
        CLONE: Destination becomes a physical clone of the source.
    """

    FULL = "FULL"
    INCREMENTAL = "INCREMENTAL"
    VIEW = "VIEW"
    CLONE = "CLONE"


class DedupType(str, Enum):
    """How duplicate keys are treated during an import."""

    INSERT_DUPLICATES = "INSERT_DUPLICATES"
    UPDATE_DUPLICATES = "UPDATE_DUPLICATES"


class CreateMode(str, Enum):
    """Behaviour when the destination object of a VIEW or CLONE import exists."""

    CREATE = "CREATE"
    REPLACE = "REPLACE"


class TimestampMode(str, Enum):
    """Source of the value written into the destination timestamp column."""

    CURRENT_TIME = "CURRENT_TIME"
    FROM_SOURCE = "FROM_SOURCE"


class ImportStrategy(str, Enum):
    """How source values are written into the destination columns.

    Values:
        STRING_TABLE: Non-string source values written into STRING columns
            are cast to STRING.
        USER_DEFINED_TABLE: Values are written with their source types.
    """

    STRING_TABLE = "STRING_TABLE"
    USER_DEFINED_TABLE = "USER_DEFINED_TABLE"


class LoadStrategy(str, Enum):
    """Data movement strategy chosen before loading a destination.

    Values:
        DIRECT_LOAD: Load the source straight into the destination.
        NATIVE_COPY_TO_STAGING: Engine-native table copy into a staging table.
        SQL_STAGED_LOAD: Create the staging table by DDL and fill it with
            INSERT ... SELECT.
    """

    DIRECT_LOAD = "DIRECT_LOAD"
    NATIVE_COPY_TO_STAGING = "NATIVE_COPY_TO_STAGING"
    SQL_STAGED_LOAD = "SQL_STAGED_LOAD"
